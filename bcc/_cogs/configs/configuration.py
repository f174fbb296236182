"""
All configuration flags, options, settings to fine-tune the API client.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

The individual groups or settings can eventually be moved or regrouped within
the root object, while keeping the legacy names for backward compatibility.

.. note::

    The timings of the lock retries and task polling are not settings:
    they are dictated by the control plane's behaviour and are fixed.
    See `RETRY_INTERVAL`, `LOCK_TIMEOUT`, `TASK_TIMEOUT` below.
"""
import dataclasses
from typing import Optional

DEFAULT_BASE_URL = 'https://cp.iteco.cloud'

RETRY_INTERVAL: float = 0.5
""" How long to sleep between the attempts on locked objects & task polls (seconds). """

LOCK_TIMEOUT: float = 1200
""" For how long to retry the requests to locked objects before giving up (seconds). """

TASK_TIMEOUT: float = 600
""" For how long to wait for a server-side task to finish before giving up (seconds). """

UNLOCK_POLL_INTERVAL: float = 1.0
""" How often to check the ``locked`` flag of an object when waiting for it explicitly. """


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for the whole of one single HTTP exchange (in seconds).

    It is not the timeout of the logical API call, which can take much longer
    due to the retries on locked objects and the waiting for the tasks.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for the connection establishing (in seconds).
    """

    connection_limit: int = 0
    """
    How many simultaneous connections to keep in the pool; ``0`` is unlimited.
    """


@dataclasses.dataclass
class IdentitySettings:

    user_agent: Optional[str] = None
    """
    The ``User-Agent`` header. If ``None``, it is ``bcc-python/{version}``.
    """

    client_id: Optional[str] = None
    """
    An optional identifier of the client sent as the ``X-Client-Id`` header,
    e.g. to distinguish the automation tools in the control plane's audit logs.
    """


@dataclasses.dataclass
class ClientSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    identity: IdentitySettings = dataclasses.field(default_factory=IdentitySettings)
