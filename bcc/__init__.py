"""
The main module for all the exported functions & classes of the client.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the library's top-level interface,
# as it is seen by the users. So, we export the individual functions.

import logging

from bcc._cogs.aiokits.aioscopes import (
    Scope,
    ScopeError,
    ScopeCancelledError,
    ScopeDeadlineError,
)
from bcc._cogs.clients.api import (
    Manager,
    Exchange,
    Outcome,
    LockState,
)
from bcc._cogs.clients.errors import (
    BCCError,
    LoginError,
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
    APITransportError,
    APIDecodeError,
    APIPaginationError,
    CredentialExportError,
    LockTimeoutError,
    TaskError,
    TaskFailedError,
    TaskTimeoutError,
)
from bcc._cogs.clients.paging import (
    PageCursor,
)
from bcc._cogs.clients.tasks import (
    TaskState,
)
from bcc._cogs.configs.configuration import (
    ClientSettings,
    NetworkingSettings,
    IdentitySettings,
    DEFAULT_BASE_URL,
    RETRY_INTERVAL,
    LOCK_TIMEOUT,
    TASK_TIMEOUT,
)
from bcc._cogs.helpers.arguments import (
    Arguments,
)
from bcc._cogs.helpers.loggers import (
    LogFormat,
    RequestLogger,
    configure,
)
from bcc._cogs.helpers.typedefs import (
    Logger,
    Decoder,
)
from bcc._cogs.helpers.versions import (
    version as __version__,
)
from bcc._cogs.structs.credentials import (
    ConnectionInfo,
)

# The library never prints anything unless the application configures the logging.
logging.getLogger('bcc').addHandler(logging.NullHandler())

__all__ = [
    'Manager', 'Exchange', 'Outcome', 'LockState', 'TaskState', 'PageCursor',
    'Arguments', 'ConnectionInfo', 'Decoder', 'Logger',
    'ClientSettings', 'NetworkingSettings', 'IdentitySettings',
    'DEFAULT_BASE_URL', 'RETRY_INTERVAL', 'LOCK_TIMEOUT', 'TASK_TIMEOUT',
    'Scope', 'ScopeError', 'ScopeCancelledError', 'ScopeDeadlineError',
    'configure', 'LogFormat', 'RequestLogger',
    'BCCError', 'LoginError',
    'APIError', 'APIUnauthorizedError', 'APIForbiddenError', 'APINotFoundError', 'APIConflictError',
    'APITransportError', 'APIDecodeError', 'APIPaginationError', 'CredentialExportError',
    'LockTimeoutError', 'TaskError', 'TaskFailedError', 'TaskTimeoutError',
]
