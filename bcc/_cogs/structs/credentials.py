"""
Credentials and connection flags for the control plane's API.

Only the bearer tokens are supported as the authentication method,
optionally combined with the client certificates for the mutual TLS.

The certificates and the keys can be given either as the paths to the files
or as the inline PEM data, but not both at once for the same item.
"""
import dataclasses
from typing import Optional

from bcc._cogs.configs import configuration


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials and connection flags to use.
    """
    token: str
    server: str = configuration.DEFAULT_BASE_URL  # e.g. "https://cp.iteco.cloud"
    ca_path: Optional[str] = None
    ca_data: Optional[bytes] = None  # PEM, not base64-encoded
    insecure: Optional[bool] = None
    certificate_path: Optional[str] = None
    certificate_data: Optional[bytes] = None
    private_key_path: Optional[str] = None
    private_key_data: Optional[bytes] = None

    def __repr__(self) -> str:
        # Never leak the token into the logs or tracebacks.
        return f'{self.__class__.__name__}(server={self.server!r}, token=...)'
