"""
The transport for the API calls: a TLS-capable ``aiohttp`` session.

The session is constructed once per client (see `bcc.Manager.create`),
and is then shared by all the API calls, including the concurrent ones,
and by all the managers derived from the original one (e.g. with other scopes).
"""
import os
import ssl
import tempfile
from typing import Dict, Iterator, Mapping

import aiohttp

from bcc._cogs.clients import errors
from bcc._cogs.configs import configuration
from bcc._cogs.helpers import versions
from bcc._cogs.structs import credentials


def make_ssl_context(
        info: credentials.ConnectionInfo,
        *,
        tempfiles: "TempFiles",
) -> ssl.SSLContext:
    """
    Build the SSL context for the client certificate auth & the CA verification.

    A client certificate is only accepted together with its private key
    and with the root CA certificate to verify the server with.
    """
    if info.ca_path and info.ca_data:
        raise errors.LoginError("Both CA path & data are set. Need only one.")
    if info.certificate_path and info.certificate_data:
        raise errors.LoginError("Both certificate path & data are set. Need only one.")
    if info.private_key_path and info.private_key_data:
        raise errors.LoginError("Both private key path & data are set. Need only one.")

    has_ca = bool(info.ca_path or info.ca_data)
    has_certificate = bool(info.certificate_path or info.certificate_data)
    has_private_key = bool(info.private_key_path or info.private_key_data)
    if has_certificate and not has_private_key:
        raise errors.LoginError("The client certificate cannot be used without the key.")
    if has_private_key and not has_certificate:
        raise errors.LoginError("The client key cannot be used without the certificate.")
    if has_certificate and not has_ca:
        raise errors.LoginError("The CA certificate is required when a client certificate is used.")

    try:
        context = ssl.create_default_context(
            cafile=info.ca_path,
            cadata=info.ca_data.decode('ascii') if info.ca_data else None)
        context.minimum_version = ssl.TLSVersion.TLSv1_2

        # Some SSL data are not accepted directly, so we have to use temp files.
        if has_certificate:
            context.load_cert_chain(
                certfile=info.certificate_path or tempfiles[info.certificate_data or b''],
                keyfile=info.private_key_path or tempfiles[info.private_key_data or b''])
    except (ssl.SSLError, OSError, ValueError) as e:
        raise errors.LoginError(f"Failed to load the certificates: {e}") from e

    if info.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    return context


def make_headers(
        settings: configuration.ClientSettings,
) -> Dict[str, str]:
    # It is a good practice to self-identify a bit.
    headers: Dict[str, str] = {}
    headers['User-Agent'] = settings.identity.user_agent or f'bcc-python/{versions.version or "unknown"}'
    if settings.identity.client_id:
        headers['X-Client-Id'] = settings.identity.client_id
    return headers


def make_session(
        info: credentials.ConnectionInfo,
        *,
        settings: configuration.ClientSettings,
        tempfiles: "TempFiles",
) -> aiohttp.ClientSession:
    """
    Build a generic aiohttp session based on the constructed credentials.

    The bearer token is not set here, but on every request instead,
    so that the session can be reused with other tokens if needed.
    """
    context = make_ssl_context(info, tempfiles=tempfiles)
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(
            limit=settings.networking.connection_limit,
            ssl=context,
        ),
        headers=make_headers(settings),
        timeout=aiohttp.ClientTimeout(
            total=settings.networking.request_timeout,
            sock_connect=settings.networking.connect_timeout,
        ),
    )


class TempFiles(Mapping[bytes, str]):
    """
    A container for the temporary files, which are purged on garbage collection.

    The files are purged when the container is garbage-collected. The container
    is garbage-collected when its parent `Manager` is garbage-collected or
    explicitly closed.
    """

    def __init__(self) -> None:
        super().__init__()
        self._paths: Dict[bytes, str] = {}

    def __del__(self) -> None:
        self.purge()

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._paths)

    def __getitem__(self, item: bytes) -> str:
        if item not in self._paths:
            with tempfile.NamedTemporaryFile(delete=False) as f:
                f.write(item)
            self._paths[item] = f.name
        return self._paths[item]

    def purge(self) -> None:
        for _, path in self._paths.items():
            try:
                os.remove(path)
            except OSError:
                pass
        self._paths.clear()