"""
Control plane's API errors.

The underlying client library (now, ``aiohttp``) can be replaced in the future.
We cannot rely on embedding its exceptions all over the code of the resources.
Hence, we have our own hierarchy of exceptions for the API errors.

The original errors of the client library (and of the decoders: ``json``,
``yaml``) are chained as the causes of our own specialised errors --
for better explainability of errors in the stack traces.

Some selected statuses of the API errors are made into their own classes,
so that they could be intercepted and handled in the resource wrappers,
e.g. 404 on deletion. All other statuses are raised as the base error class
and are indistinguishable from each other (except via the exception's fields).

Unlike the underlying client library's errors, the API errors contain more
information about the reasons -- as provided by the API in its response bodies,
not guessed only by HTTP statuses alone: specifically, the error aliases,
which are the machine-readable codes of the errors (e.g. ``object_locked``).
"""
import collections.abc
import json
from typing import Any, Collection, Optional, Tuple

from typing_extensions import TypedDict

OBJECT_LOCKED_ALIAS = 'object_locked'

# What the decoders (both ours and the callers') raise on malformed data.
DECODING_ERRORS = (ValueError, TypeError, KeyError)


class RawErrorPayload(TypedDict, total=False):
    details: Any
    error_alias: Collection[str]
    non_field_errors: Collection[str]


class BCCError(Exception):
    """
    A base for all errors of the client.

    If the failed exchange has spawned the server-side tasks nevertheless,
    their ids are exposed in ``task_ids``. They are not waited for.
    """
    task_ids: Tuple[str, ...] = ()


class LoginError(BCCError):
    """ Raised when the connection credentials or certificates are unusable. """


class APITransportError(BCCError):
    """ The HTTP exchange itself has failed: connectivity, TLS, or timeouts. """

    def __init__(self, message: str, *, method: str, url: str) -> None:
        super().__init__(message)
        self.method = method
        self.url = url


class APIDecodeError(BCCError):
    """ The response is received, but its payload cannot be understood. """

    def __init__(self, message: str, *, url: str, payload: bytes) -> None:
        super().__init__(f"{message}\n{payload.decode('utf-8', errors='replace')}")
        self.url = url
        self.payload = payload


class APIPaginationError(BCCError):
    """ The pages of a list do not add up to the total declared by the server. """


class CredentialExportError(BCCError):
    """ The downloaded credentials file cannot be verified or stored. """


class LockTimeoutError(BCCError):
    """ The object remains locked by other operations for too long. """

    def __init__(self, message: str, *, url: str, timeout: float) -> None:
        super().__init__(message)
        self.url = url
        self.timeout = timeout


class TaskError(BCCError):
    def __init__(self, message: str, *, task_id: str) -> None:
        super().__init__(message)
        self.task_id = task_id


class TaskFailedError(TaskError):
    """ The server-side task has finished with an error at some step. """

    def __init__(self, message: str, *, task_id: str, step: Optional[str]) -> None:
        super().__init__(message, task_id=task_id)
        self.step = step


class TaskTimeoutError(TaskError):
    """ The server-side task has not finished in time (but did not fail yet). """

    def __init__(self, message: str, *, task_id: str, timeout: float) -> None:
        super().__init__(message, task_id=task_id)
        self.timeout = timeout


class APIError(BCCError):
    """
    A structured error of the API: the status, the raw body, the error aliases.

    The message always contains the URL, the status, and the raw body as is.
    """

    def __init__(
            self,
            *,
            url: str,
            status: int,
            body: bytes,
            error_aliases: Collection[str] = (),
            summary: Optional[str] = None,
    ) -> None:
        text = body.decode('utf-8', errors='replace')
        message = f"HTTP request failure on {url}:\n{status}: {text}"
        if summary:
            message = f"{summary}\n{message}"
        super().__init__(message)
        self._url = url
        self._status = status
        self._body = body
        self._error_aliases = tuple(error_aliases)
        self._message = message

    @property
    def url(self) -> str:
        return self._url

    @property
    def status(self) -> int:
        return self._status

    @property
    def code(self) -> int:
        return self._status

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def error_aliases(self) -> Tuple[str, ...]:
        return self._error_aliases

    @property
    def message(self) -> str:
        return self._message


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


def parse_payload(body: bytes) -> Optional[RawErrorPayload]:
    """
    Parse the error payload leniently: ``None`` if it is not a JSON object.
    """
    try:
        payload = json.loads(body)
    except ValueError:  # incl. json.JSONDecodeError & UnicodeDecodeError
        return None
    if not isinstance(payload, collections.abc.Mapping):
        return None
    return payload  # type: ignore


def parse_aliases(payload: Optional[RawErrorPayload]) -> Tuple[str, ...]:
    aliases = payload.get('error_alias') if payload else None
    if isinstance(aliases, str):
        return (aliases,)
    elif isinstance(aliases, collections.abc.Iterable):
        return tuple(str(alias) for alias in aliases)
    else:
        return ()


def summarize(payload: Optional[RawErrorPayload]) -> Optional[str]:
    """
    Render the human-readable explanation of a conflict, e.g. for 409s.

    It looks like ``"{the first non-field error}: {details as JSON}"``.
    """
    if not payload:
        return None
    errors = payload.get('non_field_errors')
    if isinstance(errors, str):
        first_error = errors
    elif isinstance(errors, collections.abc.Sequence) and errors:
        first_error = str(errors[0])
    else:
        first_error = ''
    details = json.dumps(payload.get('details'), ensure_ascii=False)
    return f"{first_error}: {details}"


def check_response(
        *,
        url: str,
        status: int,
        body: bytes,
) -> None:
    """
    Check for the non-2xx statuses, and raise with extended information.

    The unparsable bodies are tolerated: they only mean no error aliases,
    but the raw body is still reported in the error's message.
    """
    if status < 200 or status > 299:
        payload = parse_payload(body)
        cls = (
            APIUnauthorizedError if status == 401 else
            APIForbiddenError if status == 403 else
            APINotFoundError if status == 404 else
            APIConflictError if status == 409 else
            APIError
        )
        raise cls(
            url=url,
            status=status,
            body=body,
            error_aliases=parse_aliases(payload),
            summary=summarize(payload) if status == 409 else None,
        )
