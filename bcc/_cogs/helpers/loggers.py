"""
Logging of the API exchanges, in plain text or JSON.

Every API exchange is logged with a reference to its request (the method
and the URL), which is carried in the log records' extras. The formatters
either prefix the messages with the request reference (for humans),
or put it into a dedicated field of the JSON records (for log parsers).

The library itself never configures the logging: it is the application's
responsibility. `configure` is only a shortcut for the typical setups, e.g.::

    bcc.configure(verbose=True, log_format=bcc.LogFormat.JSON)
"""
import copy
import enum
import logging
from typing import Any, Dict, MutableMapping, Optional, Tuple, Type, Union

import pythonjsonlogger.jsonlogger

from bcc._cogs.helpers import typedefs

REF_ATTR = 'bcc_ref'
""" The log records' attribute with the request reference (a dict). """

DEFAULT_JSON_REFKEY = 'request'
""" A key for request references in JSON logs, as seen by the log parsers. """

# From the highest threshold down; everything above the last one is fatal.
SEVERITIES = [
    (logging.DEBUG, 'debug'),
    (logging.INFO, 'info'),
    (logging.WARNING, 'warn'),
    (logging.ERROR, 'error'),
]


class LogFormat(enum.Enum):
    """ Log formats, as accepted by `configure`. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-16.16s %(levelname)-7.7s %(message)s'
    JSON = enum.auto()


def get_severity(levelno: int) -> str:
    for threshold, severity in SEVERITIES:
        if levelno <= threshold:
            return severity
    return 'fatal'


def get_request_ref(record: logging.LogRecord) -> Optional[Dict[str, str]]:
    return getattr(record, REF_ATTR, None)


class RequestFormatter(logging.Formatter):
    """ A marker of the client's own formatters (e.g. to find own handlers). """


class RequestTextFormatter(RequestFormatter, logging.Formatter):
    pass


class RequestJsonFormatter(RequestFormatter, pythonjsonlogger.jsonlogger.JsonFormatter):  # type: ignore
    """
    JSON records with the request reference & the severity as separate fields.

    The raw reference attribute is excluded from the extras, so that it is not
    duplicated under its internal name.
    """

    def __init__(self, *args: Any, refkey: Optional[str] = None, **kwargs: Any) -> None:
        reserved = set(kwargs.pop('reserved_attrs', pythonjsonlogger.jsonlogger.RESERVED_ATTRS))
        kwargs['reserved_attrs'] = reserved | {REF_ATTR}
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, **kwargs)
        self.refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: MutableMapping[str, object],
            record: logging.LogRecord,
            message_dict: MutableMapping[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        ref = get_request_ref(record)
        if ref is not None:
            log_record[self.refkey] = ref
        log_record.setdefault('severity', get_severity(record.levelno))


class RequestPrefixingMixin(RequestFormatter):
    def format(self, record: logging.LogRecord) -> str:
        ref = get_request_ref(record)
        if ref is not None:
            record = copy.copy(record)  # do not affect other handlers
            record.msg = f"[{ref.get('method', '')} {ref.get('url', '')}] {record.msg}"
        return super().format(record)


class RequestPrefixingTextFormatter(RequestPrefixingMixin, RequestTextFormatter):
    pass


class RequestPrefixingJsonFormatter(RequestPrefixingMixin, RequestJsonFormatter):
    pass


class RequestLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the request's identifiers for formatting.

    Constructed for every API exchange, on top of the manager's logger.
    """

    def __init__(self, logger: typedefs.Logger, *, method: str, url: str) -> None:
        super().__init__(logger, {REF_ATTR: {'method': method, 'url': url}})  # type: ignore

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> Tuple[str, MutableMapping[str, Any]]:
        # The stdlib adapter replaces the call's extras; keep them instead, with ours added.
        kwargs['extra'] = {**(self.extra or {}), **kwargs.get('extra', {})}
        return msg, kwargs


def configure(
        debug: Optional[bool] = None,
        verbose: Optional[bool] = None,
        quiet: Optional[bool] = None,
        log_format: Union[LogFormat, str] = LogFormat.FULL,
        log_prefix: Optional[bool] = False,
        log_refkey: Optional[str] = None,
) -> None:
    """
    Add a stderr handler to the root logger, and set the verbosity level.

    The noisy loggers of the underlying libraries are muted unless debugging.
    """
    level = logging.DEBUG if debug or verbose else logging.WARNING if quiet else logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(make_formatter(log_format=log_format, log_prefix=log_prefix, log_refkey=log_refkey))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)

    for name in ['asyncio', 'aiohttp']:
        library_logger = logging.getLogger(name)
        library_logger.propagate = bool(debug)
        if not debug:
            library_logger.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: Union[LogFormat, str] = LogFormat.FULL,
        log_prefix: Optional[bool] = False,
        log_refkey: Optional[str] = None,
) -> RequestFormatter:
    """
    Pick a formatter for the format. The prefixes are only for texts by default.
    """
    is_json = log_format is LogFormat.JSON
    prefixed = bool(log_prefix) if log_prefix is not None else not is_json

    cls: Type[RequestFormatter]
    if is_json:
        cls = RequestPrefixingJsonFormatter if prefixed else RequestJsonFormatter
        return cls(refkey=log_refkey)  # type: ignore

    if isinstance(log_format, LogFormat):
        fmt = log_format.value
    elif isinstance(log_format, str):
        fmt = log_format
    else:
        raise ValueError(f"Unsupported log format: {log_format!r}")
    cls = RequestPrefixingTextFormatter if prefixed else RequestTextFormatter
    return cls(fmt)
