"""
Type definitions shared across the client, for both the runtime & mypy.

`logging.LoggerAdapter` is generic in the type stubs, but not subscriptable
at runtime in the older Pythons, so it is subscripted only for type checking.
"""
import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# Whatever the caller passes to the manager: a plain logger or an adapter on top of it.
Logger = Union[logging.Logger, LoggerAdapter]

# A decoder turns the parsed JSON (dicts, lists, scalars) into the caller's own type.
T = TypeVar('T')
Decoder = Callable[[Any], T]
