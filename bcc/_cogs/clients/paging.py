"""
Fetching of the paginated lists as a whole.

The list endpoints of the control plane return the objects page by page,
with the paging information in every page's envelope::

    GET v1/disk?vdc=...&page=1  -->  {"total": 25, "limit": 10, "items": [...10...]}
    GET v1/disk?vdc=...&page=2  -->  {"total": 25, "limit": 10, "items": [...10...]}
    GET v1/disk?vdc=...&page=3  -->  {"total": 25, "limit": 10, "items": [...5...]}

The pages are fetched sequentially until all the declared items are collected.
The order of the items is preserved both within the pages and across them.

There are no retries here besides those of every individual GET request
(i.e. while the listed objects are locked). Any failure on any page fails
the whole fetch: the partially collected items are never returned.
"""
import collections.abc
import dataclasses
import json
from typing import TYPE_CHECKING, Any, Generic, List, Mapping, Optional, TypeVar

from typing_extensions import TypedDict

from bcc._cogs.clients import errors
from bcc._cogs.helpers import arguments, typedefs

if TYPE_CHECKING:
    from bcc._cogs.clients import api

_T = TypeVar('_T')

PAGE_ARG = 'page'


class RawPage(TypedDict):
    total: int
    limit: int
    items: List[Any]


@dataclasses.dataclass
class PageCursor(Generic[_T]):
    """ The state of a multi-page fetch: what is collected so far, and from where. """
    items: List[_T] = dataclasses.field(default_factory=list)
    page: int = 1
    total: Optional[int] = None
    limit: Optional[int] = None

    @property
    def done(self) -> bool:
        return self.total is not None and len(self.items) == self.total

    @property
    def expected(self) -> int:
        """ How many items should be on the current page (as for the server's paging). """
        if self.total is None or self.limit is None:
            raise RuntimeError("The page size is unknown before the page is fetched.")
        return max(0, min(self.total - self.limit * (self.page - 1), self.limit))


def decode_page(data: Any) -> RawPage:
    if not isinstance(data, collections.abc.Mapping):
        raise TypeError(f"A page must be an object, got {type(data).__name__}.")
    total, limit, items = data['total'], data['limit'], data['items']
    if not isinstance(total, int) or not isinstance(limit, int):
        raise TypeError(f"The paging info must be integers, got total={total!r}, limit={limit!r}.")
    if not isinstance(items, list):
        raise TypeError(f"The items must be a list, got {type(items).__name__}.")
    return RawPage(total=total, limit=limit, items=items)


async def fetch_all(
        manager: "api.Manager",
        path: str,
        args: Optional[Mapping[str, str]] = None,
        *,
        decode: typedefs.Decoder[_T],
) -> List[_T]:
    cursor: PageCursor[_T] = PageCursor()
    while True:
        page_args = arguments.Arguments(args or {}).merge({PAGE_ARG: str(cursor.page)})
        raw = await manager.get(path, page_args, decode=decode_page)
        if raw is None:
            raise errors.APIDecodeError(f"Empty page {cursor.page} on {path}:",
                                        url=manager.url_for(path), payload=b'')

        cursor.total, cursor.limit = raw['total'], raw['limit']
        expected = cursor.expected
        if len(raw['items']) != expected:
            manager.log.debug(f"Page {cursor.page} of {path} has {len(raw['items'])} items "
                              f"instead of {expected}.")

        # Decode into a separate buffer, so that a failure leaves nothing half-added.
        try:
            buffer = [decode(item) for item in raw['items']]
        except errors.DECODING_ERRORS as e:
            payload = json.dumps(raw['items']).encode('utf-8')
            raise errors.APIDecodeError(f"JSON items decode failed on {path}, page {cursor.page}:",
                                        url=manager.url_for(path), payload=payload) from e
        cursor.items.extend(buffer)

        if cursor.done:
            return cursor.items
        elif len(cursor.items) > cursor.total:
            raise errors.APIPaginationError(f"Got {len(cursor.items)} items on {path} "
                                            f"while only {cursor.total} are declared.")
        elif not buffer:
            raise errors.APIPaginationError(f"Page {cursor.page} of {path} is empty "
                                            f"while {cursor.total - len(cursor.items)} items are missing.")

        manager.log.debug(f"Got {len(cursor.items)} of {cursor.total} items of {path}; fetching more.")
        cursor.page += 1
