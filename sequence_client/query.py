"""
Cursor-based pagination shared by every list and sum endpoint.

The server answers a list call with ``{items, cursor, last_page}``. The
cursor is opaque: the next page is always requested with ``{"cursor":
<previous cursor>}`` and nothing else, since the cursor already encodes the
original query.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, Optional, TypeVar

if TYPE_CHECKING:
    from .session import Session

T = TypeVar("T")

Fetch = Callable[[dict[str, Any]], dict[str, Any]]
Translate = Callable[[dict[str, Any]], T]


@dataclass(frozen=True)
class QueryParams:
    """Parameters of a list or sum query.

    Attributes:
        filter: Filter expression, passed to the server verbatim.
        filter_params: Values interpolated into the filter's ``$n`` slots.
        group_by: Fields to group sums by.
        page_size: Number of items per page.
        cursor: Opaque cursor from a previous page. When set, the server
            ignores every other field.
    """
    filter: Optional[str] = None
    filter_params: Optional[list[Any]] = None
    group_by: Optional[list[str]] = None
    page_size: Optional[int] = None
    cursor: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a request body, omitting unset fields."""
        params: dict[str, Any] = {}
        if self.filter is not None:
            params["filter"] = self.filter
        if self.filter_params is not None:
            params["filter_params"] = list(self.filter_params)
        if self.group_by is not None:
            params["group_by"] = list(self.group_by)
        if self.page_size is not None:
            params["page_size"] = self.page_size
        if self.cursor is not None:
            params["cursor"] = self.cursor
        return params


@dataclass
class Page(Generic[T]):
    """One page of results.

    Attributes:
        items: Translated items, in server order.
        cursor: Opaque token for the next page.
        last_page: Whether the server has no further pages.
    """
    items: list[T] = field(default_factory=list)
    cursor: Optional[str] = None
    last_page: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any], translate: Translate) -> "Page[T]":
        data = data or {}
        return cls(
            items=[translate(item) for item in data.get("items") or []],
            cursor=data.get("cursor"),
            last_page=bool(data.get("last_page", False)),
        )

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class PageQuery(Generic[T]):
    """Lazy, restartable sequence of pages.

    Each iteration starts again from the original parameters and issues
    exactly one fetch per page.
    """

    def __init__(self, params: dict[str, Any], fetch: Fetch, translate: Translate):
        self.params = dict(params)
        self.fetch = fetch
        self.translate = translate

    def __iter__(self) -> Iterator[Page[T]]:
        params = dict(self.params)
        while True:
            page: Page[T] = Page.from_dict(self.fetch(params), self.translate)
            params = {"cursor": page.cursor}
            yield page

            if page.last_page:
                return
            # A page with no items but last_page=false would otherwise loop
            # forever.
            if not page.items:
                return

    def page(self) -> Page[T]:
        """Fetch only the first page."""
        return Page.from_dict(self.fetch(dict(self.params)), self.translate)


class Query(Generic[T]):
    """A list or sum query against one ledger endpoint.

    Iterating a Query yields individual items, fetching pages as needed.

    Example:
        >>> for account in client.accounts.list(filter="tags.type=$1",
        ...                                     filter_params=["checking"]):
        ...     print(account.id)
    """

    def __init__(
        self,
        session: "Session",
        endpoint: str,
        translate: Translate,
        params: Optional[QueryParams] = None,
    ):
        self.session = session
        self.endpoint = endpoint
        self.translate = translate
        self.params = params or QueryParams()

    def fetch(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.session.request(self.endpoint, params)

    def pages(self) -> PageQuery[T]:
        return PageQuery(self.params.to_dict(), self.fetch, self.translate)

    def page(self, size: Optional[int] = None, cursor: Optional[str] = None) -> Page[T]:
        """Fetch a single page.

        Args:
            size: Number of items on the page.
            cursor: Cursor of a previous page. Replaces every other query
                field for this call.
        """
        if cursor:
            params = {"cursor": cursor}
        else:
            query = self.params
            if size:
                query = dataclasses.replace(query, page_size=size)
            params = query.to_dict()
        return Page.from_dict(self.fetch(params), self.translate)

    def __iter__(self) -> Iterator[T]:
        for page in self.pages():
            yield from page.items
