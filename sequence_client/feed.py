"""
Feeds: durable, server-side cursors over a filtered stream of actions or
transactions.

Delivery is at-least-once. Only ``ack`` advances the durable position, so
items consumed but not acknowledged are delivered again to the next consumer
of the same feed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, Union

from .errors import TranslateError
from .logging import get_logger
from .models import Action, Transaction

if TYPE_CHECKING:
    from .session import Session

logger = get_logger("feed")

FEED_TYPES = ("action", "transaction")

FeedEntry = Union[Action, Transaction]


class AckPolicy(str, Enum):
    """When ``consume`` acknowledges delivered items.

    MANUAL: only explicit ``Feed.ack()`` calls advance the feed.
    PER_BATCH: ``consume`` acknowledges each batch once every item of it has
        been handed to the caller, before requesting the next one.
    """
    MANUAL = "manual"
    PER_BATCH = "per_batch"


@dataclass
class FeedItem:
    """A delivered item and its position in the feed."""
    item: FeedEntry
    cursor: str


class Feed:
    """A named, durable cursor over actions or transactions.

    Each Feed owns a copy of the client's session and therefore an exclusive
    connection, so its long-polling calls do not hold up other requests. A
    single Feed must not be consumed from several threads at once.

    Attributes:
        id: Unique feed identifier.
        type: "action" or "transaction".
        filter: Filter selecting the items of the feed.
        filter_params: Values interpolated into the filter expression.
        cursor: Last acknowledged position.
        next_cursor: Position of the last delivered, unacknowledged item.

    Example:
        >>> feed = client.feeds.get(id="issuances")
        >>> for tx in feed.consume():
        ...     process(tx)
        ...     feed.ack()
    """

    STOP = object()

    def __init__(
        self,
        data: dict[str, Any],
        base_session: "Session",
        *,
        ack_policy: AckPolicy = AckPolicy.MANUAL,
    ):
        self.id: Optional[str] = data.get("id")
        self.type: Optional[str] = data.get("type")
        self.filter: Optional[str] = data.get("filter")
        self.filter_params: Optional[list[Any]] = data.get("filter_params")
        self.cursor: Optional[str] = data.get("cursor")
        self.next_cursor: Optional[str] = None
        self.ack_policy = AckPolicy(ack_policy)
        self._base_session = base_session
        self._consume_session: Optional["Session"] = None

    def __repr__(self) -> str:
        return (
            f"Feed(id={self.id!r}, type={self.type!r}, cursor={self.cursor!r}, "
            f"next_cursor={self.next_cursor!r})"
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        """Close the feed's dedicated connection."""
        if self._consume_session is not None:
            self._consume_session.close()
            self._consume_session = None

    @property
    def _session(self) -> "Session":
        # Opened on first use so listing feeds does not open a connection per feed.
        if self._consume_session is None:
            self._consume_session = self._base_session.dup()
        return self._consume_session

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.filter is not None:
            result["filter"] = self.filter
        if self.filter_params is not None:
            result["filter_params"] = self.filter_params
        if self.cursor is not None:
            result["cursor"] = self.cursor
        return result

    def translate(self, raw: dict[str, Any]) -> FeedEntry:
        if self.type == "action":
            return Action.from_dict(raw)
        return Transaction.from_dict(raw)

    # =========================================================================
    # Consumption
    # =========================================================================

    def next_batch(self) -> list[FeedItem]:
        """Wait for and return the next batch of items.

        The server holds the call open until at least one item is available
        or its own timeout elapses, in which case the batch is empty.
        """
        page = self._session.request("stream-feed-items", {"id": self.id}) or {}
        items = page.get("items") or []
        cursors = page.get("cursors") or []
        if len(items) != len(cursors):
            raise TranslateError(
                "cursors",
                cursors,
                ValueError(f"expected {len(items)} cursors, got {len(cursors)}"),
            )
        return [
            FeedItem(item=self.translate(raw), cursor=cursor)
            for raw, cursor in zip(items, cursors)
        ]

    def consume(self) -> Iterator[FeedEntry]:
        """Yield feed items indefinitely, waiting for new ones as needed.

        ``next_cursor`` is set to each item's position before the item is
        yielded, so calling ``ack()`` from the loop body acknowledges every
        item delivered so far. Stop iterating to stop consuming.
        """
        while True:
            batch = self.next_batch()
            for entry in batch:
                self.next_cursor = entry.cursor
                yield entry.item
            if batch and self.ack_policy is AckPolicy.PER_BATCH:
                self.ack()

    def consume_each(self, handler: Callable[[FeedEntry], Any]) -> None:
        """Call ``handler`` for each item until it returns ``Feed.STOP``."""
        for item in self.consume():
            if handler(item) is Feed.STOP:
                return

    def ack(self) -> None:
        """Save the feed's position so later consumers resume after it.

        Does nothing when no item has been delivered since the last ack.
        """
        if not self.next_cursor:
            return
        self._session.request(
            "ack-feed",
            {
                "id": self.id,
                "cursor": self.next_cursor,
                "previous_cursor": self.cursor,
            },
        )
        logger.debug("Feed %s acknowledged up to %s", self.id, self.next_cursor)
        self.cursor = self.next_cursor
        self.next_cursor = None
