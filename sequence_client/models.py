"""Data models for the Sequence client."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

from .errors import TranslateError

_FRACTION = re.compile(r"\.(\d+)")


def parse_time(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp.

    Fractions finer than microseconds are truncated.
    """
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    return datetime.fromisoformat(value)


def format_time(value: datetime) -> str:
    """Format a datetime as RFC 3339 with a numeric offset."""
    return value.isoformat()


def _translate(name: str, raw: Any, fn: Callable[[Any], Any]) -> Any:
    if raw is None:
        return None
    try:
        return fn(raw)
    except (TypeError, ValueError, KeyError, AttributeError) as e:
        raise TranslateError(name, raw, e) from e


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# Accounts, Flavors, Keys
# =============================================================================


@dataclass
class Account:
    """A container that holds tokens in a ledger.

    Attributes:
        id: Unique identifier of the account.
        key_ids: IDs of the keys that control the account.
        quorum: Number of keys required to sign transactions that transfer
            or retire tokens from the account.
        tags: User-specified key-value data describing the account.
    """
    id: Optional[str] = None
    key_ids: Optional[list[str]] = None
    quorum: Optional[int] = None
    tags: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Account":
        return cls(
            id=data.get("id"),
            key_ids=data.get("key_ids"),
            quorum=data.get("quorum"),
            tags=data.get("tags"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "key_ids": self.key_ids,
            "quorum": self.quorum,
            "tags": self.tags,
        })


@dataclass
class Flavor:
    """A taxonomy used to differentiate types of tokens in a ledger."""
    id: Optional[str] = None
    key_ids: Optional[list[str]] = None
    quorum: Optional[int] = None
    tags: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Flavor":
        return cls(
            id=data.get("id"),
            key_ids=data.get("key_ids"),
            quorum=data.get("quorum"),
            tags=data.get("tags"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "key_ids": self.key_ids,
            "quorum": self.quorum,
            "tags": self.tags,
        })


@dataclass
class Key:
    """A key used to sign transactions."""
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Key":
        return cls(id=data.get("id"))

    def to_dict(self) -> dict[str, Any]:
        return _compact({"id": self.id})


# =============================================================================
# Actions and Transactions
# =============================================================================


class Snapshot(Mapping):
    """Tags of the objects involved in an action, as of the action's creation."""

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self._data = dict(data or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Snapshot({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @property
    def action_tags(self) -> Optional[dict[str, Any]]:
        return self._data.get("action_tags")

    @property
    def destination_account_tags(self) -> Optional[dict[str, Any]]:
        return self._data.get("destination_account_tags")

    @property
    def flavor_tags(self) -> Optional[dict[str, Any]]:
        return self._data.get("flavor_tags")

    @property
    def source_account_tags(self) -> Optional[dict[str, Any]]:
        return self._data.get("source_account_tags")

    @property
    def token_tags(self) -> Optional[dict[str, Any]]:
        return self._data.get("token_tags")

    @property
    def transaction_tags(self) -> Optional[dict[str, Any]]:
        return self._data.get("transaction_tags")


@dataclass
class Action:
    """One issue, transfer, or retire step of a transaction.

    Results of ``actions.sum`` are also Actions: ``amount`` is then the sum
    over the matching actions and the other fields hold the group-by values.

    Attributes:
        amount: Amount of the action (or the summed amount).
        type: "issue", "transfer", or "retire".
        id: Unique action ID.
        transaction_id: ID of the transaction the action appears in.
        timestamp: Time of the action.
        flavor_id: ID of the flavor moved by the action.
        snapshot: Tags of the related objects at the time of the action.
        source_account_id: Account tokens were taken from.
        destination_account_id: Account tokens were moved to.
        tags: User-specified key-value data embedded in the action.
    """
    amount: Optional[int] = None
    type: Optional[str] = None
    id: Optional[str] = None
    transaction_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    flavor_id: Optional[str] = None
    snapshot: Optional[Snapshot] = None
    source_account_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    tags: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Action":
        return cls(
            amount=data.get("amount"),
            type=data.get("type"),
            id=data.get("id"),
            transaction_id=data.get("transaction_id"),
            timestamp=_translate("timestamp", data.get("timestamp"), parse_time),
            flavor_id=data.get("flavor_id"),
            snapshot=_translate("snapshot", data.get("snapshot"), Snapshot),
            source_account_id=data.get("source_account_id"),
            destination_account_id=data.get("destination_account_id"),
            tags=data.get("tags"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "amount": self.amount,
            "type": self.type,
            "id": self.id,
            "transaction_id": self.transaction_id,
            "timestamp": format_time(self.timestamp) if self.timestamp else None,
            "flavor_id": self.flavor_id,
            "snapshot": self.snapshot.to_dict() if self.snapshot is not None else None,
            "source_account_id": self.source_account_id,
            "destination_account_id": self.destination_account_id,
            "tags": self.tags,
        })


@dataclass
class Transaction:
    """An atomic update to the state of the ledger."""
    id: Optional[str] = None
    timestamp: Optional[datetime] = None
    sequence_number: Optional[int] = None
    actions: list[Action] = field(default_factory=list)
    tags: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        actions = _translate(
            "actions",
            data.get("actions"),
            lambda raw: [Action.from_dict(a) for a in raw],
        )
        return cls(
            id=data.get("id"),
            timestamp=_translate("timestamp", data.get("timestamp"), parse_time),
            sequence_number=data.get("sequence_number"),
            actions=actions or [],
            tags=data.get("tags"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "timestamp": format_time(self.timestamp) if self.timestamp else None,
            "sequence_number": self.sequence_number,
            "actions": [a.to_dict() for a in self.actions],
            "tags": self.tags,
        })


# =============================================================================
# Tokens
# =============================================================================


@dataclass
class TokenGroup:
    """A group of tokens with the same flavor, account, and tags."""
    amount: Optional[int] = None
    flavor_id: Optional[str] = None
    flavor_tags: Optional[dict[str, Any]] = None
    account_id: Optional[str] = None
    account_tags: Optional[dict[str, Any]] = None
    tags: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenGroup":
        return cls(
            amount=data.get("amount"),
            flavor_id=data.get("flavor_id"),
            flavor_tags=data.get("flavor_tags"),
            account_id=data.get("account_id"),
            account_tags=data.get("account_tags"),
            tags=data.get("tags"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "amount": self.amount,
            "flavor_id": self.flavor_id,
            "flavor_tags": self.flavor_tags,
            "account_id": self.account_id,
            "account_tags": self.account_tags,
            "tags": self.tags,
        })


@dataclass
class TokenSum(TokenGroup):
    """Summed token amounts. Fields other than ``amount`` are only set when
    they appear in the query's ``group_by``."""


# =============================================================================
# Indexes and Stats
# =============================================================================


@dataclass
class Index:
    """A precomputed query over actions or tokens.

    Attributes:
        id: Unique identifier of the index.
        type: "action" or "token".
        filter: Filter selecting the indexed items.
        group_by: Fields to group by.
    """
    id: Optional[str] = None
    type: Optional[str] = None
    filter: Optional[str] = None
    group_by: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Index":
        return cls(
            id=data.get("id"),
            type=data.get("type"),
            filter=data.get("filter"),
            group_by=data.get("group_by"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "id": self.id,
            "type": self.type,
            "filter": self.filter,
            "group_by": self.group_by,
        })


@dataclass
class Stats:
    """Summary information about a ledger."""
    flavor_count: Optional[int] = None
    account_count: Optional[int] = None
    tx_count: Optional[int] = None
    ledger_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Stats":
        return cls(
            flavor_count=data.get("flavor_count"),
            account_count=data.get("account_count"),
            tx_count=data.get("tx_count"),
            ledger_type=data.get("ledger_type"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "flavor_count": self.flavor_count,
            "account_count": self.account_count,
            "tx_count": self.tx_count,
            "ledger_type": self.ledger_type,
        })
