"""HTTP client for the Sequence ledger API."""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import httpx

from .builder import TransactionBuilder
from .config import ClientConfig
from .errors import ConfigurationError
from .feed import FEED_TYPES, AckPolicy, Feed
from .logging import configure_logging, get_logger
from .models import Account, Action, Flavor, Index, Key, Stats, TokenGroup, TokenSum, Transaction
from .query import Query, QueryParams
from .session import Session
from .validations import compact, is_blank, validate_required

logger = get_logger("client")


class Client:
    """Entry point for all interaction with a Sequence ledger.

    Example:
        >>> ledger = Client(ledger_name="test", credential="...")
        >>> key = ledger.keys.create()
        >>> usd = ledger.flavors.create(id="usd", key_ids=[key.id])
        >>> alice = ledger.accounts.create(id="alice", key_ids=[key.id])
        >>> builder = TransactionBuilder().issue(
        ...     amount=100, flavor_id=usd.id, destination_account_id=alice.id
        ... )
        >>> tx = ledger.transactions.transact(builder)
    """

    def __init__(
        self,
        ledger_name: Optional[str] = None,
        credential: Optional[str] = None,
        *,
        config: Optional[ClientConfig] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        log: bool = False,
        **options: Any,
    ):
        """Create a new Sequence client.

        Args:
            ledger_name: Ledger name.
            credential: API credential secret.
            config: Complete configuration; when given, ``ledger_name``,
                ``credential`` and ``options`` must be omitted.
            http_transport: Optional httpx transport, mainly for tests.
            sleep: Function used for retry backoff sleeps.
            log: Install a stdout log handler at ``config.log_level``.
            **options: Any other ClientConfig field, e.g. ``addr`` or
                ``read_timeout``. Unknown names raise ConfigurationError.
        """
        if config is None:
            config = ClientConfig.from_options(
                ledger_name=ledger_name, credential=credential, **options
            )
        elif ledger_name is not None or credential is not None or options:
            raise ConfigurationError("pass either config or individual options, not both")

        self.config = config
        if log:
            configure_logging(config.log_level)
        logger.debug(
            "Client for ledger %s with credential %s",
            config.ledger_name,
            config.masked_credential(),
        )
        self.session = Session(config, http_transport=http_transport, sleep=sleep)

        self.accounts = Accounts(self)
        self.actions = Actions(self)
        self.dev_utils = DevUtils(self)
        self.feeds = Feeds(self)
        self.flavors = Flavors(self)
        self.indexes = Indexes(self)
        self.keys = Keys(self)
        self.stats = StatsModule(self)
        self.tokens = Tokens(self)
        self.transactions = Transactions(self)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Client":
        """Create a client from SEQCRED, LEDGER_NAME and related variables."""
        return cls(config=ClientConfig.from_env(**overrides))

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        """Close the client's connections."""
        self.session.close()


class ClientModule:
    """Base class for the resource namespaces of a Client."""

    def __init__(self, client: Client):
        self.client = client

    @property
    def session(self) -> Session:
        return self.client.session

    def _query(self, endpoint: str, translate, **params: Any) -> Query:
        return Query(self.session, endpoint, translate, QueryParams(**params))


def _require_id(id: Optional[str]) -> None:
    if is_blank(id):
        raise ConfigurationError("'id' cannot be blank")


# =============================================================================
# Accounts
# =============================================================================


class Accounts(ClientModule):
    def create(
        self,
        *,
        key_ids: list[str],
        id: Optional[str] = None,
        quorum: Optional[int] = None,
        tags: Optional[dict[str, Any]] = None,
    ) -> Account:
        """Create a new account in the ledger.

        Args:
            key_ids: IDs of the keys that control the account.
            id: Unique identifier. Auto-generated if not specified.
            quorum: Number of keys required to sign transactions that
                transfer or retire tokens from the account. Defaults to the
                number of keys provided.
            tags: User-specified key-value data describing the account.
        """
        if not key_ids:
            raise ConfigurationError("'key_ids' cannot be empty")
        body = compact({"id": id, "key_ids": key_ids, "quorum": quorum, "tags": tags})
        return Account.from_dict(self.session.request("create-account", body))

    def update_tags(self, *, id: str, tags: Optional[dict[str, Any]] = None) -> None:
        """Replace an account's tags."""
        _require_id(id)
        self.session.request("update-account-tags", {"id": id, "tags": tags})

    def list(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
    ) -> Query[Account]:
        """Filter accounts."""
        return self._query(
            "list-accounts", Account.from_dict, filter=filter, filter_params=filter_params
        )


# =============================================================================
# Actions
# =============================================================================


class Actions(ClientModule):
    def list(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
    ) -> Query[Action]:
        """List actions matching a filter.

        Example:
            >>> for action in ledger.actions.list(
            ...     filter="timestamp > $1", filter_params=["1985-10-26T01:21:00Z"]
            ... ):
            ...     print(action.timestamp, action.amount)
        """
        return self._query(
            "list-actions", Action.from_dict, filter=filter, filter_params=filter_params
        )

    def sum(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
        group_by: Optional[list[str]] = None,
    ) -> Query[Action]:
        """Sum action amounts, grouped by the ``group_by`` fields."""
        return self._query(
            "sum-actions",
            Action.from_dict,
            filter=filter,
            filter_params=filter_params,
            group_by=group_by,
        )

    def update_tags(self, *, id: str, tags: Optional[dict[str, Any]] = None) -> None:
        """Replace an action's tags."""
        _require_id(id)
        self.session.request("update-action-tags", {"id": id, "tags": tags})


# =============================================================================
# Flavors
# =============================================================================


class Flavors(ClientModule):
    def create(
        self,
        *,
        key_ids: list[str],
        id: Optional[str] = None,
        quorum: Optional[int] = None,
        tags: Optional[dict[str, Any]] = None,
    ) -> Flavor:
        """Create a new flavor in the ledger.

        Args:
            key_ids: Keys used to sign transactions that issue the flavor.
            id: Unique identifier. Auto-generated if not specified.
            quorum: Number of keys required to issue. Defaults to the number
                of keys provided.
            tags: User-specified key-value data describing the flavor.
        """
        if not key_ids:
            raise ConfigurationError("'key_ids' cannot be empty")
        body = compact({"id": id, "key_ids": key_ids, "quorum": quorum, "tags": tags})
        return Flavor.from_dict(self.session.request("create-flavor", body))

    def update_tags(self, *, id: str, tags: Optional[dict[str, Any]] = None) -> None:
        """Replace a flavor's tags."""
        _require_id(id)
        self.session.request("update-flavor-tags", {"id": id, "tags": tags})

    def list(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
    ) -> Query[Flavor]:
        return self._query(
            "list-flavors", Flavor.from_dict, filter=filter, filter_params=filter_params
        )


# =============================================================================
# Keys
# =============================================================================


class Keys(ClientModule):
    def create(self, *, id: Optional[str] = None) -> Key:
        """Create a key. The server picks the id when none is given."""
        return Key.from_dict(self.session.request("create-key", compact({"id": id})))

    def list(self) -> Query[Key]:
        return self._query("list-keys", Key.from_dict)


# =============================================================================
# Tokens
# =============================================================================


class Tokens(ClientModule):
    def list(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
    ) -> Query[TokenGroup]:
        """List groups of tokens matching a filter."""
        return self._query(
            "list-tokens", TokenGroup.from_dict, filter=filter, filter_params=filter_params
        )

    def sum(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
        group_by: Optional[list[str]] = None,
    ) -> Query[TokenSum]:
        """Sum token amounts, grouped by the ``group_by`` fields."""
        return self._query(
            "sum-tokens",
            TokenSum.from_dict,
            filter=filter,
            filter_params=filter_params,
            group_by=group_by,
        )


# =============================================================================
# Transactions
# =============================================================================


class Transactions(ClientModule):
    def transact(self, builder: Optional[TransactionBuilder] = None) -> Transaction:
        """Build, sign, and submit a transaction.

        Args:
            builder: Builder holding the transaction's actions.
        """
        if builder is None or not builder.actions:
            raise ConfigurationError("a transaction needs at least one action")
        return Transaction.from_dict(self.session.request("transact", builder.to_dict()))

    def list(
        self,
        *,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
    ) -> Query[Transaction]:
        return self._query(
            "list-transactions",
            Transaction.from_dict,
            filter=filter,
            filter_params=filter_params,
        )


# =============================================================================
# Indexes
# =============================================================================


class Indexes(ClientModule):
    def create(
        self,
        *,
        type: str,
        filter: str,
        id: Optional[str] = None,
        group_by: Optional[list[str]] = None,
    ) -> Index:
        """Create an index precomputing queries with this filter and group_by.

        Args:
            type: "action" or "token".
            filter: Filter of the precomputed query.
            id: Unique identifier. Auto-generated if not specified.
            group_by: Fields to group by.
        """
        validate_required({"type": type}, "type")
        validate_required({"filter": filter}, "filter")
        body = compact({"id": id, "type": type, "filter": filter, "group_by": group_by or []})
        return Index.from_dict(self.session.request("create-index", body))

    def delete(self, *, id: str) -> None:
        _require_id(id)
        self.session.request("delete-index", {"id": id})

    def list(self) -> Query[Index]:
        return self._query("list-indexes", Index.from_dict)


# =============================================================================
# Feeds
# =============================================================================


class Feeds(ClientModule):
    def create(
        self,
        *,
        type: str,
        id: Optional[str] = None,
        filter: Optional[str] = None,
        filter_params: Optional[list[Any]] = None,
        ack_policy: AckPolicy = AckPolicy.MANUAL,
    ) -> Feed:
        """Create a feed.

        Args:
            type: "action" or "transaction".
            id: Unique identifier. Auto-generated if not specified.
            filter: Filter selecting the items of the feed.
            filter_params: Values interpolated into the filter expression.
            ack_policy: Acknowledgment policy of the returned Feed handle.

        Raises:
            ConfigurationError: If ``type`` is missing or invalid.
        """
        validate_required({"type": type}, "type")
        if type not in FEED_TYPES:
            raise ConfigurationError("'type' must equal action or transaction")
        body = compact({
            "id": id,
            "type": type,
            "filter": filter,
            "filter_params": filter_params,
        })
        raw = self.session.request("create-feed", body)
        return Feed(raw, self.session, ack_policy=ack_policy)

    def get(self, *, id: str, ack_policy: AckPolicy = AckPolicy.MANUAL) -> Feed:
        """Get a feed by id."""
        _require_id(id)
        raw = self.session.request("get-feed", {"id": id})
        return Feed(raw, self.session, ack_policy=ack_policy)

    def delete(self, *, id: str) -> None:
        _require_id(id)
        self.session.request("delete-feed", {"id": id})

    def list(self) -> Query[Feed]:
        return self._query("list-feeds", lambda raw: Feed(raw, self.session))


# =============================================================================
# Stats and development utilities
# =============================================================================


class StatsModule(ClientModule):
    def get(self) -> Stats:
        """Get summary information about the ledger."""
        return Stats.from_dict(self.session.request("stats"))


class DevUtils(ClientModule):
    def reset(self) -> None:
        """Delete all data in the ledger. Development ledgers only."""
        self.session.request("/reset")
