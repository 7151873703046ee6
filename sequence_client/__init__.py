"""Sequence Python Client - HTTP client for the Sequence ledger API."""

from .builder import TransactionBuilder
from .client import Client
from .config import ClientConfig
from .errors import (
    APIError,
    ConfigurationError,
    InvalidRequestIDError,
    JSONError,
    NetworkError,
    SequenceError,
    TranslateError,
    UnauthorizedError,
)
from .feed import AckPolicy, Feed, FeedItem
from .logging import configure_logging
from .models import (
    Account,
    Action,
    Flavor,
    Index,
    Key,
    Snapshot,
    Stats,
    TokenGroup,
    TokenSum,
    Transaction,
)
from .query import Page, Query, QueryParams
from .session import Session
from .version import __version__

__all__ = [
    "Client",
    "ClientConfig",
    "Session",
    "configure_logging",
    "SequenceError",
    "ConfigurationError",
    "NetworkError",
    "InvalidRequestIDError",
    "JSONError",
    "APIError",
    "UnauthorizedError",
    "TranslateError",
    "AckPolicy",
    "Feed",
    "FeedItem",
    "Page",
    "Query",
    "QueryParams",
    "TransactionBuilder",
    "Account",
    "Action",
    "Flavor",
    "Index",
    "Key",
    "Snapshot",
    "Stats",
    "TokenGroup",
    "TokenSum",
    "Transaction",
    "__version__",
]
