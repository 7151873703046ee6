"""
Authenticated, ledger-scoped request session.

A Session routes every call to ``/<team>/<ledger>/<path>`` on the address the
``hello`` endpoint hands out, and keeps that routing fresh in the background.
"""

import dataclasses
import re
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from .config import ClientConfig
from .errors import REQUEST_ID_HEADER, InvalidRequestIDError, SequenceError
from .hello import Hello
from .logging import get_logger
from .transport import HttpTransport, PostResult

logger = get_logger("session")


@dataclass(frozen=True)
class Routing:
    """Immutable snapshot of the server-derived routing material.

    Attributes:
        team_name: Team the ledger belongs to; None until discovered.
        addr: Host serving the ledger API.
        discharge: Discharge token sent alongside macaroon credentials.
        deadline: ``time.monotonic()`` value after which the snapshot is stale.
    """
    team_name: Optional[str]
    addr: str
    discharge: Optional[str] = None
    deadline: float = 0.0


def require_request_id(response: httpx.Response) -> None:
    """Reject responses that did not come from the Sequence API itself."""
    request_id = response.headers.get(REQUEST_ID_HEADER)
    if not request_id:
        raise InvalidRequestIDError(response)


class Session:
    """Request session bound to one ledger.

    Example:
        >>> session = Session(ClientConfig(ledger_name="test", credential="..."))
        >>> session.request("stats")
        {'flavor_count': 0, 'account_count': 0, 'tx_count': 0, 'ledger_type': 'dev'}
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        routing: Optional[Routing] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Create a session.

        Args:
            config: Client configuration.
            routing: Routing snapshot to start from. By default the session
                starts with ``config.team_name`` and ``config.addr`` and a
                deadline that is already due.
            http_transport: Optional httpx transport shared by every
                connection this session opens, mainly for tests.
            sleep: Function used for retry backoff sleeps.
            clock: Monotonic clock used for the refresh deadline.
        """
        self.config = config
        self._http_transport = http_transport
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._refresh_thread: Optional[threading.Thread] = None
        # Connections to previous addresses; requests may still be using them.
        self._retired: list[HttpTransport] = []

        if routing is None:
            routing = Routing(
                team_name=config.team_name,
                addr=config.addr,
                deadline=clock(),
            )
        self._routing = routing
        self._discovery = self._new_transport(config.addr)
        self._hello = Hello(self._discovery)
        self._api = self._new_transport(routing.addr)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        """Close the session's connections."""
        self._discovery.close()
        with self._lock:
            transports = [*self._retired, self._api]
            self._retired = []
        for transport in transports:
            transport.close()

    def dup(self) -> "Session":
        """Return an independent session with its own connection."""
        return Session(
            self.config,
            routing=self.routing,
            http_transport=self._http_transport,
            sleep=self._sleep,
            clock=self._clock,
        )

    @property
    def routing(self) -> Routing:
        with self._lock:
            return self._routing

    @property
    def api(self) -> HttpTransport:
        with self._lock:
            return self._api

    def _new_transport(self, addr: str) -> HttpTransport:
        return HttpTransport(
            f"https://{addr}",
            self.config,
            http_transport=self._http_transport,
            sleep=self._sleep,
        )

    # =========================================================================
    # Requests
    # =========================================================================

    def request(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        """Send a request to the ledger and return the parsed response body."""
        return self.request_full(None, path, body).parsed_body

    def request_full(
        self,
        id: Optional[str],
        path: str,
        body: Optional[dict[str, Any]] = None,
    ) -> PostResult:
        """Send a request to the ledger and return the full result.

        Args:
            id: Logical request id; generated when None.
            path: Ledger endpoint, e.g. "list-accounts".
            body: JSON request body.
        """
        routing, api = self._routing_for_request()
        headers = {"Discharge": routing.discharge} if routing.discharge else None
        return api.post(
            id or secrets.token_hex(10),
            self.ledger_url(routing, path),
            body or {},
            check_response=require_request_id,
            headers=headers,
        )

    def ledger_url(self, routing: Routing, path: str) -> str:
        url = f"/{routing.team_name}/{self.config.ledger_name}/{path}"
        return re.sub(r"/{2,}", "/", url)

    # =========================================================================
    # Credential refresh
    # =========================================================================

    def _routing_for_request(self) -> tuple[Routing, HttpTransport]:
        now = self._clock()
        with self._lock:
            routing = self._routing
            unbound = routing.team_name is None
            if not unbound and now >= routing.deadline:
                # Push the deadline out so concurrent requests do not all
                # start their own refresh.
                routing = dataclasses.replace(
                    routing, deadline=now + self.config.retry_timeout
                )
                self._routing = routing
                self._refresh_thread = threading.Thread(
                    target=self._refresh_in_background,
                    name="sequence-credential-refresh",
                    daemon=True,
                )
                self._refresh_thread.start()
            api = self._api

        if not unbound:
            return routing, api

        self.refresh()
        with self._lock:
            return self._routing, self._api

    def refresh(self) -> Routing:
        """Fetch fresh routing from the ``hello`` endpoint and swap it in.

        The ledger connection is replaced only when the address changed.

        Raises:
            SequenceError: If the ``hello`` call failed. The previous routing
                is left in place.
        """
        result = self._hello.call()
        now = self._clock()
        with self._lock:
            if result.addr != self._routing.addr:
                logger.info(
                    "Ledger address changed from %s to %s",
                    self._routing.addr,
                    result.addr,
                )
                self._retired.append(self._api)
                self._api = self._new_transport(result.addr)
            self._routing = Routing(
                team_name=result.team_name,
                addr=result.addr,
                discharge=result.discharge,
                deadline=now + result.addr_ttl_seconds,
            )
            return self._routing

    def _refresh_in_background(self) -> None:
        try:
            self.refresh()
        except SequenceError as e:
            logger.warning("Credential refresh failed, keeping previous routing: %s", e)
