"""
Resilient JSON-over-HTTPS transport.

Every logical call is one POST that may be attempted several times. All
attempts share one idempotency key so the server can deduplicate effects of a
request retried after an ambiguous failure.
"""

import itertools
import random
import ssl
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_delay

from .config import ClientConfig
from .errors import (
    APIError,
    JSONError,
    NetworkError,
    SequenceError,
    UnauthorizedError,
)
from .logging import get_logger
from .version import __version__

# Parameters to the exponential backoff function.
RETRY_BASE_DELAY_MS = 40
RETRY_MAX_DELAY_MS = 20_000

USER_AGENT = f"sequence-sdk-python/{__version__}"

logger = get_logger("transport")


def backoff_delay(attempt: int) -> float:
    """Seconds to sleep before ``attempt`` (1-based, only used when > 1).

    The delay is a uniformly random whole number of milliseconds in
    ``[1, min(BASE * 2**(attempt - 1), MAX)]``.
    """
    ceiling = min(RETRY_BASE_DELAY_MS * 2 ** (attempt - 1), RETRY_MAX_DELAY_MS)
    return random.randint(1, ceiling) / 1000.0


def is_retriable(error: BaseException) -> bool:
    return isinstance(error, SequenceError) and error.is_retryable()


def _wait_before_next_attempt(retry_state: RetryCallState) -> float:
    return backoff_delay(retry_state.attempt_number + 1)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Retrying request after attempt %d failed (%s); sleeping %.3fs",
        retry_state.attempt_number,
        error,
        sleep,
    )


@dataclass
class PostResult:
    """Outcome of a successful logical POST."""
    status: int
    parsed_body: Any
    response: httpx.Response


class HttpTransport:
    """One persistent connection to one host, with retry and backoff.

    Attempts are serialized by a lock: only one request/response pair is on
    the connection at a time. Backoff sleeps happen outside the lock.
    """

    def __init__(
        self,
        base_url: str,
        config: ClientConfig,
        *,
        http_transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Create a transport.

        Args:
            base_url: Scheme and host, e.g. "https://api.seq.com".
            config: Client configuration (credential, TLS, proxy, timeouts).
            http_transport: Optional httpx transport, mainly for tests.
            sleep: Function used for backoff sleeps.
        """
        self.base_url = base_url.rstrip("/")
        self.config = config
        self._http_transport = http_transport
        self._sleep = sleep
        self._lock = threading.Lock()
        self._client = self._build_client()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._client.close()

    def _verify(self) -> Union[bool, ssl.SSLContext]:
        if not self.config.tls_verify:
            return False
        if self.config.tls_ca_file:
            return ssl.create_default_context(cafile=self.config.tls_ca_file)
        return True

    def _build_client(self) -> httpx.Client:
        auth = None
        if self.config.user is not None and self.config.password is not None:
            auth = httpx.BasicAuth(self.config.user, self.config.password)
        return httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(
                self.config.read_timeout, connect=self.config.open_timeout
            ),
            verify=self._verify(),
            proxy=self.config.proxy_url,
            auth=auth,
            transport=self._http_transport,
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception(is_retriable),
            wait=_wait_before_next_attempt,
            stop=stop_after_delay(self.config.retry_timeout),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )

    def post(
        self,
        logical_id: str,
        path: str,
        body: Optional[Any] = None,
        *,
        check_response: Optional[Callable[[httpx.Response], None]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> PostResult:
        """POST ``body`` as JSON to ``path``, retrying retriable failures.

        Args:
            logical_id: Identifier shared by every attempt; the wire id of
                attempt ``n`` is ``"<logical_id>/<n>"``.
            path: Request path, joined to the base URL.
            body: JSON-serializable request body.
            check_response: Called with every received response before it is
                parsed; may raise to reject it.
            headers: Extra request headers.

        Returns:
            The status and parsed body of the successful attempt.

        Raises:
            NetworkError: If the connection failed on every attempt within
                the retry budget.
            APIError: If the server returned a non-2xx status that is not
                retriable, or the retry budget ran out.
            JSONError: If a response body was not valid JSON.
        """
        idempotency_key = str(uuid.uuid4())
        attempt_numbers = itertools.count(1)

        def attempt() -> PostResult:
            attempt_id = f"{logical_id}/{next(attempt_numbers)}"
            return self._send(
                attempt_id,
                idempotency_key,
                path,
                {} if body is None else body,
                check_response,
                headers,
            )

        return self._retrying()(attempt)

    def _headers(
        self, attempt_id: str, idempotency_key: str, extra: Optional[dict[str, str]]
    ) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Id": attempt_id,
            "Idempotency-Key": idempotency_key,
            "Name-Set": "snake",
            "User-Agent": USER_AGENT,
            "Credential": self.config.credential,
        }
        if extra:
            headers.update(extra)
        return headers

    def _send(
        self,
        attempt_id: str,
        idempotency_key: str,
        path: str,
        body: Any,
        check_response: Optional[Callable[[httpx.Response], None]],
        extra_headers: Optional[dict[str, str]],
    ) -> PostResult:
        headers = self._headers(attempt_id, idempotency_key, extra_headers)
        with self._lock:
            logger.debug(
                "POST %s%s id=%s",
                self.base_url,
                path,
                attempt_id,
                extra={"attempt_id": attempt_id},
            )
            try:
                response = self._client.post(path, json=body, headers=headers)
            except httpx.RequestError as e:
                # TransportError, and DecodingError for a body that does not
                # match its Content-Encoding.
                raise NetworkError(f"{type(e).__name__}: {e}") from e

            if check_response is not None:
                check_response(response)

            # API errors are parsed here so the retry policy can inspect them.
            status = response.status_code
            parsed_body = None
            if status != 204:
                try:
                    parsed_body = response.json()
                except ValueError as e:
                    raise JSONError(attempt_id, response) from e

            if status // 100 != 2:
                error_cls = UnauthorizedError if status == 401 else APIError
                raise error_cls(
                    parsed_body if isinstance(parsed_body, dict) else None,
                    response,
                )

            return PostResult(status=status, parsed_body=parsed_body, response=response)
