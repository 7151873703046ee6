"""Error types for the Sequence client."""

from typing import Any, Optional

import httpx

REQUEST_ID_HEADER = "Chain-Request-ID"


class SequenceError(Exception):
    """Base exception for Sequence client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def is_retryable(self) -> bool:
        return False


class ConfigurationError(SequenceError, ValueError):
    """Raised when the client is called with missing or invalid options."""


class NetworkError(SequenceError):
    """Raised when a request fails below the HTTP layer."""

    def __init__(self, message: str):
        super().__init__(f"Network error: {message}")

    def is_retryable(self) -> bool:
        return True


class InvalidRequestIDError(NetworkError):
    """Raised when a response lacks the Chain-Request-ID header.

    The API sets this header on every response, so its absence means the
    request stopped at an intermediary such as a local proxy or a load
    balancer.
    """

    def __init__(self, response: Optional[httpx.Response] = None):
        self.response = response
        super().__init__(
            f"Response HTTP header field {REQUEST_ID_HEADER} is unset. "
            "There may be network issues. Please check your local network settings."
        )


class JSONError(SequenceError):
    """Raised when a response body cannot be decoded as JSON."""

    def __init__(self, request_id: str, response: Optional[httpx.Response] = None):
        self.request_id = request_id
        self.response = response
        super().__init__(f"Error decoding JSON response. Request-ID: {request_id}")


class APIError(SequenceError):
    """Raised for errors codified by the Sequence API.

    Attributes:
        seq_code: Sequence error code (e.g. "SEQ008").
        chain_message: Message reported by the server.
        detail: Optional additional context.
        retriable: Whether the server considers the request safe to retry.
        request_id: Value of the Chain-Request-ID response header.
        status: HTTP status code of the response.
    """

    def __init__(
        self,
        body: Optional[dict[str, Any]],
        response: Optional[httpx.Response] = None,
    ):
        body = body or {}
        self.data = body
        self.chain_message = body.get("message")
        self.detail = body.get("detail")
        self.retriable = bool(body.get("retriable", False))
        self.temporary = self.retriable
        self.seq_code = body.get("seq_code")
        self.response = response
        self.status = response.status_code if response is not None else None
        self.request_id = (
            response.headers.get(REQUEST_ID_HEADER) if response is not None else None
        )
        super().__init__(
            self.format_error_message(
                self.seq_code, self.chain_message, self.detail, self.request_id
            )
        )

    def is_retryable(self) -> bool:
        return self.retriable

    @staticmethod
    def format_error_message(
        seq_code: Optional[str],
        message: Optional[str],
        detail: Optional[str],
        request_id: Optional[str],
    ) -> str:
        tokens = []
        if isinstance(seq_code, str) and seq_code:
            tokens.append(f"Code: {seq_code}")
        tokens.append(f"Message: {message}")
        if isinstance(detail, str) and detail:
            tokens.append(f"Detail: {detail}")
        tokens.append(f"Request-ID: {request_id}")
        return " ".join(tokens)


class UnauthorizedError(APIError):
    """Raised when the server responds with HTTP 401."""


class TranslateError(SequenceError):
    """Raised when a response attribute cannot be converted to its model type."""

    def __init__(self, attrib_name: str, raw_value: Any, source: Exception):
        self.attrib_name = attrib_name
        self.raw_value = raw_value
        self.source = source
        super().__init__(f"Error translating attrib {attrib_name}: {source}")
