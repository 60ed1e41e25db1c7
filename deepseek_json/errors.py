"""Closed error taxonomy for DeepSeek API calls and the outcome classifier."""

from enum import Enum

import openai

# Status codes the server uses to say "come back later".
BUSY_STATUSES = frozenset({429, 502, 503, 504})


class ErrorKind(str, Enum):
    SERVER_BUSY = "server_busy"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    CONFIG_ERROR = "config_error"


TRANSIENT_KINDS = frozenset({ErrorKind.SERVER_BUSY, ErrorKind.NETWORK_ERROR})


class DeepSeekError(Exception):
    """A failed API operation, tagged with exactly one ErrorKind.

    Structured detail travels on the instance (``status``/``body`` for API
    errors, ``seconds`` for timeouts, ``detail`` for the rest) so callers can
    pick user-facing messaging without re-deriving the kind.
    """

    def __init__(
        self,
        kind: ErrorKind,
        detail: str = "",
        *,
        status: int | None = None,
        body: str | None = None,
        seconds: int | None = None,
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.status = status
        self.body = body
        self.seconds = seconds
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind is ErrorKind.SERVER_BUSY:
            return "DeepSeek servers are currently busy. Please try again in a few moments."
        if self.kind is ErrorKind.NETWORK_ERROR:
            return f"Network connection failed: {self.detail}"
        if self.kind is ErrorKind.TIMEOUT:
            return f"Request timed out after {self.seconds} seconds"
        if self.kind is ErrorKind.API_ERROR:
            return f"API error ({self.status}): {self.body}"
        if self.kind is ErrorKind.PARSE_ERROR:
            return f"Failed to parse response: {self.detail}"
        return f"Configuration error: {self.detail}"

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    @classmethod
    def server_busy(cls) -> "DeepSeekError":
        return cls(ErrorKind.SERVER_BUSY)

    @classmethod
    def network(cls, detail: str) -> "DeepSeekError":
        return cls(ErrorKind.NETWORK_ERROR, detail)

    @classmethod
    def timeout(cls, seconds: int) -> "DeepSeekError":
        return cls(ErrorKind.TIMEOUT, seconds=seconds)

    @classmethod
    def api(cls, status: int, body: str) -> "DeepSeekError":
        return cls(ErrorKind.API_ERROR, status=status, body=body)

    @classmethod
    def parse(cls, detail: str) -> "DeepSeekError":
        return cls(ErrorKind.PARSE_ERROR, detail)

    @classmethod
    def config(cls, detail: str) -> "DeepSeekError":
        return cls(ErrorKind.CONFIG_ERROR, detail)


def classify_status(status: int, body: str) -> DeepSeekError:
    """Map a non-2xx HTTP status to SERVER_BUSY or API_ERROR."""
    if status in BUSY_STATUSES:
        return DeepSeekError.server_busy()
    return DeepSeekError.api(status, body)


def _network_detail(exc: BaseException) -> str:
    cause = exc.__cause__ or exc
    message = str(cause).lower()
    if "name or service not known" in message or "nodename" in message or "dns" in message:
        return "DNS resolution failed"
    if "connection refused" in message:
        return "Connection refused by server"
    if "connect" in message:
        return "Failed to connect to server"
    return f"Request error: {cause}"


def classify_exception(exc: BaseException, timeout_sec: int) -> DeepSeekError:
    """Map a transport-level exception from the openai SDK to a DeepSeekError.

    Order matters: APITimeoutError subclasses APIConnectionError.
    """
    if isinstance(exc, DeepSeekError):
        return exc
    if isinstance(exc, (openai.APITimeoutError, TimeoutError)):
        return DeepSeekError.timeout(timeout_sec)
    if isinstance(exc, openai.APIStatusError):
        return classify_status(exc.status_code, exc.response.text)
    if isinstance(exc, openai.APIConnectionError):
        return DeepSeekError.network(_network_detail(exc))
    if isinstance(exc, (openai.APIResponseValidationError, ValueError)):
        return DeepSeekError.parse(f"Failed to parse API response: {exc}")
    return DeepSeekError.network(f"Request error: {exc}")


# Swappable presentation table: kind -> one-line user message.
USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.SERVER_BUSY: "DeepSeek servers are currently busy. Please try again in a few moments.",
    ErrorKind.NETWORK_ERROR: "Network connection failed. Please check your internet connection and try again.",
    ErrorKind.TIMEOUT: "Request timed out after {seconds} seconds. The server might be overloaded.",
    ErrorKind.API_ERROR: "API error ({status}). Please try again later.",
    ErrorKind.PARSE_ERROR: "Failed to parse server response. Please try again.",
    ErrorKind.CONFIG_ERROR: "Configuration error: {detail}",
}


def user_message(error: DeepSeekError, messages: dict[ErrorKind, str] | None = None) -> str:
    """Render the human-readable message for an error from a lookup table."""
    table = messages if messages is not None else USER_MESSAGES
    return table[error.kind].format(
        seconds=error.seconds,
        status=error.status,
        detail=error.detail,
    )
