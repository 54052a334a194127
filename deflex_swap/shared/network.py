"""HTTP access to the aggregator and algod with timeouts and bounded retries."""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import requests
from requests.exceptions import ConnectionError, HTTPError, Timeout

from deflex_swap.errors import SwapError

logger = logging.getLogger(__name__)


class NetworkErrorType(Enum):
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    HTTP_ERROR = "http_error"
    UNKNOWN = "unknown"


@dataclass
class NetworkError(SwapError):
    error_type: NetworkErrorType
    message: str
    original_error: Exception | None = None
    status_code: int | None = None
    response_text: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class TimeoutConfig:
    connect_timeout: float = 5.0
    read_timeout: float = 15.0

    @property
    def request_timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    retryable_status_codes: set[int] = field(
        default_factory=lambda: {408, 429, 500, 502, 503, 504}
    )

    def calculate_delay(self, attempt: int) -> float:
        return min(self.base_delay * self.exponential_base**attempt, self.max_delay)


DEFAULT_TIMEOUT_CONFIG = TimeoutConfig()
DEFAULT_RETRY_CONFIG = RetryConfig()
NO_RETRY_CONFIG = RetryConfig(max_retries=0)


def classify_error(error: Exception) -> NetworkErrorType:
    # Timeout subclasses ConnectionError for connect timeouts; check it first.
    for error_class, error_type in (
        (Timeout, NetworkErrorType.TIMEOUT),
        (ConnectionError, NetworkErrorType.CONNECTION_ERROR),
        (HTTPError, NetworkErrorType.HTTP_ERROR),
    ):
        if isinstance(error, error_class):
            return error_type
    return NetworkErrorType.UNKNOWN


def response_detail(response: Any) -> str | None:
    """Pull the human-readable reason out of an algod or Deflex error body."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            if body.get(key):
                return str(body[key])
    return getattr(response, "text", None) or None


def create_network_error(
    error: Exception, base_url: str, context: str = ""
) -> NetworkError:
    error_type = classify_error(error)
    prefix = f"{context}: " if context else ""

    if error_type == NetworkErrorType.HTTP_ERROR:
        response = getattr(error, "response", None)
        status_code = getattr(response, "status_code", None)
        detail = response_detail(response)
        return NetworkError(
            error_type=error_type,
            message=f"{prefix}HTTP error {status_code}: {detail or 'Unknown error'}",
            original_error=error,
            status_code=status_code,
            response_text=getattr(response, "text", None),
        )

    if error_type == NetworkErrorType.TIMEOUT:
        message = f"{prefix}Connection timeout. Service may be unavailable: {base_url}"
    elif error_type == NetworkErrorType.CONNECTION_ERROR:
        message = f"{prefix}Cannot connect to {base_url}. Check your network connection."
    else:
        message = f"{prefix}Network error: {error}"
    return NetworkError(error_type=error_type, message=message, original_error=error)


def should_retry(error: Exception, retry_config: RetryConfig) -> bool:
    error_type = classify_error(error)
    if error_type in (NetworkErrorType.TIMEOUT, NetworkErrorType.CONNECTION_ERROR):
        return True
    if error_type == NetworkErrorType.HTTP_ERROR:
        status_code = getattr(error.response, "status_code", None)
        return status_code in retry_config.retryable_status_codes
    return False


def _json_or_message(response: requests.Response) -> dict[str, Any]:
    if not response.content:
        return {"message": ""}
    try:
        return response.json()
    except ValueError:
        return {"message": response.text}


class NetworkClient:
    """Thin wrapper over ``requests`` bound to one base URL.

    Every failure surfaces as :class:`NetworkError`. Reads are retried on
    timeouts, connection failures and retryable status codes; a caller that
    must not repeat a request passes ``allow_retry=False``.
    """

    def __init__(
        self,
        base_url: str,
        timeout_config: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
        headers: dict[str, str] | None = None,
        on_retry: Callable[[int, Exception, float], None] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_config = timeout_config or DEFAULT_TIMEOUT_CONFIG
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.headers = dict(headers or {})
        self.on_retry = on_retry

    def _attempts(self, allow_retry: bool) -> int:
        return self.retry_config.max_retries + 1 if allow_retry else 1

    def _send(
        self,
        method: str,
        endpoint: str,
        context: str,
        allow_retry: bool,
        missing_ok: bool,
        kwargs: dict[str, Any],
    ) -> dict[str, Any] | None:
        url = f"{self.base_url}{endpoint}"
        kwargs.setdefault("timeout", self.timeout_config.request_timeout)
        headers = {**self.headers, **kwargs.pop("headers", {})}
        if headers:
            kwargs["headers"] = headers

        attempts = self._attempts(allow_retry)
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                response = requests.request(method, url, **kwargs)
                if response.status_code == 404:
                    if missing_ok:
                        return None
                    raise HTTPError(response=response)
                response.raise_for_status()
                return _json_or_message(response)
            except Exception as e:
                last_error = e
                if attempt + 1 >= attempts or not should_retry(e, self.retry_config):
                    break
                delay = self.retry_config.calculate_delay(attempt)
                logger.warning(
                    "%s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                    method,
                    endpoint,
                    attempt + 1,
                    attempts,
                    delay,
                    e,
                )
                if self.on_retry:
                    self.on_retry(attempt + 1, e, delay)
                time.sleep(delay)

        raise create_network_error(last_error, self.base_url, context)

    def get(self, endpoint: str, context: str = "", **kwargs) -> dict[str, Any]:
        return self._send("GET", endpoint, context, True, False, kwargs)

    def get_optional(
        self, endpoint: str, context: str = "", **kwargs
    ) -> dict[str, Any] | None:
        """Like :meth:`get` but a 404 yields ``None`` instead of an error."""
        return self._send("GET", endpoint, context, True, True, kwargs)

    def post(
        self,
        endpoint: str,
        context: str = "",
        allow_retry: bool = True,
        **kwargs,
    ) -> dict[str, Any]:
        return self._send("POST", endpoint, context, allow_retry, False, kwargs)
