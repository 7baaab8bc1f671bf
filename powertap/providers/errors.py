from __future__ import annotations

from dataclasses import dataclass
import ssl
from typing import Any

import httpx


@dataclass(frozen=True)
class ErrorClassification:
    error_code: str
    reason_code: str
    retryable: bool
    severity: str


class ApiError(Exception):
    def __init__(
        self,
        message: str,
        *,
        error_code: str,
        reason_code: str,
        retryable: bool,
        severity: str,
        upstream_payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.reason_code = reason_code
        self.retryable = retryable
        self.severity = severity
        self.upstream_payload = upstream_payload


class ApiTransportError(ApiError):
    def __init__(
        self,
        message: str = "Power bank API transport failed.",
        *,
        error_code: str = "api_transport",
        reason_code: str = "transport_error",
        retryable: bool = True,
        severity: str = "error",
    ) -> None:
        super().__init__(
            message,
            error_code=error_code,
            reason_code=reason_code,
            retryable=retryable,
            severity=severity,
        )


class ApiTimeoutError(ApiTransportError):
    def __init__(self, message: str = "Power bank API request timed out.") -> None:
        super().__init__(message, error_code="api_timeout", reason_code="timeout")


class ApiConnectionError(ApiTransportError):
    def __init__(self, message: str = "Power bank API connection failed.") -> None:
        super().__init__(message, error_code="api_connection", reason_code="connection_error")


class ApiTlsError(ApiTransportError):
    def __init__(self, message: str = "Power bank API TLS handshake failed.") -> None:
        super().__init__(
            message,
            error_code="api_tls",
            reason_code="tls_error",
            retryable=False,
            severity="critical",
        )


class ResponseFormatError(ApiError):
    def __init__(self, message: str = "Power bank API response is not a valid envelope.", *, upstream_payload: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            error_code="api_response_invalid",
            reason_code="response_invalid",
            retryable=False,
            severity="error",
            upstream_payload=upstream_payload,
        )


class ResponseShapeError(ApiError):
    def __init__(self, message: str = "Envelope data has an unexpected shape.", *, expected: str = "", actual: str = "") -> None:
        super().__init__(
            message,
            error_code="api_response_shape",
            reason_code="shape_mismatch",
            retryable=False,
            severity="warning",
        )
        self.expected = expected
        self.actual = actual


class ConnectionTokenError(ApiError):
    def __init__(self, message: str = "Creating connection token failed") -> None:
        super().__init__(
            message,
            error_code="connection_token_failed",
            reason_code="connection_token",
            retryable=False,
            severity="error",
        )


class TransportConfigurationError(RuntimeError):
    """Trust material could not be initialised; the process cannot continue."""


def _is_tls_failure(exc: BaseException) -> bool:
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, ssl.SSLError):
            return True
        current = current.__cause__ or current.__context__
    return "[SSL" in str(exc)


def classification_from_exception(exc: Exception) -> ErrorClassification:
    if isinstance(exc, ApiError):
        return ErrorClassification(
            error_code=exc.error_code,
            reason_code=exc.reason_code,
            retryable=exc.retryable,
            severity=exc.severity,
        )
    if isinstance(exc, TimeoutError | httpx.TimeoutException):
        return ErrorClassification("api_timeout", "timeout", True, "error")
    if isinstance(exc, httpx.ConnectError) and _is_tls_failure(exc):
        return ErrorClassification("api_tls", "tls_error", False, "critical")
    if isinstance(exc, ConnectionError | httpx.ConnectError):
        return ErrorClassification("api_connection", "connection_error", True, "error")
    if isinstance(exc, httpx.HTTPError | OSError):
        return ErrorClassification("api_transport", "transport_error", True, "error")
    return ErrorClassification("api_internal_error", "internal_error", False, "critical")


def classify_transport_error(exc: Exception) -> ApiTransportError:
    if isinstance(exc, ApiTransportError):
        return exc
    classification = classification_from_exception(exc)
    message = str(exc) or classification.reason_code
    if classification.reason_code == "timeout":
        return ApiTimeoutError(message)
    if classification.reason_code == "tls_error":
        return ApiTlsError(message)
    if classification.reason_code == "connection_error":
        return ApiConnectionError(message)
    return ApiTransportError(
        message,
        error_code=classification.error_code,
        reason_code=classification.reason_code,
        retryable=classification.retryable,
        severity=classification.severity,
    )
