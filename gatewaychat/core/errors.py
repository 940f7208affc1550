"""
gatewaychat - Error Definitions

Typed error taxonomy and the classifier that maps HTTP failures and
in-band error objects onto it.

Taxonomy:
    AuthMissingError      - no API key could be resolved (raised before any I/O)
    UnauthorizedError     - HTTP 401
    RateLimitedError      - HTTP 429
    QuotaExhaustedError   - quota/credit exhaustion code
    UpstreamError         - any other non-2xx or in-band error object
    MalformedStreamError  - payloads that are invalid rather than truncated
    TransportFailureError - network/connection level failures

Nothing here retries. Callers use the predicates to pick their messaging.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

import httpx


class ErrorCode:
    """Machine codes attached to classified errors."""
    API_KEY_MISSING = "API_KEY_MISSING"
    API_ERROR = "API_ERROR"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    MALFORMED_STREAM = "MALFORMED_STREAM"
    TRANSPORT_FAILURE = "TRANSPORT_FAILURE"


# Codes that gateways use to report exhausted credits/quota
QUOTA_EXHAUSTED_CODES = frozenset({
    ErrorCode.INSUFFICIENT_CREDITS,
    "insufficient_quota",
})


@dataclass
class ErrorDetails:
    """Full error information."""
    code: str
    message: str
    status_code: int = 0

    # Trace fields
    request_id: str = ""

    # Content delivered before the failure (streaming only)
    partial_content: Optional[str] = None

    # Raw body or extra context
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.request_id:
            result["request_id"] = self.request_id
        if self.partial_content:
            result["partial_content"] = self.partial_content
        if self.details:
            result["details"] = self.details
        return {"error": result}


class GatewayError(Exception):
    """Base exception for all classified gateway errors."""

    def __init__(self, error: ErrorDetails):
        self.error = error
        super().__init__(error.message)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def status_code(self) -> int:
        return self.error.status_code

    @property
    def partial_content(self) -> Optional[str]:
        return self.error.partial_content

    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    def is_insufficient_quota(self) -> bool:
        return self.code in QUOTA_EXHAUSTED_CODES


class AuthMissingError(GatewayError):
    """No API key is configured."""

    def __init__(self, message: str = "Please configure your API Key in Settings"):
        super().__init__(
            ErrorDetails(
                code=ErrorCode.API_KEY_MISSING,
                message=message,
                status_code=401,
            )
        )


class UnauthorizedError(GatewayError):
    """Gateway rejected the credentials (401)."""
    pass


class RateLimitedError(GatewayError):
    """Gateway rate limit exceeded (429)."""

    def __init__(self, error: ErrorDetails, retry_after: Optional[int] = None):
        super().__init__(error)
        self.retry_after = retry_after


class QuotaExhaustedError(GatewayError):
    """Account credits or quota are exhausted."""
    pass


class UpstreamError(GatewayError):
    """Any other error reported by the gateway, over HTTP or in-band."""
    pass


class MalformedStreamError(GatewayError):
    """A payload was structurally invalid rather than merely truncated."""

    def __init__(self, message: str, raw: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code=ErrorCode.MALFORMED_STREAM,
                message=message,
                request_id=request_id,
                details={"raw": raw[:200]} if raw else {},
            )
        )


class TransportFailureError(GatewayError):
    """The network exchange itself failed."""

    def __init__(self, message: str, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code=ErrorCode.TRANSPORT_FAILURE,
                message=message,
                status_code=0,
                request_id=request_id,
            )
        )


# ============================================================
# Classifier
# ============================================================

def extract_error_message(body: Any) -> Optional[str]:
    """
    Pull a human-readable message out of an error body.

    Precedence: error.message, message, error (when a string), the body
    itself (when a string).
    """
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
        if isinstance(error, str) and error:
            return error
        return None
    if isinstance(body, str) and body:
        return body
    return None


def extract_error_code(body: Any) -> Optional[str]:
    """Return error.code from an error body, if present."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("code"):
            return str(error["code"])
    return None


def _select_error_class(status_code: int, code: str) -> Type[GatewayError]:
    if status_code == 401:
        return UnauthorizedError
    # Quota exhaustion is often reported as a 429 as well
    if code in QUOTA_EXHAUSTED_CODES:
        return QuotaExhaustedError
    if status_code == 429:
        return RateLimitedError
    return UpstreamError


def _build_error(
    status_code: int,
    message: str,
    code: str,
    request_id: str,
    body: Any,
    retry_after: Optional[int] = None,
) -> GatewayError:
    details = ErrorDetails(
        code=code,
        message=message,
        status_code=status_code,
        request_id=request_id,
        details={"body": body} if isinstance(body, dict) else {},
    )
    error_class = _select_error_class(status_code, code)
    if error_class is RateLimitedError:
        return RateLimitedError(details, retry_after=retry_after)
    return error_class(details)


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a Retry-After header given in seconds."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def classify_http_error(
    status_code: int,
    body: Any,
    reason_phrase: str = "",
    request_id: str = "",
    retry_after: Optional[int] = None,
) -> GatewayError:
    """
    Convert a non-2xx response into a classified error.

    Args:
        status_code: HTTP status of the response
        body: Parsed JSON body, or None when the body was not JSON
        reason_phrase: HTTP status text
        request_id: Request ID for correlation
        retry_after: Seconds from a Retry-After header

    Returns:
        GatewayError subclass matching the status and code
    """
    message = (
        extract_error_message(body)
        or reason_phrase
        or f"API Error: {status_code}"
    )
    code = extract_error_code(body) or ErrorCode.API_ERROR
    return _build_error(status_code, message, code, request_id, body, retry_after)


def classify_payload_error(
    payload: Dict[str, Any],
    status_code: int = 200,
    request_id: str = "",
) -> GatewayError:
    """
    Convert an in-band error object (stream frame or JSON body) into a
    classified error.
    """
    code = extract_error_code(payload)
    message = extract_error_message(payload) or code or "Stream Error"
    return _build_error(
        status_code, message, code or ErrorCode.API_ERROR, request_id, payload
    )


def classify_transport_error(error: Exception, request_id: str = "") -> TransportFailureError:
    """Convert an httpx exception into a TransportFailureError."""
    if isinstance(error, httpx.TimeoutException):
        message = f"Request timed out: {error}"
    elif isinstance(error, httpx.ConnectError):
        message = f"Failed to connect to gateway: {error}"
    elif isinstance(error, httpx.InvalidURL):
        message = f"Invalid gateway URL: {error}"
    else:
        message = f"Request failed: {error}" if str(error) else f"Request failed: {type(error).__name__}"
    return TransportFailureError(message, request_id=request_id)
