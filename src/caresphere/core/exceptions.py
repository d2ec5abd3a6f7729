"""CareSphere exception hierarchy

Every error raised by the package derives from CareSphereError and carries an
error code, a details dict and the causing exception. Failures of the network
access layer derive from APIError and expose an ErrorKind so feature services
can branch on the kind of failure without matching on classes.

Error code ranges:
    E0001-E0099: configuration
    E2000-E2199: API responses and payload coding
    E5100-E5199: local storage
    E5200-E5599: network
    E9999: unknown
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class CareSphereError(Exception):
    """Base exception for the CareSphere package.

    Attributes:
        message: Human readable message
        error_code: Error code (E0001 etc.)
        details: Extra structured information
        cause: Exception that caused this one
        timestamp: When the error was created
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Error information as a dict (for structured logging)."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


# ============================================================================
# Configuration errors (E0001-E0099)
# ============================================================================


class ConfigurationError(CareSphereError):
    """Invalid or unreadable configuration (E0001)"""

    def __init__(self, message: str, config_file: Optional[str] = None, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "E0001"
        super().__init__(message, **kwargs)
        if config_file:
            self.details["config_file"] = config_file


# ============================================================================
# Local storage errors (E5100-E5199)
# ============================================================================


class CredentialStoreError(CareSphereError):
    """Credential store read/write failure (E5101)"""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "E5101"
        super().__init__(message, **kwargs)
        if key:
            self.details["key"] = key


# ============================================================================
# Network access layer errors
# ============================================================================


class ErrorKind(Enum):
    """Kind of failure reported by the API client."""

    INVALID_URL = "invalid_url"
    NO_DATA = "no_data"
    DECODING_FAILURE = "decoding_failure"
    ENCODING_FAILURE = "encoding_failure"
    TRANSPORT_FAILURE = "transport_failure"
    SERVER_ERROR = "server_error"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NO_CONNECTION = "no_connection"
    UNKNOWN = "unknown"


# Kinds a caller may reasonably retry at a higher level
RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.TRANSPORT_FAILURE,
        ErrorKind.TIMEOUT,
        ErrorKind.NO_CONNECTION,
        ErrorKind.RATE_LIMITED,
    }
)


class APIError(CareSphereError):
    """Base class for every failure surfaced by APIClient.request().

    Subclasses define ``kind``, a default message and a default error code.

    Attributes:
        kind: ErrorKind of the failure
        status_code: HTTP status code, when the failure came from a response
        transient: True when the client itself may retry the attempt
            (connection drops, timeouts, 5xx). Distinct from is_retryable,
            which is the caller-level hint.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message: str = "Unknown error"
    default_error_code: str = "E9999"
    describe_cause: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        transient: bool = False,
        **kwargs,
    ):
        if "error_code" not in kwargs:
            kwargs["error_code"] = self.default_error_code
        if message is None:
            cause = kwargs.get("cause")
            if self.describe_cause and cause is not None:
                message = f"{self.default_message}: {cause}"
            else:
                message = self.default_message
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.transient = transient
        self.details["kind"] = self.kind.value
        if status_code is not None:
            self.details["status_code"] = status_code

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


class InvalidURLError(APIError):
    """Endpoint did not resolve to an absolute URL (E2101)"""

    kind = ErrorKind.INVALID_URL
    default_message = "Invalid URL"
    default_error_code = "E2101"

    def __init__(self, message: Optional[str] = None, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if url:
            self.details["url"] = url


class NoDataError(APIError):
    """Successful response without a payload (E2102)"""

    kind = ErrorKind.NO_DATA
    default_message = "No data received"
    default_error_code = "E2102"


class DecodingError(APIError):
    """Response body could not be decoded into the expected type (E2103)"""

    kind = ErrorKind.DECODING_FAILURE
    default_message = "Failed to decode response"
    default_error_code = "E2103"
    describe_cause = True


class EncodingError(APIError):
    """Request body could not be encoded as JSON (E2104)"""

    kind = ErrorKind.ENCODING_FAILURE
    default_message = "Failed to encode request"
    default_error_code = "E2104"
    describe_cause = True


class TransportError(APIError):
    """Network failure without an HTTP response (E5201)"""

    kind = ErrorKind.TRANSPORT_FAILURE
    default_message = "Network error"
    default_error_code = "E5201"
    describe_cause = True


class ServerError(APIError):
    """Unexpected HTTP status, including 5xx (E2000)

    Attributes:
        server_message: Message taken from the error envelope, if any
    """

    kind = ErrorKind.SERVER_ERROR
    default_error_code = "E2000"

    def __init__(self, status_code: int, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("transient", 500 <= status_code < 600)
        super().__init__(
            message or f"Server error ({status_code})", status_code=status_code, **kwargs
        )
        self.server_message = message

    @property
    def is_retryable(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class UnauthorizedError(APIError):
    """401 that could not be recovered by a token refresh (E2003)"""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized access"
    default_error_code = "E2003"


class ForbiddenError(APIError):
    """403 (E2005)"""

    kind = ErrorKind.FORBIDDEN
    default_message = "Access forbidden"
    default_error_code = "E2005"


class NotFoundError(APIError):
    """404 (E2006)"""

    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"
    default_error_code = "E2006"


class RateLimitError(APIError):
    """429 (E2002)

    The client never retries this itself; ``retry_after`` is passed through
    from the Retry-After header when the server sends one.
    """

    kind = ErrorKind.RATE_LIMITED
    default_message = "Too many requests. Please try again later."
    default_error_code = "E2002"

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after:
            self.details["retry_after"] = retry_after


class RequestTimeoutError(APIError):
    """Request timed out (E5205)"""

    kind = ErrorKind.TIMEOUT
    default_message = "Request timed out"
    default_error_code = "E5205"


class NoConnectionError(APIError):
    """Device is offline or the connection was lost (E5502)"""

    kind = ErrorKind.NO_CONNECTION
    default_message = "No internet connection"
    default_error_code = "E5502"


class UnknownAPIError(APIError):
    """Failure that fits no other kind (E9999)"""

    kind = ErrorKind.UNKNOWN
    default_message = "Unknown error"
    default_error_code = "E9999"
    describe_cause = True
