"""Error classification utilities for service and API errors."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ErrorCategory(Enum):
    """Categories of errors that can occur while serving a request."""

    VALIDATION = "validation"
    AUTHENTICATION_FAILED = "authentication_failed"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PREMIUM_REQUIRED = "premium_required"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    FEATURE_DISABLED = "feature_disabled"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Input errors
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_INVALID_STATE = "ERR_INVALID_STATE"

    # Auth errors
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_RATE_LIMIT_EXCEEDED = "ERR_RATE_LIMIT_EXCEEDED"

    # Family errors
    ERR_ALREADY_IN_FAMILY = "ERR_ALREADY_IN_FAMILY"
    ERR_FAMILY_FULL = "ERR_FAMILY_FULL"
    ERR_INVALID_INVITE_CODE = "ERR_INVALID_INVITE_CODE"
    ERR_LAST_PARENT = "ERR_LAST_PARENT"

    # Points errors
    ERR_INSUFFICIENT_POINTS = "ERR_INSUFFICIENT_POINTS"

    # Gating errors
    ERR_PREMIUM_REQUIRED = "ERR_PREMIUM_REQUIRED"
    ERR_FEATURE_DISABLED = "ERR_FEATURE_DISABLED"

    # Lookup errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_USER_ALREADY_EXISTS = "ERR_USER_ALREADY_EXISTS"

    # Generic errors
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_ERROR_PATTERNS: dict[
    Literal["auth", "network", "premium", "disabled"],
    dict[str, list[str] | set[str]],
] = {
    "auth": {
        "phrases": [
            "invalid email or password",
            "invalid token",
            "session expired",
            "session revoked",
            "reset link expired",
            "not authenticated",
        ],
        "exception_types": set(),
    },
    "network": {
        "phrases": [
            "connection refused",
            "timed out",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError"},
    },
    "premium": {
        "phrases": ["premium"],
        "exception_types": set(),
    },
    "disabled": {
        "phrases": ["temporarily disabled"],
        "exception_types": set(),
    },
}

# HTTP status code per category, used by the API exception handlers
CATEGORY_STATUS_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.AUTHENTICATION_FAILED: 401,
    ErrorCategory.PERMISSION_DENIED: 403,
    ErrorCategory.PREMIUM_REQUIRED: 402,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.RATE_LIMIT_EXCEEDED: 429,
    ErrorCategory.FEATURE_DISABLED: 503,
    ErrorCategory.NETWORK_ERROR: 503,
    ErrorCategory.UNKNOWN: 500,
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["auth", "network", "premium", "disabled"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def _message(exception: Exception) -> str:
    """Return the human message carried by an exception.

    KeyError wraps its argument in quotes when stringified, so unwrap it.
    """
    if isinstance(exception, KeyError) and exception.args:
        return str(exception.args[0])
    return str(exception)


def classify_error(exception: Exception) -> ErrorCategory:  # noqa: PLR0911
    """Classify a service error into a category.

    Args:
        exception: The exception raised by a service call

    Returns:
        The matching ErrorCategory
    """
    error_str = _message(exception).lower()
    exception_type = type(exception).__name__

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="disabled"):
        return ErrorCategory.FEATURE_DISABLED

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="auth"):
        return ErrorCategory.AUTHENTICATION_FAILED

    if isinstance(exception, PermissionError):
        if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="premium"):
            return ErrorCategory.PREMIUM_REQUIRED
        return ErrorCategory.PERMISSION_DENIED

    if isinstance(exception, KeyError):
        return ErrorCategory.NOT_FOUND

    if isinstance(exception, ValueError):
        if "already" in error_str:
            return ErrorCategory.CONFLICT
        return ErrorCategory.VALIDATION

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorCategory.NETWORK_ERROR

    return ErrorCategory.UNKNOWN


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: C901, PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Service messages are written for end users, so validation, permission and
    not-found responses pass the original message through.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    message = _message(exception)
    error_str = message.lower()
    category = classify_error(exception)

    if category == ErrorCategory.FEATURE_DISABLED:
        return ErrorResponse(
            code=ErrorCode.ERR_FEATURE_DISABLED,
            message=message,
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
        )

    if category == ErrorCategory.AUTHENTICATION_FAILED:
        return ErrorResponse(
            code=ErrorCode.ERR_AUTHENTICATION_FAILED,
            message=message,
            suggestion="Sign in again to continue.",
            severity=ErrorSeverity.MEDIUM,
        )

    if category == ErrorCategory.PREMIUM_REQUIRED:
        return ErrorResponse(
            code=ErrorCode.ERR_PREMIUM_REQUIRED,
            message=message,
            suggestion="Upgrade to Premium to unlock this feature.",
            severity=ErrorSeverity.LOW,
        )

    if category == ErrorCategory.PERMISSION_DENIED:
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message=message,
            suggestion="Ask a parent in your family if you think this is an error.",
            severity=ErrorSeverity.MEDIUM,
        )

    if category == ErrorCategory.NOT_FOUND:
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message=message,
            suggestion="Refresh and try again; the item may have been removed.",
            severity=ErrorSeverity.LOW,
        )

    if category == ErrorCategory.CONFLICT:
        if "family" in error_str:
            code = ErrorCode.ERR_ALREADY_IN_FAMILY
        elif "account" in error_str:
            code = ErrorCode.ERR_USER_ALREADY_EXISTS
        else:
            code = ErrorCode.ERR_INVALID_STATE
        return ErrorResponse(
            code=code,
            message=message,
            suggestion="Review the current state and try again.",
            severity=ErrorSeverity.LOW,
        )

    if category == ErrorCategory.VALIDATION:
        if "maximum capacity" in error_str:
            code = ErrorCode.ERR_FAMILY_FULL
        elif "invite code" in error_str:
            code = ErrorCode.ERR_INVALID_INVITE_CODE
        elif "last parent" in error_str:
            code = ErrorCode.ERR_LAST_PARENT
        elif "insufficient points" in error_str:
            code = ErrorCode.ERR_INSUFFICIENT_POINTS
        elif "cannot" in error_str or "not pending" in error_str:
            code = ErrorCode.ERR_INVALID_STATE
        else:
            code = ErrorCode.ERR_VALIDATION
        return ErrorResponse(
            code=code,
            message=message,
            suggestion="Check the highlighted fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if category == ErrorCategory.NETWORK_ERROR:
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message="Network error occurred.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )


def status_code_for(exception: Exception) -> int:
    """Return the HTTP status code for a service exception."""
    return CATEGORY_STATUS_CODES[classify_error(exception)]
