"""Main error classifier implementation."""
import json
import random
from datetime import UTC, datetime
from typing import Any

from ..types import ErrorCategory, ErrorCode, ErrorDetails, ErrorSeverity, RawError
from .patterns import (
    ALL_PATTERNS,
    PATTERNS_BY_CODE,
    UNKNOWN_SUGGESTIONS,
    UNKNOWN_USER_MESSAGE,
)

AUTO_RETRYABLE_CODES = frozenset({
    ErrorCode.NETWORK_ERROR,
    ErrorCode.RPC_ERROR,
    ErrorCode.RATE_LIMITED,
    ErrorCode.GAS_PRICE_TOO_LOW,
})

# Seconds
BASE_RETRY_DELAYS: dict[ErrorCode, float] = {
    ErrorCode.NETWORK_ERROR: 2.0,
    ErrorCode.RPC_ERROR: 3.0,
    ErrorCode.RATE_LIMITED: 5.0,
    ErrorCode.GAS_PRICE_TOO_LOW: 1.0,
}
DEFAULT_BASE_DELAY = 2.0
MAX_JITTER = 1.0
MAX_RETRY_DELAY = 30.0


def classify(error: Any) -> ErrorDetails:
    """Classify an error into the stable taxonomy.

    Args:
        error: A ``RawError``, an exception, a mapping with a ``message`` key
            or any object exposing ``message``

    Returns:
        Error details carrying code, user message, severity, recoverability
        and category. Never raises.

    """
    raw = RawError.coerce(error)
    message = (raw.message or "").lower()
    stack = (raw.stack or "").lower()
    error_type = type(error) if isinstance(error, BaseException) else None

    for pattern in ALL_PATTERNS:
        if pattern.matches(message, stack, raw.code, error_type):
            details = ErrorDetails(
                code=pattern.code,
                message=raw.message,
                user_message=pattern.user_message,
                severity=pattern.severity,
                recoverable=pattern.recoverable,
                category=pattern.category
            )
            break
    else:
        details = ErrorDetails(
            code=ErrorCode.UNKNOWN_ERROR,
            message=raw.message or "Unknown error occurred",
            user_message=UNKNOWN_USER_MESSAGE,
            severity=ErrorSeverity.MEDIUM,
            recoverable=True,
            category=ErrorCategory.SYSTEM
        )

    return details


def should_auto_retry(details: ErrorDetails) -> bool:
    """Check if an error should trigger an automatic retry."""
    return (
        details.recoverable
        and details.code in AUTO_RETRYABLE_CODES
        and details.severity != ErrorSeverity.CRITICAL
    )


def is_retryable_without_changes(details: ErrorDetails) -> bool:
    """Like ``should_auto_retry`` but excludes errors that need new parameters.

    Resubmitting an underpriced transaction unchanged fails the same way, so
    GAS_PRICE_TOO_LOW is only retried by callers that reprice between attempts.
    """
    return should_auto_retry(details) and details.code != ErrorCode.GAS_PRICE_TOO_LOW


def retry_delay(details: ErrorDetails, attempt_number: int) -> float:
    """Exponential backoff with jitter, in seconds, capped at 30s."""
    base_delay = BASE_RETRY_DELAYS.get(details.code, DEFAULT_BASE_DELAY)
    exponential_delay = base_delay * (2 ** (attempt_number - 1))
    jitter = random.uniform(0, MAX_JITTER)
    return min(exponential_delay + jitter, MAX_RETRY_DELAY)


def recovery_suggestions(details: ErrorDetails) -> list[str]:
    """Get recovery suggestions for the user based on error code."""
    pattern = PATTERNS_BY_CODE.get(details.code)
    if pattern is None:
        return list(UNKNOWN_SUGGESTIONS)
    return list(pattern.suggestions)


def is_critical_error(details: ErrorDetails) -> bool:
    """Check if an error requires immediate attention."""
    return details.severity == ErrorSeverity.CRITICAL or (
        details.category == ErrorCategory.SYSTEM and not details.recoverable
    )


def format_error_for_logging(error: Any, context: str | None = None) -> str:
    """Render an error as a JSON document for log aggregation."""
    raw = RawError.coerce(error)
    details = classify(error)

    return json.dumps({
        "timestamp": datetime.now(UTC).isoformat(),
        "context": context or "unknown",
        "code": details.code.value,
        "category": details.category.value,
        "severity": details.severity.value,
        "message": details.message,
        "stack": raw.stack
    }, indent=2)
