"""Error classification for the resilience layer."""
from .categories import ErrorPattern
from .classifier import (
    AUTO_RETRYABLE_CODES,
    classify,
    format_error_for_logging,
    is_critical_error,
    is_retryable_without_changes,
    recovery_suggestions,
    retry_delay,
    should_auto_retry,
)
from .patterns import ALL_PATTERNS

__all__ = [
    "ALL_PATTERNS",
    "AUTO_RETRYABLE_CODES",
    "ErrorPattern",
    "classify",
    "format_error_for_logging",
    "is_critical_error",
    "is_retryable_without_changes",
    "recovery_suggestions",
    "retry_delay",
    "should_auto_retry",
]
