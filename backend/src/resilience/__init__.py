"""
Error resilience layer for wallet pairing and multisig transaction flows.
"""
from .classification import (
    classify,
    format_error_for_logging,
    is_critical_error,
    is_retryable_without_changes,
    recovery_suggestions,
    retry_delay,
    should_auto_retry,
)
from .config import ResilienceSettings
from .exceptions import (
    ActivationError,
    GasPriceLimitExceededError,
    ResilienceError,
    StatusSourceError,
)
from .monitor import StatusMonitor, monitor_transaction_status
from .notifications import DebouncedErrorHandler, ErrorNotifier
from .retry import (
    retry,
    retry_network_operation,
    retry_transaction,
    retrying,
    safe_async_operation,
)
from .status_client import TransactionServiceClient
from .strategies import BaseStrategy, ClassifiedBackoffStrategy, FixedDelayStrategy
from .suppression import (
    RuleEngine,
    SuppressionActivator,
    get_suppression_activator,
)
from .types import (
    ErrorCategory,
    ErrorCode,
    ErrorDetails,
    ErrorSeverity,
    RawError,
    RetryPolicy,
    RuleSeverity,
    SuppressionRule,
    SuppressionStats,
    TransactionStatus,
    TxStatus,
)


__all__ = [
    # Classification
    'classify',
    'format_error_for_logging',
    'is_critical_error',
    'is_retryable_without_changes',
    'recovery_suggestions',
    'retry_delay',
    'should_auto_retry',

    # Suppression
    'RuleEngine',
    'SuppressionActivator',
    'get_suppression_activator',

    # Retry
    'retry',
    'retrying',
    'retry_network_operation',
    'retry_transaction',
    'safe_async_operation',
    'BaseStrategy',
    'ClassifiedBackoffStrategy',
    'FixedDelayStrategy',

    # Monitoring
    'StatusMonitor',
    'monitor_transaction_status',
    'TransactionServiceClient',

    # Notifications
    'DebouncedErrorHandler',
    'ErrorNotifier',

    # Configuration
    'ResilienceSettings',

    # Types
    'ErrorCategory',
    'ErrorCode',
    'ErrorDetails',
    'ErrorSeverity',
    'RawError',
    'RetryPolicy',
    'RuleSeverity',
    'SuppressionRule',
    'SuppressionStats',
    'TransactionStatus',
    'TxStatus',

    # Exceptions
    'ResilienceError',
    'ActivationError',
    'GasPriceLimitExceededError',
    'StatusSourceError',
]
