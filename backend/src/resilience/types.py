"""
Shared type definitions for the resilience layer.
"""
import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, Union


class ErrorCode(Enum):
    """Stable taxonomy keys."""
    USER_REJECTED = "USER_REJECTED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    GAS_ESTIMATION_FAILED = "GAS_ESTIMATION_FAILED"
    GAS_PRICE_TOO_LOW = "GAS_PRICE_TOO_LOW"
    NONCE_TOO_LOW = "NONCE_TOO_LOW"
    NETWORK_ERROR = "NETWORK_ERROR"
    RPC_ERROR = "RPC_ERROR"
    WALLET_CONNECTION_ERROR = "WALLET_CONNECTION_ERROR"
    CONTRACT_ERROR = "CONTRACT_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    WALLETCONNECT_INTERNAL_ERROR = "WALLETCONNECT_INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorSeverity(Enum):
    """Severity levels for classified errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Broad area an error belongs to."""
    NETWORK = "network"
    WALLET = "wallet"
    TRANSACTION = "transaction"
    VALIDATION = "validation"
    SYSTEM = "system"


class RuleSeverity(Enum):
    """Severity attached to a suppression rule."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class RawError:
    """The error shape available at every interception point."""
    message: str
    stack: Optional[str] = None
    code: Optional[Union[str, int]] = None
    source: Optional[str] = None

    @classmethod
    def from_exception(cls, error: BaseException, source: Optional[str] = None) -> 'RawError':
        """Build from a live exception, including its formatted traceback."""
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return cls(
            message=str(error),
            stack=stack,
            code=getattr(error, 'code', None),
            source=source
        )

    @classmethod
    def from_log_call(
        cls,
        msg: Any,
        args: tuple,
        kwargs: dict,
        capture_stack: bool = True
    ) -> 'RawError':
        """Build from the arguments of a ``Logger.error``/``Logger.warning`` call.

        Arguments are merged into the message the way ``LogRecord.getMessage``
        does. With ``capture_stack=False`` no traceback is formatted, which
        is enough for rules that only look at the message.
        """
        message = str(msg)
        if args:
            # A lone non-empty mapping feeds %(name)s placeholders
            fmt_args = args
            if len(args) == 1 and isinstance(args[0], Mapping) and args[0]:
                fmt_args = args[0]
            try:
                message = message % fmt_args
            except (TypeError, ValueError, KeyError):
                message = " ".join([message, *(str(a) for a in args)])

        if not capture_stack:
            return cls(message=message)

        stack = None
        exc_info = kwargs.get('exc_info')
        if isinstance(exc_info, BaseException):
            stack = "".join(traceback.format_exception(type(exc_info), exc_info, exc_info.__traceback__))
        elif isinstance(exc_info, tuple) and exc_info[0] is not None:
            stack = "".join(traceback.format_exception(*exc_info))
        elif isinstance(msg, BaseException):
            stack = "".join(traceback.format_exception(type(msg), msg, msg.__traceback__))

        if not stack:
            # Fall back to the calling stack so stack-scoped rules can still match
            stack = "".join(traceback.format_stack(limit=25))

        return cls(message=message, stack=stack)

    @classmethod
    def from_loop_context(cls, context: dict) -> 'RawError':
        """Build from an asyncio exception handler context."""
        error = context.get('exception')
        if error is not None:
            raw = cls.from_exception(error)
            return raw if raw.message else cls(
                message=context.get('message', ''),
                stack=raw.stack,
                code=raw.code
            )
        return cls(message=str(context.get('message', '')))

    @classmethod
    def coerce(cls, error: Any) -> 'RawError':
        """Accept a RawError, an exception, a mapping or any object with ``message``."""
        if isinstance(error, RawError):
            return error
        if isinstance(error, BaseException):
            return cls.from_exception(error)
        if isinstance(error, dict):
            return cls(
                message=str(error.get('message') or ''),
                stack=error.get('stack'),
                code=error.get('code'),
                source=error.get('source')
            )
        message = getattr(error, 'message', None)
        if message is None:
            message = str(error) if error is not None else ''
        return cls(
            message=str(message),
            stack=getattr(error, 'stack', None),
            code=getattr(error, 'code', None),
            source=getattr(error, 'source', None)
        )


@dataclass(frozen=True)
class ErrorDetails:
    """Result of classifying a raw error. Never mutated after creation."""
    code: ErrorCode
    message: str
    user_message: str
    severity: ErrorSeverity
    recoverable: bool
    category: ErrorCategory

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "category": self.category.value
        }


@dataclass(frozen=True)
class SuppressionRule:
    """Pattern predicate identifying a known-benign error."""
    message_patterns: tuple[str, ...]
    description: str
    severity: RuleSeverity = RuleSeverity.LOW
    stack_patterns: Optional[tuple[str, ...]] = None

    def __post_init__(self):
        # Accept lists from callers but keep the rule immutable
        object.__setattr__(self, 'message_patterns', tuple(self.message_patterns))
        if self.stack_patterns is not None:
            object.__setattr__(self, 'stack_patterns', tuple(self.stack_patterns))


@dataclass(frozen=True)
class SuppressionStats:
    suppressed_count: int
    is_active: bool
    rule_count: int


class TxStatus(Enum):
    """Lifecycle states reported by the status source."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXECUTED = "executed"
    FAILED = "failed"


@dataclass
class TransactionStatus:
    """One observation of a multisig transaction."""
    status: TxStatus
    confirmations: int = 0
    block_number: Optional[int] = None
    gas_used: Optional[str] = None
    gas_price: Optional[str] = None
    execution_tx_hash: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TxStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in (TxStatus.EXECUTED, TxStatus.FAILED)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "confirmations": self.confirmations,
            "block_number": self.block_number,
            "gas_used": self.gas_used,
            "gas_price": self.gas_price,
            "execution_tx_hash": self.execution_tx_hash
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TransactionStatus':
        """Create from dictionary. Accepts snake_case or camelCase keys."""
        def pick(snake: str, camel: str):
            return data[snake] if snake in data else data.get(camel)

        return cls(
            status=TxStatus(data['status']),
            confirmations=int(data.get('confirmations') or 0),
            block_number=pick('block_number', 'blockNumber'),
            gas_used=pick('gas_used', 'gasUsed'),
            gas_price=pick('gas_price', 'gasPrice'),
            execution_tx_hash=pick('execution_tx_hash', 'executionTxHash')
        )


RetryCondition = Callable[[ErrorDetails], bool]


@dataclass
class RetryPolicy:
    """Per-invocation retry settings."""
    max_attempts: int = 3
    retry_condition: Optional[RetryCondition] = None
    strategy: Optional['RetryStrategy'] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")


class RetryStrategy(Protocol):
    """Protocol for retry delay strategies."""

    def calculate_delay(self, details: ErrorDetails, attempt: int) -> float:
        """Seconds to wait before retrying after ``attempt`` failed."""
        ...

    @property
    def name(self) -> str:
        ...


class StatusSource(Protocol):
    """Downstream collaborator answering transaction status queries."""

    def get_transaction_status(self, safe_tx_hash: str) -> Awaitable[TransactionStatus]:
        ...


class Notifier(Protocol):
    """Toast/notification capability injected by the UI layer."""

    def warning(self, title: str, **options: Any) -> Any:
        ...

    def error(self, title: str, **options: Any) -> Any:
        ...


@dataclass
class MonitorSnapshot:
    """Read-only view of a status monitor session."""
    safe_tx_hash: str
    is_monitoring: bool
    consecutive_errors: int
    poll_interval: float
    last_status: Optional[TransactionStatus] = None
    polls: int = field(default=0)
