"""Predefined error patterns, in classification priority order."""
import aiohttp

from ..types import ErrorCategory, ErrorCode, ErrorSeverity
from .categories import ErrorPattern

# Wallet interaction patterns
USER_REJECTED = ErrorPattern(
    code=ErrorCode.USER_REJECTED,
    indicators=("user rejected", "user denied"),
    error_codes=("ACTION_REJECTED", 4001),
    severity=ErrorSeverity.LOW,
    recoverable=True,
    category=ErrorCategory.WALLET,
    user_message="Transaction was cancelled by user",
    suggestions=("Try the transaction again when ready",)
)

INSUFFICIENT_FUNDS = ErrorPattern(
    code=ErrorCode.INSUFFICIENT_FUNDS,
    indicators=("insufficient funds", "insufficient balance"),
    severity=ErrorSeverity.MEDIUM,
    recoverable=False,
    category=ErrorCategory.WALLET,
    user_message="Insufficient funds to complete transaction",
    suggestions=(
        "Add more funds to your wallet",
        "Reduce the transaction amount",
    )
)

# Transaction patterns
GAS_ESTIMATION_FAILED = ErrorPattern(
    code=ErrorCode.GAS_ESTIMATION_FAILED,
    required=("gas",),
    indicators=("estimate", "limit"),
    severity=ErrorSeverity.MEDIUM,
    recoverable=True,
    category=ErrorCategory.TRANSACTION,
    user_message="Unable to estimate gas fees. Transaction may fail.",
    suggestions=(
        "Try increasing the gas price",
        "Wait for network congestion to reduce",
    )
)

GAS_PRICE_TOO_LOW = ErrorPattern(
    code=ErrorCode.GAS_PRICE_TOO_LOW,
    indicators=("gas too low", "underpriced", "replacement transaction underpriced"),
    severity=ErrorSeverity.MEDIUM,
    recoverable=True,
    category=ErrorCategory.TRANSACTION,
    user_message="Gas price too low. Try increasing gas price.",
    suggestions=(
        "Try increasing the gas price",
        "Wait for network congestion to reduce",
    )
)

NONCE_TOO_LOW = ErrorPattern(
    code=ErrorCode.NONCE_TOO_LOW,
    required=("nonce",),
    indicators=("too low",),
    severity=ErrorSeverity.MEDIUM,
    recoverable=True,
    category=ErrorCategory.TRANSACTION,
    user_message="Transaction nonce error. Please refresh and try again.",
    suggestions=(
        "Refresh the page and try again",
        "Wait for pending transactions to complete",
    )
)

# Network patterns
NETWORK_ERROR = ErrorPattern(
    code=ErrorCode.NETWORK_ERROR,
    indicators=("network", "connection", "timeout"),
    error_codes=("NETWORK_ERROR", "TIMEOUT", "SERVER_ERROR", 500, 502, 503, 504),
    exception_types=(TimeoutError, ConnectionError, aiohttp.ClientConnectionError),
    severity=ErrorSeverity.HIGH,
    recoverable=True,
    category=ErrorCategory.NETWORK,
    user_message="Network connection error. Please check your internet connection.",
    suggestions=(
        "Check your internet connection",
        "Try switching to a different network",
        "Wait a few minutes and try again",
    )
)

RPC_ERROR = ErrorPattern(
    code=ErrorCode.RPC_ERROR,
    indicators=("rpc", "provider"),
    severity=ErrorSeverity.HIGH,
    recoverable=True,
    category=ErrorCategory.NETWORK,
    user_message="Blockchain network is temporarily unavailable. Please try again.",
    suggestions=(
        "Check your internet connection",
        "Try switching to a different network",
        "Wait a few minutes and try again",
    )
)

WALLET_CONNECTION_ERROR = ErrorPattern(
    code=ErrorCode.WALLET_CONNECTION_ERROR,
    required=("wallet",),
    indicators=("connect", "not found"),
    severity=ErrorSeverity.HIGH,
    recoverable=True,
    category=ErrorCategory.WALLET,
    user_message="Wallet connection error. Please reconnect your wallet.",
    suggestions=(
        "Reconnect your wallet",
        "Refresh the page",
        "Try using a different wallet",
    )
)

CONTRACT_ERROR = ErrorPattern(
    code=ErrorCode.CONTRACT_ERROR,
    indicators=("contract", "revert"),
    severity=ErrorSeverity.MEDIUM,
    recoverable=True,
    category=ErrorCategory.TRANSACTION,
    user_message="Smart contract interaction failed. Please try again.",
    suggestions=(
        "Check transaction parameters",
        "Ensure contract is deployed on current network",
    )
)

VALIDATION_ERROR = ErrorPattern(
    code=ErrorCode.VALIDATION_ERROR,
    indicators=("invalid", "validation"),
    severity=ErrorSeverity.LOW,
    recoverable=False,
    category=ErrorCategory.VALIDATION,
    user_message="Invalid input data. Please check your inputs.",
    suggestions=(
        "Check all input fields",
        "Ensure addresses are valid",
        "Verify amounts are correct",
    )
)

RATE_LIMITED = ErrorPattern(
    code=ErrorCode.RATE_LIMITED,
    indicators=("rate limit", "too many requests"),
    error_codes=(429, "429"),
    severity=ErrorSeverity.MEDIUM,
    recoverable=True,
    category=ErrorCategory.NETWORK,
    user_message="Too many requests. Please wait a moment and try again.",
    suggestions=(
        "Wait a few minutes before trying again",
        "Reduce the frequency of requests",
    )
)

# Pairing-library internals raised while it cleans up its own sessions
PAIRING_INTERNAL_METHODS = (
    "isvalidsessionorpairingtopic",
    "isvaliddisconnect",
    "onsessiondeleterequest",
    "deletesession",
)

WALLETCONNECT_INTERNAL_ERROR = ErrorPattern(
    code=ErrorCode.WALLETCONNECT_INTERNAL_ERROR,
    indicators=(
        "no matching key",
        "session or pairing topic doesn't exist",
    ) + PAIRING_INTERNAL_METHODS,
    stack_indicators=PAIRING_INTERNAL_METHODS,
    severity=ErrorSeverity.LOW,
    recoverable=True,
    category=ErrorCategory.WALLET,
    user_message="WalletConnect sync issue - functionality not affected",
    suggestions=(
        "This is a harmless WalletConnect sync issue",
        "All functionality continues to work normally",
        "No action needed from you",
    )
)

UNKNOWN_USER_MESSAGE = "An unexpected error occurred. Please try again."

UNKNOWN_SUGGESTIONS = (
    "Try again in a few minutes",
    "Refresh the page",
    "Contact support if the problem persists",
)

# First match wins
ALL_PATTERNS: list[ErrorPattern] = [
    USER_REJECTED,
    INSUFFICIENT_FUNDS,
    GAS_ESTIMATION_FAILED,
    GAS_PRICE_TOO_LOW,
    NONCE_TOO_LOW,
    NETWORK_ERROR,
    RPC_ERROR,
    WALLET_CONNECTION_ERROR,
    CONTRACT_ERROR,
    VALIDATION_ERROR,
    RATE_LIMITED,
    WALLETCONNECT_INTERNAL_ERROR,
]

PATTERNS_BY_CODE: dict[ErrorCode, ErrorPattern] = {p.code: p for p in ALL_PATTERNS}
