"""
Exceptions for the resilience layer.
"""
from typing import Optional


class ResilienceError(Exception):
    """Base exception for the resilience layer."""


class ActivationError(ResilienceError):
    """Raised when suppression hooks could not be installed and were rolled back."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class GasPriceLimitExceededError(ResilienceError):
    """Raised when a repriced transaction would exceed the configured ceiling."""

    def __init__(self, gas_price: int, max_gas_price: int):
        super().__init__(
            f"Gas price {gas_price} wei exceeds maximum {max_gas_price} wei"
        )
        self.gas_price = gas_price
        self.max_gas_price = max_gas_price


class StatusSourceError(ResilienceError):
    """Raised when the transaction service replies with a non-success status."""

    def __init__(self, message: str, status: int, safe_tx_hash: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.code = status
        self.safe_tx_hash = safe_tx_hash
