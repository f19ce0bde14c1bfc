"""
Base class for retry delay strategies.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..classification import is_retryable_without_changes
from ..types import ErrorDetails


class BaseStrategy(ABC):
    """Base class for retry strategies driven by error classification."""

    def __init__(
        self,
        max_delay: float = 30.0,
        retry_condition: Optional[Callable[[ErrorDetails], bool]] = None
    ):
        self.max_delay = max_delay
        self.retry_condition = retry_condition or is_retryable_without_changes

    @abstractmethod
    def calculate_delay(self, details: ErrorDetails, attempt: int) -> float:
        """
        Calculate delay before the next attempt.

        Args:
            details: Classification of the error that ended ``attempt``
            attempt: Attempt that just failed (1-indexed)

        Returns:
            Delay in seconds
        """
        pass

    def should_retry(self, details: ErrorDetails, attempt: int, max_attempts: int) -> bool:
        """Determine if the operation should run again after ``attempt`` failed."""
        if attempt >= max_attempts:
            return False
        return self.retry_condition(details)

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name for logging."""
        pass
