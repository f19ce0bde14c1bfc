"""
Fixed delay retry strategy.
"""
from typing import Callable, Optional

from ..types import ErrorDetails
from .base import BaseStrategy


class FixedDelayStrategy(BaseStrategy):
    """
    Fixed delay strategy.

    Same delay between all retry attempts, whatever the error.
    """

    def __init__(
        self,
        delay: float = 1.0,
        retry_condition: Optional[Callable[[ErrorDetails], bool]] = None
    ):
        super().__init__(delay, retry_condition)
        self.delay = delay

    def calculate_delay(self, details: ErrorDetails, attempt: int) -> float:
        """Return fixed delay regardless of attempt number."""
        return self.delay

    @property
    def name(self) -> str:
        return f"FixedDelay(delay={self.delay})"
