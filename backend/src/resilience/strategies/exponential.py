"""
Exponential backoff keyed on the error classification.
"""
from typing import Callable, Optional

from ..classification import retry_delay
from ..classification.classifier import MAX_RETRY_DELAY
from ..types import ErrorDetails
from .base import BaseStrategy


class ClassifiedBackoffStrategy(BaseStrategy):
    """
    Exponential backoff with per-code base delays and up to one second of jitter.

    delay = min(base_delay(code) * 2 ** (attempt - 1) + jitter, max_delay)
    """

    def __init__(
        self,
        max_delay: float = MAX_RETRY_DELAY,
        retry_condition: Optional[Callable[[ErrorDetails], bool]] = None
    ):
        super().__init__(max_delay, retry_condition)

    def calculate_delay(self, details: ErrorDetails, attempt: int) -> float:
        return min(retry_delay(details, attempt), self.max_delay)

    @property
    def name(self) -> str:
        return f"ClassifiedBackoff(max={self.max_delay})"
