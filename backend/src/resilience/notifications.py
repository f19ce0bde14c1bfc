"""
User-facing error notifications.
"""
import logging
import time
from typing import Any, Callable, Optional

from .classification import classify
from .types import ErrorCode, ErrorDetails, ErrorSeverity, Notifier

logger = logging.getLogger(__name__)


class DebouncedErrorHandler:
    """Limits how often the same error code is reported.

    Up to ``burst`` reports per code are let through inside a window of
    ``debounce_seconds``; the window restarts once it has elapsed.
    """

    def __init__(
        self,
        debounce_seconds: float = 5.0,
        burst: int = 3,
        clock: Callable[[], float] = time.monotonic
    ):
        self.debounce_seconds = debounce_seconds
        self.burst = burst
        self._clock = clock
        self._counts: dict[str, int] = {}
        self._window_start: dict[str, float] = {}

    def should_handle(self, error_code: str) -> bool:
        now = self._clock()
        start = self._window_start.get(error_code)
        count = self._counts.get(error_code, 0)

        if start is None or now - start > self.debounce_seconds:
            self._counts[error_code] = 1
            self._window_start[error_code] = now
            return True

        if count < self.burst:
            self._counts[error_code] = count + 1
            return True

        return False


class ErrorNotifier:
    """Classifies errors and forwards them to a toast/notification capability."""

    def __init__(
        self,
        notifier: Notifier,
        debouncer: Optional[DebouncedErrorHandler] = None
    ):
        self.notifier = notifier
        self.debouncer = debouncer or DebouncedErrorHandler()

    def notify(self, error: Any) -> Optional[ErrorDetails]:
        """Show ``error`` to the user. Returns the classification, or None if debounced."""
        details = classify(error)
        logger.debug(f"Classified notification as {details.code.value}")
        if not self.debouncer.should_handle(details.code.value):
            logger.debug(f"Debounced notification for {details.code.value}")
            return None

        try:
            if details.code == ErrorCode.WALLETCONNECT_INTERNAL_ERROR or details.severity == ErrorSeverity.LOW:
                self.notifier.warning(details.user_message, message=details.message, duration=3000)
            else:
                self.notifier.error(details.user_message, message=details.message)
        except Exception as e:
            logger.warning(f"Notifier failed while reporting {details.code.value}: {e}")

        return details
