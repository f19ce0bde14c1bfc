"""
Polling monitor for multisig transaction status.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from .config import ResilienceSettings
from .types import MonitorSnapshot, StatusSource, TransactionStatus

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_ERRORS = 3
MAX_POLL_INTERVAL = 30.0

StatusCallback = Callable[[TransactionStatus], Any]
ErrorCallback = Callable[[Exception], Any]


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class StatusMonitor:
    """Polls a status source until stopped or out of failure budget.

    Each tick fetches the status once. Success resets the failure counter and
    waits ``poll_interval`` before the next tick; failure waits
    ``min(poll_interval * 2 ** (consecutive_errors - 1), 30s)`` and three
    consecutive failures stop the monitor. With ``stop_when_settled`` the
    monitor also stops once the status is no longer pending.

    Stopping is cooperative: a fetch already in flight completes, but its
    result is not delivered and nothing further is scheduled.
    """

    def __init__(
        self,
        source: StatusSource,
        safe_tx_hash: str,
        on_update: StatusCallback,
        poll_interval: float = 5.0,
        on_error: Optional[ErrorCallback] = None,
        stop_when_settled: bool = False
    ):
        self.source = source
        self.safe_tx_hash = safe_tx_hash
        self.on_update = on_update
        self.on_error = on_error
        self.poll_interval = poll_interval
        self.stop_when_settled = stop_when_settled
        self.is_monitoring = False
        self.consecutive_errors = 0
        self.polls = 0
        self.last_status: Optional[TransactionStatus] = None
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def start(self) -> Callable[[], None]:
        """Begin polling on the running loop. Returns the stop function."""
        if self._task is None:
            self.is_monitoring = True
            self._task = asyncio.get_running_loop().create_task(
                self._run(), name=f"status-monitor-{self.safe_tx_hash}"
            )
        return self.stop

    def stop(self) -> None:
        if self.is_monitoring:
            logger.debug(f"Stopping status monitor for {self.safe_tx_hash}")
        self.is_monitoring = False
        self._wake.set()

    async def wait_closed(self) -> None:
        """Wait until the polling task has finished."""
        if self._task is not None:
            await self._task

    def next_delay(self) -> float:
        if self.consecutive_errors == 0:
            return self.poll_interval
        return min(
            self.poll_interval * (2 ** (self.consecutive_errors - 1)),
            MAX_POLL_INTERVAL
        )

    def snapshot(self) -> MonitorSnapshot:
        return MonitorSnapshot(
            safe_tx_hash=self.safe_tx_hash,
            is_monitoring=self.is_monitoring,
            consecutive_errors=self.consecutive_errors,
            poll_interval=self.poll_interval,
            last_status=self.last_status,
            polls=self.polls
        )

    async def _run(self) -> None:
        while self.is_monitoring:
            keep_going = await self._tick()
            if not keep_going or not self.is_monitoring:
                break
            await self._sleep(self.next_delay())
        self.is_monitoring = False

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _tick(self) -> bool:
        """Run one poll. Returns False when nothing more should be scheduled."""
        self.polls += 1
        try:
            status = await self.source.get_transaction_status(self.safe_tx_hash)
        except Exception as e:
            if not self.is_monitoring:
                return False
            return await self._handle_failure(e)

        if not self.is_monitoring:
            return False

        self.consecutive_errors = 0
        self.last_status = status
        try:
            await _invoke(self.on_update, status)
        except Exception as e:
            logger.warning(f"Status callback for {self.safe_tx_hash} raised: {e}")

        if self.stop_when_settled and not status.is_pending:
            logger.info(
                f"Transaction {self.safe_tx_hash} reached {status.status.value}; monitoring finished"
            )
            return False
        return True

    async def _handle_failure(self, error: Exception) -> bool:
        self.consecutive_errors += 1
        logger.warning(
            f"Status poll {self.consecutive_errors}/{MAX_CONSECUTIVE_ERRORS} "
            f"for {self.safe_tx_hash} failed: {error}"
        )

        if self.on_error is not None:
            try:
                await _invoke(self.on_error, error)
            except Exception as callback_error:
                logger.warning(f"Error callback for {self.safe_tx_hash} raised: {callback_error}")

        if self.consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
            logger.error(
                f"Stopping status monitor for {self.safe_tx_hash} after "
                f"{self.consecutive_errors} consecutive failures"
            )
            return False
        return True


def monitor_transaction_status(
    source: StatusSource,
    safe_tx_hash: str,
    on_update: StatusCallback,
    poll_interval: Optional[float] = None,
    on_error: Optional[ErrorCallback] = None,
    stop_when_settled: bool = False
) -> Callable[[], None]:
    """Start a status monitor on the running loop and return its stop function."""
    if poll_interval is None:
        poll_interval = ResilienceSettings.from_env().poll_interval

    monitor = StatusMonitor(
        source,
        safe_tx_hash,
        on_update,
        poll_interval=poll_interval,
        on_error=on_error,
        stop_when_settled=stop_when_settled
    )
    return monitor.start()
