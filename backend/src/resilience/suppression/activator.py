"""
Process-wide suppression of known-benign pairing-library errors.

``SuppressionActivator`` rewires the logging sinks, ``sys.excepthook`` and
the asyncio exception handler so that errors matching a suppression rule are
counted instead of reported. Deactivation reinstalls the exact objects that
were in place before activation.
"""
import asyncio
import logging
import threading
from typing import Any, Callable, Optional

from ..config import ResilienceSettings
from ..exceptions import ActivationError
from ..notifications import ErrorNotifier
from ..types import Notifier, RawError, SuppressionRule, SuppressionStats
from .hooks import HookSet, PlatformHooks
from .patcher import MethodPatcher
from .rules import RuleEngine

logger = logging.getLogger(__name__)


class SuppressionActivator:
    """Inactive/Active state machine around the platform reporting hooks.

    Every mutation of the counter, the active flag and the saved hooks happens
    under ``self._lock`` inside a single synchronous call.
    """

    _instance: Optional['SuppressionActivator'] = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        settings: Optional[ResilienceSettings] = None,
        hooks: Optional[PlatformHooks] = None,
        rules: Optional[RuleEngine] = None,
        notifier: Optional[Notifier] = None
    ):
        self.settings = settings or ResilienceSettings.from_env()
        self.hooks = hooks or PlatformHooks()
        self.rules = rules or RuleEngine()
        self._error_notifier = ErrorNotifier(notifier) if notifier else None
        self._lock = threading.RLock()
        self._is_active = False
        self._suppressed_count = 0
        self._saved: Optional[HookSet] = None
        self.patcher = MethodPatcher(
            should_suppress=self.should_suppress,
            on_suppressed=self._record_suppressed,
            module_prefixes=self.settings.discovery_prefixes
        )

    @classmethod
    def get_instance(cls) -> 'SuppressionActivator':
        """Return the process-wide activator, creating it on first use."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def saved_hooks(self) -> Optional[HookSet]:
        return self._saved

    def set_notifier(self, notifier: Optional[Notifier]) -> None:
        """Route non-suppressed errors from the global hooks to ``notifier``."""
        self._error_notifier = ErrorNotifier(notifier) if notifier else None

    def add_rule(self, rule: SuppressionRule) -> None:
        """Add a custom suppression rule."""
        self.rules.add_rule(rule)

    def should_suppress(self, error: RawError) -> bool:
        return self.rules.matches(error)

    def test_error_suppression(self, message: str, stack: Optional[str] = None) -> bool:
        """Check whether a message would be suppressed, without counting it."""
        return self.should_suppress(RawError(message=message, stack=stack))

    def get_stats(self) -> SuppressionStats:
        return SuppressionStats(
            suppressed_count=self._suppressed_count,
            is_active=self._is_active,
            rule_count=len(self.rules)
        )

    def reset_stats(self) -> None:
        with self._lock:
            self._suppressed_count = 0

    def _record_suppressed(self, error: RawError) -> None:
        with self._lock:
            if self._is_active:
                self._suppressed_count += 1

    def activate(self) -> None:
        """Install the suppression hooks. No-op when already active."""
        with self._lock:
            if self._is_active:
                return

            logger.info("Activating pairing error suppression...")

            self.hooks.bind_running_loop()
            saved = self.hooks.capture()
            replacement = HookSet(
                error_sink=self._make_log_sink(saved, "error"),
                warning_sink=self._make_log_sink(saved, "warning"),
                excepthook=self._make_excepthook(saved),
                exception_handler=self._make_exception_handler(saved),
                loop=saved.loop
            )

            try:
                self.hooks.install(replacement)
            except Exception as e:
                self.hooks.install(saved)
                raise ActivationError("Failed to install suppression hooks", e) from e

            self._saved = saved
            self._is_active = True

            # Started under the lock so a concurrent deactivate cannot run first
            self.patcher.start(
                interval=self.settings.discovery_interval,
                timeout=self.settings.discovery_timeout
            )

        logger.info("Pairing error suppression activated")

    def deactivate(self) -> None:
        """Restore the pre-activation hooks. No-op when inactive."""
        with self._lock:
            if not self._is_active:
                return

            logger.info("Deactivating pairing error suppression...")
            self.hooks.install(self._saved)
            self._saved = None
            self._is_active = False
            count = self._suppressed_count

            self.patcher.stop()
            self.patcher.restore()

        logger.info(f"Pairing error suppression deactivated. Suppressed {count} errors.")

    def _report_internal_failure(self, saved: HookSet, error: Exception) -> None:
        # Goes through the unwrapped sink so it cannot recurse into the wrapper
        saved.error_sink(logger, f"Error in suppression check: {error}")

    def _make_log_sink(self, saved: HookSet, channel: str) -> Callable[..., Any]:
        activator = self
        original = saved.error_sink if channel == "error" else saved.warning_sink

        def sink(target: logging.Logger, msg: Any, *args: Any, **kwargs: Any) -> None:
            try:
                raw = RawError.from_log_call(
                    msg, args, kwargs, capture_stack=activator.rules.needs_stack
                )
                if activator.should_suppress(raw):
                    activator._record_suppressed(raw)
                    if not activator.settings.is_production:
                        target.debug(f"Suppressed pairing {channel}: {raw.message}")
                    return
            except Exception as e:
                activator._report_internal_failure(saved, e)

            # Keep caller attribution pointing past this wrapper
            kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
            original(target, msg, *args, **kwargs)

        return sink

    def _make_excepthook(self, saved: HookSet) -> Callable[..., Any]:
        activator = self
        original = saved.excepthook

        def excepthook(exc_type, exc_value, exc_tb):
            try:
                if exc_value is not None:
                    raw = RawError.from_exception(exc_value)
                else:
                    raw = RawError(message=getattr(exc_type, '__name__', str(exc_type)))
                if activator.should_suppress(raw):
                    activator._record_suppressed(raw)
                    if not activator.settings.is_production:
                        logger.debug(f"Suppressed pairing uncaught error: {raw.message}")
                    return
                if isinstance(exc_value, Exception):
                    activator._notify(exc_value)
            except Exception as e:
                activator._report_internal_failure(saved, e)

            original(exc_type, exc_value, exc_tb)

        return excepthook

    def _make_exception_handler(self, saved: HookSet) -> Callable[..., Any]:
        activator = self
        original = saved.exception_handler

        def exception_handler(loop: asyncio.AbstractEventLoop, context: dict) -> None:
            try:
                raw = RawError.from_loop_context(context)
                if activator.should_suppress(raw):
                    activator._record_suppressed(raw)
                    if not activator.settings.is_production:
                        logger.debug(f"Suppressed pairing task error: {raw.message}")
                    return
                activator._notify(context.get('exception') or raw)
            except Exception as e:
                activator._report_internal_failure(saved, e)

            if original is not None:
                original(loop, context)
            else:
                loop.default_exception_handler(context)

        return exception_handler

    def _notify(self, error: Any) -> None:
        """Surface a non-suppressed error through the notifier, if one is set."""
        error_notifier = self._error_notifier
        if error_notifier is not None:
            error_notifier.notify(error)


def get_suppression_activator() -> SuppressionActivator:
    """Return the process-wide suppression activator."""
    return SuppressionActivator.get_instance()
