"""
Process-wide error reporting entry points.
"""
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

LoopExceptionHandler = Callable[[asyncio.AbstractEventLoop, dict], Any]


@dataclass(frozen=True)
class HookSet:
    """Snapshot of the four reporting entry points."""
    error_sink: Callable[..., Any]
    warning_sink: Callable[..., Any]
    excepthook: Callable[..., Any]
    exception_handler: Optional[LoopExceptionHandler]
    loop: Optional[asyncio.AbstractEventLoop] = None

    def is_identical(self, other: 'HookSet') -> bool:
        """Reference identity on every entry point."""
        return (
            self.error_sink is other.error_sink
            and self.warning_sink is other.warning_sink
            and self.excepthook is other.excepthook
            and self.exception_handler is other.exception_handler
        )


class PlatformHooks:
    """Reads and replaces the process-wide reporting entry points.

    The logging sinks are the ``error`` and ``warning`` attributes of
    ``logging.Logger`` so every logger in the process is covered. The
    unhandled-rejection hook is the exception handler of ``loop``; when no
    loop is given the loop running at each activation is used, and when there
    is none the hook is left alone. A captured ``HookSet`` remembers its loop
    so it is reinstalled on that same loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._fixed_loop = loop
        self._loop = loop

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    def bind_running_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        """Adopt the currently running loop unless one was given explicitly."""
        if self._fixed_loop is not None:
            return self._loop

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
            logger.debug("No running event loop; unhandled-rejection hook not managed")
        return self._loop

    def capture(self) -> HookSet:
        loop = self._loop
        return HookSet(
            error_sink=logging.Logger.error,
            warning_sink=logging.Logger.warning,
            excepthook=sys.excepthook,
            exception_handler=loop.get_exception_handler() if loop else None,
            loop=loop
        )

    def install(self, hooks: HookSet) -> None:
        """Install every entry point of ``hooks`` in one synchronous pass."""
        logging.Logger.error = hooks.error_sink
        logging.Logger.warning = hooks.warning_sink
        sys.excepthook = hooks.excepthook
        if hooks.loop is not None:
            hooks.loop.set_exception_handler(hooks.exception_handler)
