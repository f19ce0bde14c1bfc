"""
Best-effort patching of third-party objects that raise benign errors directly.

Some pairing-library validation methods raise before any logging or hook path
is reached. ``MethodPatcher`` scans a bounded set of globally reachable
objects for an allow-list of method names and wraps each one so that an error
matching a suppression rule becomes a safe default return value.
"""
import asyncio
import functools
import inspect
import logging
import sys
import threading
import time
import types
from typing import Any, Callable, Iterable, Optional

from ..types import RawError

logger = logging.getLogger(__name__)

# Method name -> value returned when a suppressed error is raised
PATCHABLE_METHODS: dict[str, Any] = {
    "isValidSessionOrPairingTopic": False,
    "is_valid_session_or_pairing_topic": False,
    "isValidDisconnect": False,
    "is_valid_disconnect": False,
    "getData": None,
    "get_data": None,
}

_PATCHED_MARKER = "__resilience_patched__"

_MISSING = object()


class MethodPatcher:
    """Discovers and wraps allow-listed methods on third-party objects."""

    def __init__(
        self,
        should_suppress: Callable[[RawError], bool],
        on_suppressed: Optional[Callable[[RawError], None]] = None,
        module_prefixes: Iterable[str] = ("walletconnect",),
        max_objects: int = 200,
        max_depth: int = 2
    ):
        self._should_suppress = should_suppress
        self._on_suppressed = on_suppressed
        self.module_prefixes = tuple(module_prefixes)
        self.max_objects = max_objects
        self.max_depth = max_depth
        self._roots: list[Any] = []
        # (owner, name, previous value in owner.__dict__ or _MISSING)
        self._patches: list[tuple[Any, str, Any]] = []
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def patched(self) -> list[tuple[Any, str]]:
        with self._lock:
            return [(owner, name) for owner, name, _ in self._patches]

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def register_root(self, obj: Any) -> None:
        """Add an object (e.g. a pairing client) to the discovery locations."""
        with self._lock:
            self._roots.append(obj)

    def _candidate_roots(self) -> list[Any]:
        roots = list(self._roots)
        for name, module in list(sys.modules.items()):
            if module is not None and name.startswith(self.module_prefixes):
                roots.append(module)
        return roots

    def _iter_objects(self) -> Iterable[Any]:
        """Breadth-first walk of the discovery roots, bounded in depth and size."""
        seen: set[int] = set()
        frontier = [(root, 0) for root in self._candidate_roots()]
        visited = 0

        while frontier and visited < self.max_objects:
            obj, depth = frontier.pop(0)
            if id(obj) in seen:
                continue
            seen.add(id(obj))
            visited += 1
            yield obj

            if depth >= self.max_depth:
                continue
            try:
                attrs = list(vars(obj).values())
            except TypeError:
                continue
            for value in attrs:
                if self._is_traversable(value):
                    frontier.append((value, depth + 1))

    @staticmethod
    def _is_traversable(value: Any) -> bool:
        if isinstance(value, (str, bytes, int, float, bool, type(None))):
            return False
        if isinstance(value, (types.FunctionType, types.MethodType, types.BuiltinFunctionType)):
            return False
        if isinstance(value, (staticmethod, classmethod, property)):
            return False
        # Submodules are reached through sys.modules, not through attributes
        return not isinstance(value, types.ModuleType)

    def discover_once(self) -> int:
        """Scan the discovery locations once. Returns the number of methods patched."""
        count = 0
        with self._lock:
            for obj in self._iter_objects():
                for name, default in PATCHABLE_METHODS.items():
                    if self._patch_method(obj, name, default):
                        count += 1
        if count:
            logger.info(f"Patched {count} pairing-library method(s) for error suppression")
        return count

    def _patch_method(self, owner: Any, name: str, default: Any) -> bool:
        is_class = inspect.isclass(owner)
        try:
            # Classes are read statically so staticmethod/classmethod survive
            if is_class:
                original = inspect.getattr_static(owner, name, None)
            else:
                original = getattr(owner, name, None)
        except Exception:
            return False
        if original is None:
            return False

        descriptor = None
        if isinstance(original, (staticmethod, classmethod)):
            descriptor = type(original)
            original = original.__func__
        elif is_class and not inspect.isfunction(original):
            # Properties, slots and other descriptors are left alone
            return False

        if not callable(original) or inspect.isclass(original):
            return False
        if getattr(original, _PATCHED_MARKER, False):
            return False

        try:
            previous = vars(owner).get(name, _MISSING)
        except TypeError:
            return False

        wrapper = self._wrap(original, name, default)
        replacement = descriptor(wrapper) if descriptor else wrapper
        try:
            setattr(owner, name, replacement)
        except (AttributeError, TypeError) as e:
            logger.debug(f"Could not patch {name} on {type(owner).__name__}: {e}")
            return False

        self._patches.append((owner, name, previous))
        return True

    def _handle_failure(self, error: Exception, name: str) -> bool:
        """Decide whether ``error`` raised by ``name`` is suppressed."""
        try:
            raw = RawError.from_exception(error, source=name)
            if not self._should_suppress(raw):
                return False
            if self._on_suppressed:
                self._on_suppressed(raw)
            return True
        except Exception as check_error:
            logger.debug(f"Suppression check failed inside patched {name}: {check_error}")
            return False

    def _wrap(self, original: Callable, name: str, default: Any) -> Callable:
        if asyncio.iscoroutinefunction(original):
            @functools.wraps(original)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await original(*args, **kwargs)
                except Exception as e:
                    if self._handle_failure(e, name):
                        return default
                    raise

            setattr(async_wrapper, _PATCHED_MARKER, True)
            return async_wrapper

        @functools.wraps(original)
        def sync_wrapper(*args, **kwargs):
            try:
                return original(*args, **kwargs)
            except Exception as e:
                if self._handle_failure(e, name):
                    return default
                raise

        setattr(sync_wrapper, _PATCHED_MARKER, True)
        return sync_wrapper

    def restore(self) -> int:
        """Put every original method back. Returns the number restored."""
        with self._lock:
            patches, self._patches = self._patches, []

        for owner, name, previous in reversed(patches):
            try:
                if previous is _MISSING:
                    delattr(owner, name)
                else:
                    setattr(owner, name, previous)
            except (AttributeError, TypeError) as e:
                logger.debug(f"Could not restore {name} on {type(owner).__name__}: {e}")
        return len(patches)

    def start(self, interval: float = 0.1, timeout: float = 10.0) -> None:
        """Scan repeatedly in the background until something is patched or ``timeout``."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._discovery_loop,
            args=(interval, timeout),
            name="resilience-method-discovery",
            daemon=True
        )
        self._thread.start()

    def _discovery_loop(self, interval: float, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        while not self._stop_event.is_set():
            if self.discover_once() > 0:
                return
            if time.monotonic() >= deadline:
                logger.debug("Method discovery timed out without patching anything")
                return
            self._stop_event.wait(interval)

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._thread = None
