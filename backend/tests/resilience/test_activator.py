"""
Tests for the process-wide suppression activator.
"""
import asyncio
import logging
import sys
import threading
from unittest.mock import Mock, patch

import pytest

from backend.src.resilience.config import ResilienceSettings
from backend.src.resilience.exceptions import ActivationError
from backend.src.resilience.suppression import (
    HookSet,
    PlatformHooks,
    SuppressionActivator,
    get_suppression_activator,
)
from backend.src.resilience.types import SuppressionRule

LOGGER_NAME = "tests.resilience.pairing"


@pytest.fixture
def settings():
    return ResilienceSettings(discovery_interval=0.01, discovery_timeout=0.05)


@pytest.fixture
def activator(settings):
    activator = SuppressionActivator(settings=settings)
    yield activator
    activator.deactivate()


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


class TestActivationLifecycle:
    """Activate/deactivate state machine."""

    def test_initially_inactive(self, activator):
        stats = activator.get_stats()
        assert stats.is_active is False
        assert stats.suppressed_count == 0
        assert stats.rule_count == 4

    def test_activate_replaces_hooks(self, activator):
        before = PlatformHooks().capture()
        activator.activate()

        after = PlatformHooks().capture()
        assert activator.is_active
        assert logging.Logger.error is not before.error_sink
        assert logging.Logger.warning is not before.warning_sink
        assert sys.excepthook is not before.excepthook
        assert not before.is_identical(after)

    def test_round_trip_restores_identical_hooks(self, activator):
        before = PlatformHooks().capture()

        activator.activate()
        activator.deactivate()

        assert PlatformHooks().capture().is_identical(before)
        assert activator.is_active is False
        assert activator.saved_hooks is None

    def test_activate_is_idempotent(self, activator, caplog):
        before = PlatformHooks().capture()

        with caplog.at_level(logging.INFO, logger="backend.src.resilience.suppression.activator"):
            activator.activate()
            installed = PlatformHooks().capture()
            activator.activate()

        assert PlatformHooks().capture().is_identical(installed)
        assert activator.saved_hooks.is_identical(before)
        banners = [r for r in caplog.records if r.getMessage() == "Activating pairing error suppression..."]
        assert len(banners) == 1

        activator.deactivate()
        assert PlatformHooks().capture().is_identical(before)

    def test_deactivate_when_inactive_is_noop(self, activator):
        before = PlatformHooks().capture()
        activator.deactivate()
        assert PlatformHooks().capture().is_identical(before)

    def test_reactivation_after_deactivate(self, activator):
        before = PlatformHooks().capture()
        activator.activate()
        activator.deactivate()
        activator.activate()
        assert activator.is_active
        activator.deactivate()
        assert PlatformHooks().capture().is_identical(before)

    def test_install_failure_rolls_back(self, settings):
        hooks = PlatformHooks()
        before = hooks.capture()
        real_install = hooks.install
        calls = []

        def failing_install(hook_set):
            calls.append(hook_set)
            if len(calls) == 1:
                raise RuntimeError("cannot install")
            real_install(hook_set)

        hooks.install = failing_install
        activator = SuppressionActivator(settings=settings, hooks=hooks)

        with pytest.raises(ActivationError) as exc_info:
            activator.activate()

        assert isinstance(exc_info.value.original_error, RuntimeError)
        assert activator.is_active is False
        assert calls[1].is_identical(before)
        assert PlatformHooks().capture().is_identical(before)

    def test_concurrent_deactivate_waits_for_discovery_start(self, activator):
        real_start = activator.patcher.start
        race = {}

        def start_then_deactivate(*args, **kwargs):
            real_start(*args, **kwargs)
            thread = threading.Thread(target=activator.deactivate)
            thread.start()
            thread.join(timeout=0.05)
            race["blocked"] = thread.is_alive()
            race["thread"] = thread

        with patch.object(activator.patcher, "start", side_effect=start_then_deactivate):
            activator.activate()
        race["thread"].join(timeout=2.0)

        assert race["blocked"] is True
        assert activator.is_active is False
        assert not activator.patcher.is_running


class TestLoggingSinks:
    """Suppression through the logging sinks."""

    def test_benign_error_is_suppressed(self, activator, caplog):
        activator.activate()
        pairing_logger = logging.getLogger(LOGGER_NAME)

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            pairing_logger.error("No matching key. session: abc123")
            pairing_logger.warning("session or pairing topic doesn't exist")

        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert activator.get_stats().suppressed_count == 2

    def test_formatting_args_are_applied_before_matching(self, activator, caplog):
        activator.activate()
        pairing_logger = logging.getLogger(LOGGER_NAME)

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            pairing_logger.error("No matching key. session: %s", "abc123")

        assert activator.get_stats().suppressed_count == 1

    def test_real_error_is_forwarded(self, activator, caplog):
        activator.activate()
        pairing_logger = logging.getLogger(LOGGER_NAME)

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            pairing_logger.error("User rejected transaction")
            pairing_logger.warning("Network connection failed")

        messages = [r.getMessage() for r in caplog.records]
        assert "User rejected transaction" in messages
        assert "Network connection failed" in messages
        assert activator.get_stats().suppressed_count == 0

    def test_forwarded_record_keeps_caller_location(self, activator, caplog):
        activator.activate()
        pairing_logger = logging.getLogger(LOGGER_NAME)

        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            pairing_logger.error("Network connection failed")

        record = caplog.records[-1]
        assert record.funcName == "test_forwarded_record_keeps_caller_location"

    def test_suppressed_message_mirrored_at_debug(self, activator, caplog):
        activator.activate()
        pairing_logger = logging.getLogger(LOGGER_NAME)

        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            pairing_logger.error("Invalid session topic")

        debug = [r for r in caplog.records if r.levelno == logging.DEBUG]
        assert any("Invalid session topic" in r.getMessage() for r in debug)

    def test_no_debug_mirror_in_production(self, caplog):
        activator = SuppressionActivator(settings=ResilienceSettings(
            environment="production", discovery_interval=0.01, discovery_timeout=0.05
        ))
        try:
            activator.activate()
            pairing_logger = logging.getLogger(LOGGER_NAME)
            with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
                pairing_logger.error("Invalid session topic")
        finally:
            activator.deactivate()

        assert not [r for r in caplog.records if r.name == LOGGER_NAME]
        assert activator.get_stats().suppressed_count == 1

    def test_custom_rule(self, activator, caplog):
        activator.add_rule(SuppressionRule(
            message_patterns=("relay heartbeat missed",),
            description="Relay heartbeats"
        ))
        activator.activate()

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logging.getLogger(LOGGER_NAME).warning("Relay heartbeat missed")

        assert activator.get_stats().suppressed_count == 1
        assert activator.get_stats().rule_count == 5

    def test_mapping_argument_is_formatted(self, activator, caplog):
        activator.activate()

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logging.getLogger(LOGGER_NAME).error(
                "No matching key. session: %(topic)s", {"topic": "abc123"}
            )

        assert activator.get_stats().suppressed_count == 1
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_no_stack_formatted_for_message_rules(self, activator, caplog):
        activator.activate()

        with patch("backend.src.resilience.types.traceback.format_stack") as format_stack:
            with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
                logging.getLogger(LOGGER_NAME).error("No matching key")

        format_stack.assert_not_called()
        assert activator.get_stats().suppressed_count == 1

    def test_stack_scoped_rule_sees_caller_stack(self, activator, caplog):
        activator.add_rule(SuppressionRule(
            message_patterns=("relay timeout",),
            stack_patterns=("test_stack_scoped_rule_sees_caller_stack",),
            description="Relay timeouts raised from this test"
        ))
        activator.activate()

        with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
            logging.getLogger(LOGGER_NAME).error("Relay timeout")

        assert activator.get_stats().suppressed_count == 1

    def test_check_failure_forwards_and_reports(self, activator, caplog):
        activator.activate()
        pairing_logger = logging.getLogger(LOGGER_NAME)

        with patch.object(activator, "should_suppress", side_effect=RuntimeError("rule table broken")):
            with caplog.at_level(logging.ERROR):
                pairing_logger.error("No matching key")

        messages = [r.getMessage() for r in caplog.records]
        assert "Error in suppression check: rule table broken" in messages
        assert "No matching key" in messages

    def test_nothing_counted_after_deactivate(self, activator, caplog):
        activator.activate()
        activator.deactivate()

        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            logging.getLogger(LOGGER_NAME).error("No matching key")

        assert activator.get_stats().suppressed_count == 0
        assert "No matching key" in [r.getMessage() for r in caplog.records]


class TestExceptHook:
    """Suppression of uncaught exceptions."""

    def _raise_and_get_info(self, error):
        try:
            raise error
        except type(error) as caught:
            return type(caught), caught, caught.__traceback__

    def test_benign_uncaught_error_is_suppressed(self, activator):
        original = Mock()
        with patch.object(sys, "excepthook", original):
            activator.activate()
            sys.excepthook(*self._raise_and_get_info(RuntimeError("No matching key")))
            activator.deactivate()

        original.assert_not_called()
        assert activator.get_stats().suppressed_count == 1

    def test_real_uncaught_error_is_forwarded_and_notified(self, settings):
        notifier = Mock()
        activator = SuppressionActivator(settings=settings, notifier=notifier)
        original = Mock()
        exc_info = self._raise_and_get_info(RuntimeError("insufficient funds"))

        with patch.object(sys, "excepthook", original):
            activator.activate()
            sys.excepthook(*exc_info)
            activator.deactivate()

        original.assert_called_once_with(*exc_info)
        notifier.error.assert_called_once()
        assert notifier.error.call_args.args[0] == "Insufficient funds to complete transaction"

    def test_keyboard_interrupt_not_notified(self, settings):
        notifier = Mock()
        activator = SuppressionActivator(settings=settings, notifier=notifier)
        original = Mock()

        with patch.object(sys, "excepthook", original):
            activator.activate()
            sys.excepthook(KeyboardInterrupt, KeyboardInterrupt(), None)
            activator.deactivate()

        original.assert_called_once()
        notifier.error.assert_not_called()
        notifier.warning.assert_not_called()


class TestLoopExceptionHandler:
    """Suppression of unhandled task errors on an event loop."""

    def test_handler_installed_and_restored(self, settings, loop):
        previous = Mock()
        loop.set_exception_handler(previous)
        activator = SuppressionActivator(settings=settings, hooks=PlatformHooks(loop))

        activator.activate()
        assert loop.get_exception_handler() is not previous
        activator.deactivate()

        assert loop.get_exception_handler() is previous

    def test_benign_task_error_is_suppressed(self, settings, loop):
        previous = Mock()
        loop.set_exception_handler(previous)
        activator = SuppressionActivator(settings=settings, hooks=PlatformHooks(loop))
        activator.activate()
        try:
            loop.call_exception_handler({
                "message": "Task exception was never retrieved",
                "exception": RuntimeError("session or pairing topic doesn't exist"),
            })
        finally:
            activator.deactivate()

        previous.assert_not_called()
        assert activator.get_stats().suppressed_count == 1

    def test_real_task_error_is_forwarded(self, settings, loop):
        previous = Mock()
        loop.set_exception_handler(previous)
        activator = SuppressionActivator(settings=settings, hooks=PlatformHooks(loop))
        activator.activate()
        context = {
            "message": "Task exception was never retrieved",
            "exception": RuntimeError("Network connection failed"),
        }
        try:
            loop.call_exception_handler(context)
        finally:
            activator.deactivate()

        previous.assert_called_once_with(loop, context)
        assert activator.get_stats().suppressed_count == 0

    def test_default_handler_used_when_none_set(self, settings, loop):
        activator = SuppressionActivator(settings=settings, hooks=PlatformHooks(loop))
        activator.activate()
        context = {"message": "Network connection failed"}
        try:
            with patch.object(loop, "default_exception_handler") as default:
                loop.call_exception_handler(context)
        finally:
            activator.deactivate()

        default.assert_called_once_with(context)
        assert loop.get_exception_handler() is None

    @pytest.mark.asyncio
    async def test_binds_running_loop(self, settings):
        running = asyncio.get_running_loop()
        previous = running.get_exception_handler()
        activator = SuppressionActivator(settings=settings)

        activator.activate()
        try:
            assert activator.hooks.loop is running
            assert running.get_exception_handler() is not previous
        finally:
            activator.deactivate()

        assert running.get_exception_handler() is previous

    def test_rebinds_to_each_new_loop(self, settings):
        activator = SuppressionActivator(settings=settings)
        installed = []

        async def cycle():
            running = asyncio.get_running_loop()
            previous = running.get_exception_handler()
            activator.activate()
            try:
                installed.append(running.get_exception_handler())
                running.call_exception_handler({
                    "message": "Task exception was never retrieved",
                    "exception": RuntimeError("No matching key"),
                })
            finally:
                activator.deactivate()
            assert running.get_exception_handler() is previous

        asyncio.run(cycle())
        asyncio.run(cycle())

        assert len(installed) == 2
        assert all(handler is not None for handler in installed)
        assert activator.get_stats().suppressed_count == 2

    def test_restores_on_loop_captured_at_activation(self, settings):
        first = asyncio.new_event_loop()
        second = asyncio.new_event_loop()
        activator = SuppressionActivator(settings=settings)
        try:
            async def activate_only():
                activator.activate()

            first.run_until_complete(activate_only())
            handler = first.get_exception_handler()
            second.run_until_complete(asyncio.sleep(0))
            activator.deactivate()

            assert handler is not None
            assert first.get_exception_handler() is None
            assert second.get_exception_handler() is None
        finally:
            activator.deactivate()
            first.close()
            second.close()


class TestNotifications:
    """Notifier integration for errors that are not suppressed."""

    def test_internal_error_is_shown_as_warning(self, settings, loop):
        # Named after the pairing library method so the traceback identifies it
        def deleteSession():
            raise RuntimeError("unexpected pairing state")

        try:
            deleteSession()
        except RuntimeError as e:
            error = e

        notifier = Mock()
        activator = SuppressionActivator(
            settings=settings, hooks=PlatformHooks(loop), notifier=notifier
        )
        activator.activate()
        try:
            with patch.object(loop, "default_exception_handler"):
                loop.call_exception_handler({
                    "message": "Task exception was never retrieved",
                    "exception": error,
                })
        finally:
            activator.deactivate()

        # Not covered by a suppression rule, but classified as pairing internal
        notifier.warning.assert_called_once()
        assert notifier.warning.call_args.kwargs["duration"] == 3000
        notifier.error.assert_not_called()

    def test_set_notifier(self, activator):
        notifier = Mock()
        activator.set_notifier(notifier)
        activator._notify(RuntimeError("nonce too low"))
        notifier.error.assert_called_once()

        activator.set_notifier(None)
        activator._notify(RuntimeError("nonce too low"))
        notifier.error.assert_called_once()


class TestStats:
    """Counters and ad-hoc checks."""

    def test_test_error_suppression_does_not_count(self, activator):
        assert activator.test_error_suppression("No matching key. session: abc123")
        assert not activator.test_error_suppression("User rejected transaction")
        assert activator.get_stats().suppressed_count == 0

    def test_reset_stats(self, activator, caplog):
        activator.activate()
        with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
            logging.getLogger(LOGGER_NAME).error("No matching key")
        assert activator.get_stats().suppressed_count == 1

        activator.reset_stats()
        assert activator.get_stats().suppressed_count == 0

    def test_deactivate_logs_count(self, activator, caplog):
        activator.activate()
        logging.getLogger(LOGGER_NAME).error("No matching key")

        with caplog.at_level(logging.INFO, logger="backend.src.resilience.suppression.activator"):
            activator.deactivate()

        assert "Pairing error suppression deactivated. Suppressed 1 errors." in caplog.messages


class TestSingleton:
    """Process-wide accessor."""

    def test_get_suppression_activator_returns_same_instance(self):
        assert get_suppression_activator() is get_suppression_activator()
        assert isinstance(get_suppression_activator(), SuppressionActivator)

    def test_hookset_identity(self):
        first = PlatformHooks().capture()
        second = PlatformHooks().capture()
        assert first.is_identical(second)

        other = HookSet(
            error_sink=first.error_sink,
            warning_sink=first.warning_sink,
            excepthook=Mock(),
            exception_handler=first.exception_handler
        )
        assert not first.is_identical(other)
