"""
Tests for retry delay strategies.
"""
from unittest.mock import patch

from backend.src.resilience.classification import classify, should_auto_retry
from backend.src.resilience.strategies import (
    BaseStrategy,
    ClassifiedBackoffStrategy,
    FixedDelayStrategy,
)


class TestClassifiedBackoffStrategy:
    """Test cases for ClassifiedBackoffStrategy."""

    def test_delay_follows_error_code(self):
        strategy = ClassifiedBackoffStrategy()
        with patch("backend.src.resilience.classification.classifier.random.uniform", return_value=0.0):
            assert strategy.calculate_delay(classify("network timeout"), 1) == 2.0
            assert strategy.calculate_delay(classify("network timeout"), 3) == 8.0
            assert strategy.calculate_delay(classify("rpc unavailable"), 1) == 3.0
            assert strategy.calculate_delay(classify("rate limit hit"), 2) == 10.0

    def test_max_delay_caps_result(self):
        strategy = ClassifiedBackoffStrategy(max_delay=4.0)
        assert strategy.calculate_delay(classify("rate limit hit"), 3) == 4.0

    def test_should_retry_logic(self):
        strategy = ClassifiedBackoffStrategy()

        assert strategy.should_retry(classify("network timeout"), 1, 3) is True
        assert strategy.should_retry(classify("network timeout"), 3, 3) is False
        assert strategy.should_retry(classify("insufficient funds"), 1, 3) is False
        # Resending an underpriced transaction unchanged cannot succeed
        assert strategy.should_retry(classify("transaction underpriced"), 1, 3) is False

    def test_custom_retry_condition(self):
        strategy = ClassifiedBackoffStrategy(retry_condition=should_auto_retry)
        assert strategy.should_retry(classify("transaction underpriced"), 1, 3) is True

    def test_name(self):
        assert ClassifiedBackoffStrategy(max_delay=30.0).name == "ClassifiedBackoff(max=30.0)"


class TestFixedDelayStrategy:
    """Test cases for FixedDelayStrategy."""

    def test_fixed_delay(self):
        strategy = FixedDelayStrategy(delay=2.5)

        assert strategy.calculate_delay(classify("network timeout"), 1) == 2.5
        assert strategy.calculate_delay(classify("rpc unavailable"), 5) == 2.5

    def test_zero_delay(self):
        strategy = FixedDelayStrategy(delay=0)
        assert strategy.calculate_delay(classify("network timeout"), 1) == 0

    def test_name(self):
        assert FixedDelayStrategy(delay=1.0).name == "FixedDelay(delay=1.0)"

    def test_is_base_strategy(self):
        assert isinstance(FixedDelayStrategy(), BaseStrategy)
