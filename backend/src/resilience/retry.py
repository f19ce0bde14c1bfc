"""
Retry engine built on the error classifier.
"""
import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar, Union, cast

from .classification import (
    classify,
    format_error_for_logging,
    is_retryable_without_changes,
    should_auto_retry,
)
from .exceptions import GasPriceLimitExceededError
from .strategies import BaseStrategy, ClassifiedBackoffStrategy
from .types import ErrorDetails, RetryCondition, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar('T')
F = TypeVar('F', bound=Callable[..., Any])


async def _call(operation: Callable[[], Any]) -> Any:
    result = operation()
    if inspect.isawaitable(result):
        result = await result
    return result


def _should_retry(
    policy: RetryPolicy,
    strategy: BaseStrategy,
    details: ErrorDetails,
    attempt: int
) -> bool:
    if attempt >= policy.max_attempts:
        return False
    if policy.retry_condition is not None:
        return policy.retry_condition(details)
    return strategy.should_retry(details, attempt, policy.max_attempts)


async def retry(
    operation: Callable[[], Union[Awaitable[T], T]],
    policy: Optional[RetryPolicy] = None
) -> T:
    """Run ``operation``, retrying classified-retryable failures with backoff.

    Args:
        operation: Zero-argument callable, sync or returning an awaitable
        policy: Attempt budget, retry condition and delay strategy. Defaults
            to three attempts of classified exponential backoff.

    Returns:
        The first successful result.

    Raises:
        The last error raised by ``operation``, unchanged, once the attempt
        budget is spent or the error is not retryable.

    """
    policy = policy or RetryPolicy()
    strategy = policy.strategy or ClassifiedBackoffStrategy()
    name = getattr(operation, '__qualname__', repr(operation))

    attempt = 1
    while True:
        try:
            return await _call(operation)
        except Exception as e:
            details = classify(e)
            logger.warning(
                f"Attempt {attempt}/{policy.max_attempts} of {name} failed "
                f"({details.code.value}): {e}"
            )

            if not _should_retry(policy, strategy, details, attempt):
                raise

            delay = strategy.calculate_delay(details, attempt)
            logger.info(f"Retrying {name} in {delay:.2f}s using {strategy.name}")
            await asyncio.sleep(delay)
            attempt += 1


def retrying(
    max_attempts: int = 3,
    retry_condition: Optional[RetryCondition] = None,
    strategy: Optional[BaseStrategy] = None
) -> Callable[[F], F]:
    """Decorator adding classified retries to sync or async functions.

    Args:
        max_attempts: Total attempts including the first (default: 3)
        retry_condition: Predicate over the classified error (default: strategy decides)
        strategy: Delay strategy (default: ClassifiedBackoffStrategy)

    Returns:
        Decorated function with retry behaviour

    """
    def decorator(func: F) -> F:
        policy = RetryPolicy(
            max_attempts=max_attempts,
            retry_condition=retry_condition,
            strategy=strategy
        )

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            """Async wrapper for decorated function."""
            return await retry(functools.partial(func, *args, **kwargs), policy)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            """Sync wrapper for decorated function."""
            return asyncio.run(async_wrapper(*args, **kwargs))

        # Return appropriate wrapper based on function type
        if asyncio.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


async def retry_network_operation(
    operation: Callable[[], Union[Awaitable[T], T]],
    max_attempts: int = 5,
    strategy: Optional[BaseStrategy] = None
) -> T:
    """Retry RPC calls and API requests on transient network failures."""
    return await retry(operation, RetryPolicy(
        max_attempts=max_attempts,
        retry_condition=is_retryable_without_changes,
        strategy=strategy
    ))


async def retry_transaction(
    send: Callable[[int], Union[Awaitable[T], T]],
    get_gas_price: Callable[[], Union[Awaitable[int], int]],
    gas_multiplier: float = 1.2,
    max_gas_price: Optional[int] = None,
    max_attempts: int = 3,
    strategy: Optional[BaseStrategy] = None
) -> T:
    """Submit a transaction, raising its gas price on every retry.

    Args:
        send: Submits the transaction at the given gas price (wei)
        get_gas_price: Current network gas price (wei), queried once
        gas_multiplier: Factor applied to the gas price before each attempt
        max_gas_price: Ceiling in wei; exceeding it raises GasPriceLimitExceededError
        max_attempts: Total submission attempts
        strategy: Delay strategy between attempts

    """
    factor = int(gas_multiplier * 100)
    current_price: Optional[int] = None

    async def attempt() -> T:
        nonlocal current_price
        if current_price is None:
            current_price = int(await _call(get_gas_price))

        adjusted = current_price * factor // 100
        if max_gas_price is not None and adjusted > max_gas_price:
            raise GasPriceLimitExceededError(adjusted, max_gas_price)

        try:
            return await _call(functools.partial(send, adjusted))
        except Exception:
            # Next attempt starts from the price that just failed
            current_price = adjusted
            raise

    # Repricing makes GAS_PRICE_TOO_LOW worth retrying here
    return await retry(attempt, RetryPolicy(
        max_attempts=max_attempts,
        retry_condition=should_auto_retry,
        strategy=strategy
    ))


async def safe_async_operation(
    operation: Callable[[], Union[Awaitable[T], T]],
    fallback: Optional[T] = None,
    on_error: Optional[Callable[[ErrorDetails], None]] = None
) -> Optional[T]:
    """Run ``operation`` and return ``fallback`` instead of raising."""
    try:
        return await _call(operation)
    except Exception as e:
        details = classify(e)
        logger.error(f"Safe async operation failed: {format_error_for_logging(e)}")
        if on_error:
            on_error(details)
        return fallback
