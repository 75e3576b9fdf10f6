from typing import TypeVar, Callable, Optional, Type, Tuple, Any, Awaitable
import asyncio

from pydantic import BaseModel, Field

T = TypeVar('T')


class RetryPolicy(BaseModel):
    """
    Bounded retry settings for calls to external services.

    ``max_attempts=1`` means no retry at all.
    """

    max_attempts: int = Field(default=1, ge=1, le=10)
    backoff: str = Field(default="exponential", pattern="^(exponential|linear|constant)$")
    initial_delay: float = Field(default=0.5, ge=0.0)
    max_delay: float = Field(default=30.0, ge=0.0)

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 1


async def retry_async(
    func: Callable[..., Awaitable[T]],
    max_attempts: int = 3,
    backoff: str = "exponential",
    initial_delay: float = 0.5,
    max_delay: float = 30.0,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    logger: Optional[Any] = None,
) -> T:
    """
    Retry an async function with configurable backoff.

    Args:
        func: Zero-argument async callable to retry
        max_attempts: Maximum number of attempts
        backoff: "exponential", "linear", or "constant"
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        retry_on: Tuple of exceptions to retry on
        logger: Optional logger for retry attempts

    Returns:
        Result from successful function call

    Raises:
        Last exception if all retries fail
    """
    last_exception: Optional[Exception] = None

    for attempt in range(max_attempts):
        try:
            return await func()
        except retry_on as e:
            last_exception = e

            if attempt < max_attempts - 1:
                if backoff == "exponential":
                    delay = min(initial_delay * (2**attempt), max_delay)
                elif backoff == "linear":
                    delay = min(initial_delay * (attempt + 1), max_delay)
                else:  # constant
                    delay = initial_delay

                if logger:
                    logger.warning(
                        "Retry attempt failed",
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e),
                    )

                await asyncio.sleep(delay)
            elif logger and max_attempts > 1:
                logger.error("All retry attempts failed", attempts=max_attempts, error=str(e))

    if last_exception is None:
        raise RuntimeError("retry_async called with max_attempts < 1")
    raise last_exception


async def retry_with_policy(
    func: Callable[..., Awaitable[T]],
    policy: RetryPolicy,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    logger: Optional[Any] = None,
) -> T:
    """Runs ``func`` under a RetryPolicy; a disabled policy calls it once."""
    if not policy.enabled:
        return await func()
    return await retry_async(
        func,
        max_attempts=policy.max_attempts,
        backoff=policy.backoff,
        initial_delay=policy.initial_delay,
        max_delay=policy.max_delay,
        retry_on=retry_on,
        logger=logger,
    )

