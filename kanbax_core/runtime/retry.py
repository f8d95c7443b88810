"""
Retry policy for calls to external collaborators.

Exponential backoff with jitter. Only the issue-tracker adapter retries;
the command pipeline itself never retries a stage.
"""

from __future__ import annotations

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger
from pydantic import BaseModel

from .errors import RetryableError, ServiceError

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Backoff configuration.

    The delay before retry N (0-indexed) is
    ``min(base_delay * exponential_base ** N, max_delay)`` plus up to 25% jitter.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True
    retry_on_status: tuple[int, ...] = (429, 502, 503, 504)

    model_config = {"frozen": True}

    def calculate_delay(self, attempt: int) -> float:
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            delay += delay * 0.25 * random.random()
        return delay

    def should_retry_status(self, status_code: int) -> bool:
        return status_code in self.retry_on_status


DEFAULT_RETRY_POLICY = RetryPolicy()


def with_retry(
    policy: RetryPolicy | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async function while it raises RetryableError.

    Terminal ServiceErrors and unexpected exceptions are re-raised at once.

    Example:
        @with_retry(RetryPolicy(max_attempts=5))
        async def fetch_issue(key: str) -> dict:
            ...
    """
    retry_policy = policy or DEFAULT_RETRY_POLICY

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(retry_policy.max_attempts):
                try:
                    return await func(*args, **kwargs)
                except RetryableError as e:
                    if attempt + 1 >= retry_policy.max_attempts:
                        logger.warning(
                            f"[{e.debug_id}] Giving up on {func.__name__} after "
                            f"{retry_policy.max_attempts} attempts: {e.message_safe}"
                        )
                        raise
                    delay = retry_policy.calculate_delay(attempt)
                    logger.info(
                        f"[{e.debug_id}] Retry {attempt + 1}/{retry_policy.max_attempts} "
                        f"for {func.__name__} in {delay:.2f}s: {e.message_safe}"
                    )
                    await asyncio.sleep(delay)
                except ServiceError:
                    raise
            raise RuntimeError(f"Retry loop exited unexpectedly in {func.__name__}")

        return wrapper

    return decorator
