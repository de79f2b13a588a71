"""Bounded retry for single remote calls."""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from rawi.config import Settings, get_settings
from rawi.models.errors import REMOTE_KINDS, ErrorKind, RawiError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
RetryHook = Callable[[int, RawiError], None]


@dataclass(frozen=True)
class RetryPolicy:
    """How many extra attempts to make, how long to wait, and for which error kinds."""

    max_retries: int = 2
    backoff_seconds: float = 2.0
    retry_on: frozenset[ErrorKind] = REMOTE_KINDS

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryPolicy":
        settings = settings or get_settings()
        retry_on = set(REMOTE_KINDS)
        if not settings.retry_quota_exhausted:
            retry_on.discard(ErrorKind.QUOTA_EXHAUSTED)
        return cls(
            max_retries=settings.max_retries,
            backoff_seconds=settings.retry_backoff_seconds,
            retry_on=frozenset(retry_on),
        )

    def should_retry(self, exc: BaseException) -> bool:
        return isinstance(exc, RawiError) and exc.kind in self.retry_on


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    on_retry: RetryHook | None = None,
) -> T:
    """Run ``operation``, retrying retryable failures with a fixed backoff.

    Each attempt calls ``operation`` afresh. When the budget is spent the last
    error is re-raised as is.
    """
    policy = policy or RetryPolicy()
    remaining = policy.max_retries
    attempt = 1
    while True:
        try:
            return await operation()
        except RawiError as exc:
            if remaining <= 0 or not policy.should_retry(exc):
                raise
            logger.warning(
                f"Attempt {attempt} failed ({exc.kind.value}: {exc.message}); "
                f"retrying in {policy.backoff_seconds}s, {remaining} retries left"
            )
            if on_retry:
                on_retry(attempt, exc)
            await sleep(policy.backoff_seconds)
            remaining -= 1
            attempt += 1


def retrying(policy: RetryPolicy | None = None, sleep: Sleep = asyncio.sleep):
    """Decorator form of ``call_with_retry`` for async functions."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await call_with_retry(lambda: func(*args, **kwargs), policy, sleep)

        return wrapper

    return decorator
