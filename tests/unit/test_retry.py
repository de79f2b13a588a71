"""Tests for the retry policy."""

import pytest

from rawi.config import Settings
from rawi.models.errors import (
    REMOTE_KINDS,
    ErrorKind,
    InvalidInputError,
    QuotaExhaustedError,
    RateLimitedError,
    RemoteFailureError,
)
from rawi.pipeline.retry import RetryPolicy, call_with_retry, retrying
from tests.conftest import RecordingSleep


class Flaky:
    """Async operation failing with ``errors`` in turn, then returning ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 2
        assert policy.backoff_seconds == 2.0
        assert policy.retry_on == REMOTE_KINDS

    def test_from_settings(self):
        policy = RetryPolicy.from_settings(Settings(max_retries=4, retry_backoff_seconds=0.5))
        assert policy.max_retries == 4
        assert policy.backoff_seconds == 0.5

    def test_quota_retry_can_be_disabled(self):
        policy = RetryPolicy.from_settings(Settings(retry_quota_exhausted=False))
        assert ErrorKind.QUOTA_EXHAUSTED not in policy.retry_on
        assert ErrorKind.RATE_LIMITED in policy.retry_on

    def test_input_errors_not_retryable(self):
        assert not RetryPolicy().should_retry(InvalidInputError("bad"))
        assert not RetryPolicy().should_retry(ValueError("bad"))


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        sleep = RecordingSleep()
        op = Flaky([])
        assert await call_with_retry(op, RetryPolicy(), sleep) == "ok"
        assert op.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_within_budget(self):
        sleep = RecordingSleep()
        op = Flaky([RateLimitedError("slow"), RemoteFailureError("boom")])
        assert await call_with_retry(op, RetryPolicy(max_retries=2), sleep) == "ok"
        assert op.calls == 3
        assert sleep.delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_budget_reraises_last_error(self):
        sleep = RecordingSleep()
        last = QuotaExhaustedError("credits")
        op = Flaky([RemoteFailureError("a"), RemoteFailureError("b"), last])
        with pytest.raises(QuotaExhaustedError) as exc_info:
            await call_with_retry(op, RetryPolicy(max_retries=2), sleep)
        assert exc_info.value is last
        assert op.calls == 3

    @pytest.mark.asyncio
    async def test_zero_budget_calls_once(self):
        op = Flaky([RemoteFailureError("boom")])
        with pytest.raises(RemoteFailureError):
            await call_with_retry(op, RetryPolicy(max_retries=0), RecordingSleep())
        assert op.calls == 1

    @pytest.mark.asyncio
    async def test_non_retryable_kind_raises_immediately(self):
        policy = RetryPolicy(retry_on=frozenset({ErrorKind.RATE_LIMITED}))
        op = Flaky([QuotaExhaustedError("credits")])
        with pytest.raises(QuotaExhaustedError):
            await call_with_retry(op, policy, RecordingSleep())
        assert op.calls == 1

    @pytest.mark.asyncio
    async def test_on_retry_hook(self):
        seen = []
        op = Flaky([RemoteFailureError("a"), RemoteFailureError("b")])
        await call_with_retry(
            op, RetryPolicy(), RecordingSleep(), on_retry=lambda n, e: seen.append((n, e.message))
        )
        assert seen == [(1, "a"), (2, "b")]

    @pytest.mark.asyncio
    async def test_decorator(self):
        sleep = RecordingSleep()
        op = Flaky([RateLimitedError("slow")], result=42)

        @retrying(RetryPolicy(backoff_seconds=0.1), sleep=sleep)
        async def fetch():
            return await op()

        assert await fetch() == 42
        assert sleep.delays == [0.1]
