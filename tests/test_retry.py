"""Rate-limit classification and backoff retry."""
from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest

from applyflow.errors import ProviderError
from applyflow.retry import backoff_delay, is_retryable, retry, retry_async


class TestIsRetryable:
    """Only throttling failures are worth retrying."""

    def test_none_is_not_retryable(self) -> None:
        assert is_retryable(None) is False

    def test_top_level_429_status(self) -> None:
        assert is_retryable(ProviderError("boom", status=429)) is True

    def test_status_code_attribute(self) -> None:
        assert is_retryable(SimpleNamespace(status_code=429)) is True

    def test_nested_response_status(self) -> None:
        err = SimpleNamespace(response=SimpleNamespace(status=429))
        assert is_retryable(err) is True

    def test_httpx_status_error_429(self) -> None:
        request = httpx.Request("POST", "https://example.test")
        err = httpx.HTTPStatusError("slow down", request=request, response=httpx.Response(429, request=request))
        assert is_retryable(err) is True

    def test_dict_forms(self) -> None:
        assert is_retryable({"status": 429}) is True
        assert is_retryable({"response": {"statusCode": 429}}) is True
        assert is_retryable({"message": "Quota exceeded for project"}) is True

    def test_string_status(self) -> None:
        assert is_retryable(SimpleNamespace(status="429")) is True

    @pytest.mark.parametrize(
        "message",
        ["Rate limit reached for gpt-5-mini", "429 Too Many Requests", "You exceeded your current QUOTA"],
    )
    def test_message_phrases(self, message: str) -> None:
        assert is_retryable(RuntimeError(message)) is True

    def test_plain_error_without_status(self) -> None:
        assert is_retryable(ValueError("boom")) is False

    def test_other_status_with_plain_message(self) -> None:
        assert is_retryable(ProviderError("Serper HTTP 500", status=500)) is False


class TestBackoffDelay:
    def test_exponential_growth(self) -> None:
        delays = [backoff_delay(n, base_delay=1.0, jitter=False) for n in (1, 2, 3)]
        assert delays == [1.0, 2.0, 4.0]

    def test_capped_at_max_delay(self) -> None:
        assert backoff_delay(10, base_delay=1.0, max_delay=5.0, jitter=False) == 5.0

    def test_jitter_stays_within_half_to_one_and_a_half(self) -> None:
        for _ in range(20):
            assert 1.0 <= backoff_delay(2, base_delay=1.0) <= 3.0


class TestRetryAsync:
    """retries + 1 attempts, and only for retryable failures."""

    @pytest.mark.asyncio
    async def test_succeeds_after_rate_limits(self) -> None:
        calls = 0

        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise ProviderError("429 Too Many Requests", status=429)
            return "ok"

        assert await retry_async(flaky, retries=3, base_delay=0) == "ok"
        assert calls == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self) -> None:
        calls = 0

        async def broken() -> None:
            nonlocal calls
            calls += 1
            raise ValueError("bad payload")

        with pytest.raises(ValueError):
            await retry_async(broken, retries=3, base_delay=0)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_exhausted_budget_raises_last_error(self) -> None:
        calls = 0

        async def throttled() -> None:
            nonlocal calls
            calls += 1
            raise ProviderError("rate limit", status=429)

        with pytest.raises(ProviderError):
            await retry_async(throttled, retries=2, base_delay=0)
        assert calls == 3

    @pytest.mark.asyncio
    async def test_zero_retries_means_one_attempt(self) -> None:
        calls = 0

        async def throttled() -> None:
            nonlocal calls
            calls += 1
            raise ProviderError("rate limit", status=429)

        with pytest.raises(ProviderError):
            await retry_async(throttled, retries=0, base_delay=0)
        assert calls == 1


class TestRetryDecorator:
    @pytest.mark.asyncio
    async def test_wraps_coroutine_function(self) -> None:
        calls = []

        @retry(max_attempts=2, base_delay=0)
        async def fetch(x: int) -> int:
            calls.append(x)
            if len(calls) == 1:
                raise ProviderError("too many requests")
            return x * 2

        assert await fetch(21) == 42
        assert calls == [21, 21]
        assert fetch.__name__ == "fetch"
