"""Bounded concurrent batch runner: ordering, ceiling, retry and failure modes."""
from __future__ import annotations

import asyncio
import json

import pytest

from applyflow.batch import (
    BatchOptions,
    ItemFailure,
    Progress,
    format_sse,
    run_batch,
    run_batch_lenient,
    run_batch_streaming,
)
from applyflow.errors import ProviderError


class TestResultOrdering:
    """Results land at their input index whatever order units finish in."""

    @pytest.mark.asyncio
    async def test_results_slotted_by_index(self) -> None:
        async def handler(item: int, index: int) -> int:
            await asyncio.sleep(0.001 * (5 - index))
            return item * 10

        results = await run_batch([1, 2, 3, 4, 5], handler, concurrency=3, base_delay=0)
        assert results == [10, 20, 30, 40, 50]

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        async def handler(item: int, index: int) -> int:
            return item

        assert await run_batch([], handler) == []

    @pytest.mark.asyncio
    async def test_handler_receives_index(self) -> None:
        async def handler(item: str, index: int) -> str:
            return f"{index}:{item}"

        assert await run_batch(["a", "b"], handler) == ["0:a", "1:b"]


class TestConcurrencyCeiling:
    """Never more than ``concurrency`` units in flight."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 2, 4])
    async def test_in_flight_never_exceeds_limit(self, limit: int) -> None:
        active = 0
        peak = 0

        async def handler(item: int, index: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1
            return item

        await run_batch(list(range(10)), handler, concurrency=limit, base_delay=0)
        assert peak <= limit
        assert peak == min(limit, 10)


class TestRateLimitRetry:
    @pytest.mark.asyncio
    async def test_item_recovers_after_two_429s(self) -> None:
        """Item 2 fails twice with 429 then succeeds; progress reports 1..5."""
        attempts = {i: 0 for i in range(5)}
        progress: list[Progress] = []

        async def handler(item: str, index: int) -> str:
            attempts[index] += 1
            if index == 2 and attempts[index] <= 2:
                raise ProviderError("429 Too Many Requests", status=429)
            return item.upper()

        results = await run_batch(
            ["a", "b", "c", "d", "e"],
            handler,
            concurrency=2,
            retries=3,
            base_delay=0,
            on_progress=progress.append,
        )
        assert results[2] == "C"
        assert attempts[2] == 3
        assert [p.done for p in progress] == [1, 2, 3, 4, 5]
        assert all(p.total == 5 for p in progress)

    @pytest.mark.asyncio
    async def test_non_retryable_error_is_not_retried(self) -> None:
        calls = 0

        async def handler(item: int, index: int) -> int:
            nonlocal calls
            calls += 1
            raise ProviderError("Serper HTTP 500", status=500)

        results = await run_batch_lenient([1], handler, retries=3, base_delay=0)
        assert calls == 1
        assert isinstance(results[0], ItemFailure)


class TestStrictMode:
    @pytest.mark.asyncio
    async def test_first_terminal_failure_aborts(self) -> None:
        async def handler(item: int, index: int) -> int:
            if index == 4:
                raise ProviderError("bad response")
            return item

        with pytest.raises(ProviderError, match="bad response"):
            await run_batch(list(range(5)), handler, concurrency=5, base_delay=0)

    @pytest.mark.asyncio
    async def test_exhausted_retries_abort(self) -> None:
        calls = 0

        async def handler(item: int, index: int) -> int:
            nonlocal calls
            calls += 1
            raise ProviderError("rate limit", status=429)

        with pytest.raises(ProviderError):
            await run_batch([1], handler, retries=1, base_delay=0)
        assert calls == 2


class TestLenientMode:
    @pytest.mark.asyncio
    async def test_failure_recorded_in_its_slot(self) -> None:
        async def handler(item: int, index: int) -> int:
            if index == 1:
                raise ValueError("cannot parse")
            return item

        results = await run_batch_lenient([7, 8, 9], handler, base_delay=0)
        assert results[0] == 7 and results[2] == 9
        assert results[1] == ItemFailure(error="cannot parse")
        assert results[1].to_dict() == {"ok": False, "error": "cannot parse"}

    @pytest.mark.asyncio
    async def test_empty_message_becomes_failed(self) -> None:
        async def handler(item: int, index: int) -> int:
            raise RuntimeError()

        results = await run_batch_lenient([1], handler, base_delay=0)
        assert results[0].error == "Failed"

    @pytest.mark.asyncio
    async def test_long_message_is_truncated(self) -> None:
        async def handler(item: int, index: int) -> int:
            raise ValueError("x" * 1000)

        results = await run_batch_lenient([1], handler, base_delay=0)
        assert results[0].error == "x" * 200 + "…"

    @pytest.mark.asyncio
    async def test_on_result_sees_every_item_before_progress(self) -> None:
        seen: list[tuple[str, int]] = []

        async def handler(item: int, index: int) -> int:
            if index == 0:
                raise ValueError("nope")
            return item

        await run_batch_lenient(
            [1, 2],
            handler,
            concurrency=1,
            base_delay=0,
            on_result=lambda i, v: seen.append(("result", i)),
            on_progress=lambda p: seen.append(("progress", p.done)),
        )
        assert seen == [("result", 0), ("progress", 1), ("result", 1), ("progress", 2)]


class TestStreaming:
    @pytest.mark.asyncio
    async def test_progress_then_done_events(self) -> None:
        events: list[dict] = []

        async def handler(item: int, index: int) -> int:
            if item == 2:
                raise ValueError("skip")
            return item

        results = await run_batch_streaming([1, 2, 3], handler, events.append, concurrency=1, base_delay=0)
        assert [e["type"] for e in events] == ["progress", "progress", "progress", "done"]
        assert [e["done"] for e in events[:3]] == [1, 2, 3]
        assert isinstance(results[1], ItemFailure)

    def test_format_sse_frame(self) -> None:
        frame = format_sse({"type": "progress", "done": 1, "total": 2})
        assert frame.startswith("data: ") and frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {"type": "progress", "done": 1, "total": 2}


class TestBatchOptions:
    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError):
            BatchOptions(concurrency=0)

    def test_rejects_negative_retries(self) -> None:
        with pytest.raises(ValueError):
            BatchOptions(retries=-1)
