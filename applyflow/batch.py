"""Run many async units of work with bounded concurrency and rate-limit retry.

Results are slotted by input index whatever order units finish in. Only
failures accepted by :func:`applyflow.retry.is_retryable` are retried.

* :func:`run_batch` (strict) raises the first terminal failure. Units already
  in flight are left to finish; their results are discarded.
* :func:`run_batch_lenient` records a terminal failure as an
  :class:`ItemFailure` in that item's slot and carries on.
* :func:`run_batch_streaming` is the lenient runner wired to an event sink
  (``progress`` after every item, ``done`` at the end).
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from applyflow.log import get_logger
from applyflow.models import shorten_reason
from applyflow.retry import is_retryable, retry_async

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Handler = Callable[[T, int], Awaitable[R]]


@dataclass(frozen=True)
class Progress:
    done: int
    total: int


@dataclass(frozen=True)
class ItemFailure:
    error: str
    ok: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "error": self.error}


@dataclass(frozen=True)
class BatchOptions:
    concurrency: int = 2
    retries: int = 3
    base_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")


async def _run(
    items: Sequence[T],
    handler: Handler,
    options: BatchOptions,
    *,
    lenient: bool,
    on_progress: Callable[[Progress], None] | None,
    on_result: Callable[[int, Any], None] | None,
) -> list[Any]:
    total = len(items)
    results: list[Any] = [None] * total
    slots = asyncio.Semaphore(options.concurrency)
    done = 0

    async def unit(item: T, index: int) -> None:
        nonlocal done
        async with slots:
            try:
                value = await retry_async(
                    lambda: handler(item, index),
                    retries=options.retries,
                    should_retry=is_retryable,
                    base_delay=options.base_delay,
                    label=f"batch item {index}",
                )
            except Exception as exc:
                if not lenient:
                    raise
                log.warning("Batch item %d failed: %s", index, exc)
                value = ItemFailure(error=shorten_reason(str(exc) or "Failed"))
        results[index] = value
        done += 1
        log.debug("Batch progress %d/%d", done, total)
        if on_result is not None:
            on_result(index, value)
        if on_progress is not None:
            on_progress(Progress(done=done, total=total))

    await asyncio.gather(*(unit(item, i) for i, item in enumerate(items)))
    return results


async def run_batch(
    items: Sequence[T],
    handler: Callable[[T, int], Awaitable[R]],
    *,
    concurrency: int = 2,
    retries: int = 3,
    base_delay: float = 1.0,
    on_progress: Callable[[Progress], None] | None = None,
    on_result: Callable[[int, R], None] | None = None,
) -> list[R]:
    """Strict mode: every item succeeds or the whole batch raises."""
    options = BatchOptions(concurrency, retries, base_delay)
    return await _run(
        list(items), handler, options,
        lenient=False, on_progress=on_progress, on_result=on_result,
    )


async def run_batch_lenient(
    items: Sequence[T],
    handler: Callable[[T, int], Awaitable[R]],
    *,
    concurrency: int = 2,
    retries: int = 3,
    base_delay: float = 1.0,
    on_progress: Callable[[Progress], None] | None = None,
    on_result: Callable[[int, R | ItemFailure], None] | None = None,
) -> list[R | ItemFailure]:
    """Lenient mode: terminal failures become :class:`ItemFailure` entries."""
    options = BatchOptions(concurrency, retries, base_delay)
    return await _run(
        list(items), handler, options,
        lenient=True, on_progress=on_progress, on_result=on_result,
    )


async def run_batch_streaming(
    items: Sequence[T],
    handler: Callable[[T, int], Awaitable[R]],
    send: Callable[[dict[str, Any]], None],
    *,
    concurrency: int = 2,
    retries: int = 3,
    base_delay: float = 1.0,
) -> list[R | ItemFailure]:
    def progress(p: Progress) -> None:
        send({"type": "progress", "done": p.done, "total": p.total})

    results = await run_batch_lenient(
        items,
        handler,
        concurrency=concurrency,
        retries=retries,
        base_delay=base_delay,
        on_progress=progress,
    )
    send({"type": "done"})
    return results


def format_sse(event: dict[str, Any]) -> str:
    """Render one event as a server-sent-events ``data:`` frame."""
    return f"data: {json.dumps(event)}\n\n"
