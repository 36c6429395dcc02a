"""Rate-limit detection and retry with exponential backoff."""
from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_RATE_LIMIT_PHRASES: tuple[str, ...] = ("rate limit", "too many requests", "quota")


def _status_of(obj: Any) -> Any:
    for attr in ("status", "status_code"):
        value = getattr(obj, attr, None)
        if value is not None:
            return value
    return None


def is_retryable(error: Any) -> bool:
    """True when *error* looks like a transient throttling (429 / quota) failure.

    Checks the status on the error itself, then on a nested ``response``,
    then falls back to the message text.
    """
    if error is None:
        return False

    status = _status_of(error)
    if status is None:
        status = _status_of(getattr(error, "response", None))
    if status is None and isinstance(error, dict):
        status = error.get("status") or error.get("statusCode")
        if status is None and isinstance(error.get("response"), dict):
            status = error["response"].get("status") or error["response"].get("statusCode")

    try:
        if status is not None and int(status) == 429:
            return True
    except (TypeError, ValueError):
        pass

    if isinstance(error, dict):
        text = str(error.get("message") or error.get("error") or "")
    else:
        text = str(error)
    low = text.lower()
    return any(phrase in low for phrase in _RATE_LIMIT_PHRASES)


def backoff_delay(
    attempt: int,
    *,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
) -> float:
    """Delay before retry number *attempt* (1-based)."""
    delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int = 3,
    should_retry: Callable[[BaseException], bool] = is_retryable,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    label: str = "",
) -> T:
    """Await ``fn()``; on a failure accepted by *should_retry*, try again.

    Makes at most ``retries + 1`` attempts. Failures rejected by
    *should_retry* are raised immediately.
    """
    name = label or getattr(fn, "__qualname__", "call")
    max_attempts = retries + 1
    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            if not should_retry(exc):
                raise
            if attempt == max_attempts:
                logger.error("%s failed after %d attempts: %s", name, max_attempts, exc)
                raise
            delay = backoff_delay(
                attempt,
                base_delay=base_delay,
                max_delay=max_delay,
                backoff_factor=backoff_factor,
                jitter=jitter,
            )
            logger.warning(
                "%s attempt %d/%d failed (%s), retrying in %.1fs",
                name,
                attempt,
                max_attempts,
                exc,
                delay,
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> Callable:
    """Decorator: retries the wrapped coroutine function with exponential backoff."""

    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await retry_async(
                lambda: fn(*args, **kwargs),
                retries=max_attempts - 1,
                should_retry=should_retry,
                base_delay=base_delay,
                max_delay=max_delay,
                backoff_factor=backoff_factor,
                jitter=jitter,
                label=fn.__qualname__,
            )

        return wrapper

    return decorator
