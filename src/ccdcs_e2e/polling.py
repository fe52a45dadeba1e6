"""Bounded retry helpers for eventually-consistent UI state.

These are used by the extraction adapters and workflows only. The reconciler
and aggregator never wait on anything.
"""
from __future__ import annotations

import logging
from itertools import chain, repeat
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence, TypeVar

import anyio

from .errors import PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INTERVALS: Sequence[float] = (0.5, 1.0, 1.5)


def _schedule(intervals: Sequence[float]) -> Iterator[float]:
    """Yield ``intervals`` in order, then keep repeating the last one."""
    if not intervals:
        raise ValueError("intervals must not be empty")
    return chain(intervals, repeat(intervals[-1]))


async def poll_until(
    check: Callable[[], Awaitable[T]],
    *,
    timeout: float,
    description: str,
    predicate: Callable[[T], bool] = bool,
    intervals: Sequence[float] = DEFAULT_INTERVALS,
    wrong_state: Optional[Callable[[T], bool]] = None,
    retry_on: tuple = (Exception,),
) -> T:
    """Await ``check`` until its value satisfies ``predicate``.

    Args:
        check: Async callable producing the current observation.
        timeout: Overall deadline in seconds.
        description: What is being waited for, used in the timeout message.
        predicate: Returns True when the observation is the wanted one.
        intervals: Sleep between attempts; the last value repeats.
        wrong_state: Flags observations that are terminal but wrong (for
            example a popup reporting that pagination is still underway).
            These are retried, and remembered for the timeout message.
        retry_on: Exceptions raised by ``check`` that count as "not ready yet".

    Returns:
        The first observation satisfying ``predicate``.

    Raises:
        PollTimeoutError: The deadline passed first.
    """
    deadline = anyio.current_time() + timeout
    delays = _schedule(intervals)
    attempts = 0
    last_value: Any = None
    last_error: Optional[BaseException] = None
    wrong_state_seen = False

    while True:
        attempts += 1
        try:
            value = await check()
        except retry_on as exc:
            last_error = exc
            logger.debug(f"Waiting for {description}: attempt {attempts} raised {exc!r}")
        else:
            last_value = value
            if wrong_state is not None and wrong_state(value):
                wrong_state_seen = True
                logger.debug(f"Waiting for {description}: attempt {attempts} saw wrong state {value!r}")
            elif predicate(value):
                return value

        remaining = deadline - anyio.current_time()
        if remaining <= 0:
            break
        await anyio.sleep(min(next(delays), remaining))

    raise PollTimeoutError(
        description,
        timeout=timeout,
        attempts=attempts,
        last_value=last_value,
        last_error=last_error,
        wrong_state_seen=wrong_state_seen,
    )


async def retry_action(
    action: Callable[[], Awaitable[T]],
    *,
    description: str,
    attempts: int = 2,
    interval: float = 1.0,
    retry_on: tuple = (Exception,),
) -> T:
    """Run a flaky UI interaction up to ``attempts`` times.

    Meant for a button that needs a second click or a dialog that does not
    open on the first try. The last error is re-raised when every attempt
    fails.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(1, attempts + 1):
        try:
            return await action()
        except retry_on as exc:
            if attempt == attempts:
                raise
            logger.info(f"{description} failed (attempt {attempt}/{attempts}): {exc}")
            await anyio.sleep(interval)
    raise AssertionError("unreachable")  # pragma: no cover


async def run_cleanup_safely(
    cleanup: Callable[[], Awaitable[Any]],
    *,
    timeout: float,
    description: str = "cleanup",
) -> bool:
    """Run a cleanup step without letting it mask the test outcome.

    Failures and timeouts are logged as warnings and swallowed.

    Returns:
        True when the cleanup finished without error.
    """
    try:
        with anyio.move_on_after(timeout) as scope:
            await cleanup()
    except Exception as exc:
        logger.warning(f"[CLEANUP] {description} failed: {exc}")
        return False
    if scope.cancelled_caught:
        logger.warning(f"[CLEANUP] {description} timed out after {timeout:.0f}s")
        return False
    return True
