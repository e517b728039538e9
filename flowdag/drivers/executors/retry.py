"""Retry loop shared by the task executors."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from flowdag.kernel.domain.results import TaskResult
from flowdag.kernel.domain.task import TaskSpec
from flowdag.kernel.logging import get_logger
from flowdag.kernel.utils.timer import Timer

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def arun_with_retries(
    task: TaskSpec,
    attempt: Callable[[], Awaitable[TaskResult]],
    *,
    backoff_seconds: float,
    sleep: Sleep = asyncio.sleep,
) -> TaskResult:
    """Call ``attempt`` up to ``task.retries + 1`` times until it succeeds.

    The delay before retry ``n`` (0-based) is ``backoff_seconds * 2**n``.
    Exceptions from ``attempt`` are not retried; they propagate.

    Returns
    -------
    TaskResult
        The last attempt's result with ``attempts`` and total ``duration_ms``
    """
    timer = Timer()
    attempts = 0
    while True:
        result = await attempt()
        attempts += 1
        if result.success or attempts > task.retries:
            break
        delay = backoff_seconds * 2 ** (attempts - 1)
        logger.info(
            "Task {task_id} attempt {n}/{total} failed, retrying in {delay}s: {error}",
            task_id=task.id,
            n=attempts,
            total=task.retries + 1,
            delay=delay,
            error=result.error,
        )
        if delay > 0:
            await sleep(delay)

    return result.model_copy(update={"attempts": attempts, "duration_ms": timer.duration_ms})
