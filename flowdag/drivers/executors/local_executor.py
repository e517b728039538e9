"""In-process task executor dispatching on the task's agent role."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Mapping
from typing import Any

from flowdag.drivers.executors.retry import Sleep, arun_with_retries
from flowdag.kernel.domain.results import TaskResult
from flowdag.kernel.domain.task import AgentRole, TaskSpec
from flowdag.kernel.logging import get_logger

logger = get_logger(__name__)

TaskHandler = Callable[[TaskSpec], Any]


class LocalTaskExecutor:
    """Runs tasks through registered Python callables.

    Handlers may be sync or async. Sync handlers run in a worker thread so
    the task timeout still applies. A handler may return a ``TaskResult``
    directly; any other return value becomes the ``output`` of a
    successful result. Exceptions raised by a handler are ordinary task
    failures and are retried like any other failure.

    Examples
    --------
    Example usage::

        executor = LocalTaskExecutor({AgentRole.TESTER: run_tests})
        executor.register("coder", write_code)
    """

    def __init__(
        self,
        handlers: Mapping[AgentRole | str, TaskHandler] | None = None,
        *,
        default_handler: TaskHandler | None = None,
        retry_backoff_seconds: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._handlers: dict[AgentRole, TaskHandler] = {}
        for role, handler in (handlers or {}).items():
            self.register(role, handler)
        self.default_handler = default_handler
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    def register(self, role: AgentRole | str, handler: TaskHandler) -> None:
        self._handlers[AgentRole(role)] = handler

    async def arun_task(self, task: TaskSpec) -> TaskResult:
        handler = self._handlers.get(task.role) if task.role else None
        handler = handler or self.default_handler
        if handler is None:
            return TaskResult(
                task_id=task.id,
                success=False,
                error=f"No handler registered for agent '{task.role}'",
                error_type="LookupError",
            )

        async def attempt() -> TaskResult:
            return await self._ainvoke(handler, task)

        return await arun_with_retries(
            task,
            attempt,
            backoff_seconds=self.retry_backoff_seconds,
            sleep=self._sleep,
        )

    async def _ainvoke(self, handler: TaskHandler, task: TaskSpec) -> TaskResult:
        try:
            if inspect.iscoroutinefunction(handler):
                value = await asyncio.wait_for(handler(task), task.timeout)
            else:
                value = await asyncio.wait_for(asyncio.to_thread(handler, task), task.timeout)
        except TimeoutError:
            return TaskResult(
                task_id=task.id,
                success=False,
                error=f"Task timed out after {task.timeout}s",
                error_type="TimeoutError",
            )
        except Exception as e:
            logger.debug("Handler for task {task_id} raised: {error}", task_id=task.id, error=e)
            return TaskResult(
                task_id=task.id,
                success=False,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )

        if isinstance(value, TaskResult):
            return value
        return TaskResult(task_id=task.id, success=True, output=value)
