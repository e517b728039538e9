"""Runs the tasks of a single phase and aggregates their outcomes."""

from __future__ import annotations

import asyncio
import time

from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.results import PhaseResult, TaskResult
from flowdag.kernel.domain.task import TaskSpec
from flowdag.kernel.logging import get_logger
from flowdag.kernel.ports.task_executor import TaskExecutor
from flowdag.kernel.utils.timer import phase_timer

logger = get_logger(__name__)


class PhaseExecutor:
    """Executes one dependency-satisfied phase.

    Parallel phases fan every task out at once and wait for all of them; a
    failing task never cancels its siblings. Sequential phases run tasks in
    declared order and stop at the first failure, leaving the rest
    unattempted.

    Task failures are data. An exception from the task executor is folded
    into a failed ``TaskResult`` with ``transport_error=True``; deciding
    whether to re-raise it is left to the engine.

    The optional phase ``timeout`` is a ceiling on the whole phase: tasks
    still in flight when it expires are cancelled and recorded as failed.
    """

    def __init__(self, task_executor: TaskExecutor) -> None:
        self.task_executor = task_executor

    async def arun(self, phase: PhaseSpec) -> PhaseResult:
        """Run ``phase`` and return its aggregated result.

        Parameters
        ----------
        phase : PhaseSpec
            Phase whose dependencies have already completed

        Returns
        -------
        PhaseResult
            Counts of successful, failed and skipped tasks
        """
        logger.info(
            "Phase {phase_id} started ({count} tasks, {mode})",
            phase_id=phase.id,
            count=phase.task_count,
            mode="parallel" if phase.parallel else "sequential",
        )
        with phase_timer() as timer:
            if phase.parallel:
                results = await self._arun_parallel(phase)
            else:
                results = await self._arun_sequential(phase)

        result = PhaseResult.from_task_results(
            phase.id,
            phase.tasks,
            results,
            duration_ms=timer.duration_ms,
            started_at=timer.started_at,
            completed_at=time.time(),
        )
        log = logger.info if result.success else logger.warning
        log(
            "Phase {phase_id} {outcome}: {ok}/{total} tasks succeeded in {ms:.0f}ms",
            phase_id=phase.id,
            outcome="completed" if result.success else "failed",
            ok=result.successful_tasks,
            total=result.total_tasks,
            ms=result.duration_ms,
        )
        return result

    async def _arun_parallel(self, phase: PhaseSpec) -> list[TaskResult]:
        if not phase.tasks:
            return []

        futures = [asyncio.create_task(self._ainvoke(task, phase.id)) for task in phase.tasks]
        done, not_done = await asyncio.wait(futures, timeout=phase.timeout)

        for future in not_done:
            future.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)

        return [
            future.result() if future in done else self._timeout_result(task, phase)
            for future, task in zip(futures, phase.tasks, strict=True)
        ]

    async def _arun_sequential(self, phase: PhaseSpec) -> list[TaskResult]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + phase.timeout if phase.timeout else None
        results: list[TaskResult] = []

        for task in phase.tasks:
            if deadline is None:
                result = await self._ainvoke(task, phase.id)
            else:
                remaining = deadline - loop.time()
                try:
                    if remaining <= 0:
                        raise TimeoutError
                    result = await asyncio.wait_for(self._ainvoke(task, phase.id), remaining)
                except TimeoutError:
                    result = self._timeout_result(task, phase)

            results.append(result)
            if not result.success:
                skipped = len(phase.tasks) - len(results)
                if skipped:
                    logger.info(
                        "Phase {phase_id} stopping at task {task_id};"
                        " {skipped} task(s) not attempted",
                        phase_id=phase.id,
                        task_id=task.id,
                        skipped=skipped,
                    )
                break

        return results

    async def _ainvoke(self, task: TaskSpec, phase_id: str) -> TaskResult:
        try:
            result = await self.task_executor.arun_task(task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Task {task_id} in phase {phase_id} raised {error_type}: {error}",
                task_id=task.id,
                phase_id=phase_id,
                error_type=type(e).__name__,
                error=e,
            )
            return TaskResult(
                task_id=task.id,
                success=False,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                transport_error=True,
            )

        if not result.success:
            logger.warning(
                "Task {task_id} in phase {phase_id} failed: {error}",
                task_id=task.id,
                phase_id=phase_id,
                error=result.error,
            )
        return result

    @staticmethod
    def _timeout_result(task: TaskSpec, phase: PhaseSpec) -> TaskResult:
        logger.warning(
            "Task {task_id} cancelled: phase {phase_id} exceeded {timeout}s",
            task_id=task.id,
            phase_id=phase.id,
            timeout=phase.timeout,
        )
        return TaskResult(
            task_id=task.id,
            success=False,
            error=f"Phase '{phase.id}' timed out after {phase.timeout}s",
            error_type="TimeoutError",
            duration_ms=(phase.timeout or 0.0) * 1000,
        )
