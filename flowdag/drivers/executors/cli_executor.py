"""Task executor that shells out to the agent-orchestration CLI."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from flowdag.drivers.executors.retry import Sleep, arun_with_retries
from flowdag.kernel.config.models import ExecutorConfig
from flowdag.kernel.domain.results import Artifact, TaskResult
from flowdag.kernel.domain.task import TaskSpec
from flowdag.kernel.logging import get_logger
from flowdag.kernel.ports.command_runner import CommandResult, CommandRunner

logger = get_logger(__name__)


class CliTaskExecutor:
    """Runs each task as ``<command> task orchestrate <description> ...``.

    Every attempt is bounded by ``TaskSpec.timeout``. A non-zero exit or a
    timeout is retried up to ``TaskSpec.retries`` more times with
    exponential backoff. ``TransportError`` from the runner is not retried.

    Standard output that parses as JSON becomes the result ``output``; a
    top-level ``artifacts`` list is decoded into ``TaskResult.artifacts``
    and ``"success": false`` marks the attempt as failed.
    """

    def __init__(
        self,
        runner: CommandRunner,
        config: ExecutorConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.runner = runner
        self.config = config or ExecutorConfig()
        self._sleep = sleep

    def build_argv(self, task: TaskSpec) -> list[str]:
        argv = [*self.config.command, "task", "orchestrate", task.description]
        if task.role is not None:
            argv += ["--agent", task.role.value]
        argv += ["--priority", task.priority.value, "--task-id", task.id]
        if self.config.non_interactive:
            argv.append("--non-interactive")
        return argv

    async def arun_task(self, task: TaskSpec) -> TaskResult:
        argv = self.build_argv(task)

        async def attempt() -> TaskResult:
            result = await self.runner.arun(argv, timeout=task.timeout, env=self.config.env)
            return self._to_task_result(task, result)

        return await arun_with_retries(
            task,
            attempt,
            backoff_seconds=self.config.retry_backoff_seconds,
            sleep=self._sleep,
        )

    def _to_task_result(self, task: TaskSpec, result: CommandResult) -> TaskResult:
        if result.timed_out:
            return TaskResult(
                task_id=task.id,
                success=False,
                error=f"Task timed out after {task.timeout}s",
                error_type="TimeoutError",
                duration_ms=result.duration_ms,
            )
        if result.exit_code != 0:
            return TaskResult(
                task_id=task.id,
                success=False,
                output=result.stdout or None,
                error=result.stderr.strip() or f"Command exited with code {result.exit_code}",
                error_type="CommandFailed",
                duration_ms=result.duration_ms,
            )

        output = _decode_output(result.stdout)
        if isinstance(output, dict) and output.get("success") is False:
            return TaskResult(
                task_id=task.id,
                success=False,
                output=output,
                error=str(output.get("error") or "Task reported failure"),
                error_type="TaskFailed",
                duration_ms=result.duration_ms,
            )
        return TaskResult(
            task_id=task.id,
            success=True,
            output=output,
            duration_ms=result.duration_ms,
            artifacts=_decode_artifacts(task, output),
        )


def _decode_output(stdout: str) -> Any:
    text = stdout.strip()
    if not text:
        return None
    if text[0] in "{[":
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass
    return text


def _decode_artifacts(task: TaskSpec, output: Any) -> list[Artifact]:
    if not isinstance(output, dict) or not isinstance(output.get("artifacts"), list):
        return []
    artifacts: list[Artifact] = []
    for raw in output["artifacts"]:
        try:
            artifacts.append(Artifact.model_validate(raw))
        except PydanticValidationError as e:
            logger.warning(
                "Ignoring malformed artifact from task {task_id}: {error}",
                task_id=task.id,
                error=e,
            )
    return artifacts
