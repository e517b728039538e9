"""CLI helpers: logging setup and collaborator wiring from configuration."""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any

import typer
from rich.console import Console

from flowdag.drivers.command_runner import SubprocessCommandRunner
from flowdag.drivers.executors import CliTaskExecutor, LocalTaskExecutor
from flowdag.drivers.state_store import CliStateStore, InMemoryStateStore, JsonFileStateStore
from flowdag.kernel.config.models import FlowDAGConfig, LoggingConfig
from flowdag.kernel.domain.task import TaskSpec
from flowdag.kernel.logging import configure_logging, get_logger
from flowdag.kernel.ports import CommandRunner, StateStore, TaskExecutor

console = Console()
logger = get_logger(__name__)


def setup_logging(config: LoggingConfig, level: str | None = None) -> None:
    """Apply the logging section, with ``level`` taking precedence when set."""
    configure_logging(
        level=(level or config.level),  # type: ignore[arg-type]
        format=config.format,
        output_file=config.output_file,
        use_color=config.use_color,
        include_timestamp=config.include_timestamp,
    )


def build_runner(config: FlowDAGConfig, container: str | None = None) -> SubprocessCommandRunner:
    runner_config = config.runner
    if container:
        runner_config = replace(runner_config, container=container)
    return SubprocessCommandRunner(runner_config)


def _dry_run(task: TaskSpec) -> dict[str, Any]:
    logger.info("Dry run: task {task_id} ({role})", task_id=task.id, role=task.role)
    return {"dry_run": True, "task_id": task.id}


def build_task_executor(config: FlowDAGConfig, runner: CommandRunner) -> TaskExecutor:
    """Executor selected by ``executor.kind``.

    ``local`` has no handlers registered from configuration, so every task
    succeeds as a dry run.
    """
    if config.executor.kind == "local":
        return LocalTaskExecutor(
            default_handler=_dry_run,
            retry_backoff_seconds=config.executor.retry_backoff_seconds,
        )
    return CliTaskExecutor(runner, config.executor)


def build_state_store(config: FlowDAGConfig, runner: CommandRunner) -> StateStore:
    provider = config.state_store.provider
    if provider == "file":
        return JsonFileStateStore(config.state_store.path)
    if provider == "cli":
        return CliStateStore(runner, config.executor.command)
    return InMemoryStateStore()


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, default=str, indent=2))
