"""Configuration data models for flowdag."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from flowdag.kernel.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration for flowdag.

    Attributes
    ----------
    level : str, default="INFO"
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    format : str, default="structured"
        Output format (console, json, structured, rich)
    output_file : str | None, default=None
        Optional file path to write JSON records to
    use_color : bool, default=True
        Use ANSI color codes (auto-disabled for non-TTY)
    include_timestamp : bool, default=True
        Include timestamp in log output

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.flowdag.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export FLOWDAG_LOG_LEVEL=DEBUG
    export FLOWDAG_LOG_FORMAT=json
    export FLOWDAG_LOG_FILE=/var/log/flowdag/runs.log
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Pipeline engine settings.

    Attributes
    ----------
    namespace : str
        State store namespace checkpoints are written under
    max_parallel_tasks_warning : int
        A parallel phase with more tasks than this draws a validation warning
    max_phases_suggestion : int
        A pipeline with more phases than this draws a decomposition suggestion
    """

    namespace: str = "workflows"
    max_parallel_tasks_warning: int = 10
    max_phases_suggestion: int = 20

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValidationError("namespace", "cannot be empty")
        if self.max_parallel_tasks_warning < 1:
            raise ValidationError(
                "max_parallel_tasks_warning", "must be at least 1", self.max_parallel_tasks_warning
            )
        if self.max_phases_suggestion < 1:
            raise ValidationError(
                "max_phases_suggestion", "must be at least 1", self.max_phases_suggestion
            )


@dataclass(frozen=True, slots=True)
class RunnerConfig:
    """Command runner settings.

    When ``container`` is set every command is wrapped in
    ``<docker_binary> exec [-w workdir] [-e K=V ...] <container> ...``.
    """

    container: str | None = None
    docker_binary: str = "docker"
    workdir: str | None = None
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ExecutorConfig:
    """Task executor settings.

    Attributes
    ----------
    kind : str
        ``cli`` shells out per task; ``local`` dispatches to in-process handlers
    command : tuple[str, ...]
        Base argv of the agent-orchestration tool
    retry_backoff_seconds : float
        Base delay between attempts, doubled on each retry
    non_interactive : bool
        Append ``--non-interactive`` to every task invocation
    """

    kind: Literal["cli", "local"] = "cli"
    command: tuple[str, ...] = ("npx", "claude-flow")
    retry_backoff_seconds: float = 1.0
    non_interactive: bool = True
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.command:
            raise ValidationError("command", "cannot be empty")
        if self.retry_backoff_seconds < 0:
            raise ValidationError(
                "retry_backoff_seconds", "cannot be negative", self.retry_backoff_seconds
            )


@dataclass(frozen=True, slots=True)
class StateStoreConfig:
    """Checkpoint store selection.

    ``memory`` keeps records in-process, ``file`` writes one JSON document per
    key under the ``path`` directory and ``cli`` goes through the orchestration
    tool's memory commands.
    """

    provider: Literal["memory", "file", "cli"] = "memory"
    path: str = ".flowdag/state"


@dataclass(slots=True)
class FlowDAGConfig:
    """Complete flowdag configuration.

    Examples
    --------
    TOML configuration in pyproject.toml:

    ```toml
    [tool.flowdag.engine]
    namespace = "workflows"

    [tool.flowdag.runner]
    container = "agents"

    [tool.flowdag.state_store]
    provider = "file"
    path = ".flowdag/state"
    ```
    """

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    state_store: StateStoreConfig = field(default_factory=StateStoreConfig)
