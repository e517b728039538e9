"""Port interfaces consumed by the pipeline engine."""

from flowdag.kernel.ports.command_runner import CommandResult, CommandRunner
from flowdag.kernel.ports.state_store import StateStore, StoredRecord
from flowdag.kernel.ports.task_executor import TaskExecutor

__all__ = [
    "CommandResult",
    "CommandRunner",
    "StateStore",
    "StoredRecord",
    "TaskExecutor",
]
