"""Task executor drivers."""

from flowdag.drivers.executors.cli_executor import CliTaskExecutor
from flowdag.drivers.executors.local_executor import LocalTaskExecutor, TaskHandler

__all__ = ["CliTaskExecutor", "LocalTaskExecutor", "TaskHandler"]
