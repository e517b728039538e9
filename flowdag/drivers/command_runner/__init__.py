"""Command runner drivers."""

from flowdag.drivers.command_runner.subprocess_runner import SubprocessCommandRunner

__all__ = ["SubprocessCommandRunner"]
