"""flowdag: phase-based workflow pipelines over external agent executors.

Pipelines are lists of phases with declared prerequisite phases. The engine
orders them topologically, runs each phase's tasks in parallel or in
sequence through a pluggable task executor, and checkpoints progress to a
state store so runs can be monitored from another process.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("flowdag")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"

from flowdag.kernel import (
    AgentRole,
    PhaseSpec,
    PipelineEngine,
    PipelineResult,
    Priority,
    TaskSpec,
)

__all__ = [
    "AgentRole",
    "PhaseSpec",
    "PipelineEngine",
    "PipelineResult",
    "Priority",
    "TaskSpec",
    "__version__",
]
