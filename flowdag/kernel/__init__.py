"""flowdag kernel: the public API of the engine.

Drivers, the compiler and the CLI import engine types from here:

- Domain types (tasks, phases, results)
- Port protocols (task executor, state store, command runner)
- Orchestration (resolver, phase executor, engine)
- Exceptions
"""

from flowdag.kernel.config.models import (
    EngineConfig,
    ExecutorConfig,
    FlowDAGConfig,
    LoggingConfig,
    RunnerConfig,
    StateStoreConfig,
)
from flowdag.kernel.domain.dag import DependencyResolver
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.results import (
    Artifact,
    ArtifactType,
    MonitoringMetrics,
    MonitoringReport,
    PhaseResult,
    PipelineMetrics,
    PipelineOutcome,
    PipelineResult,
    RunOutcome,
    RunStatus,
    TaskResult,
    ValidationReport,
)
from flowdag.kernel.domain.task import AgentRole, Priority, TaskSpec
from flowdag.kernel.exceptions import (
    ConfigurationError,
    CycleError,
    FlowDAGError,
    GraphValidationError,
    StateStoreError,
    TransportError,
    ValidationError,
)
from flowdag.kernel.orchestration.engine import PipelineEngine
from flowdag.kernel.orchestration.phase_executor import PhaseExecutor
from flowdag.kernel.orchestration.validator import PipelineValidator
from flowdag.kernel.ports import (
    CommandResult,
    CommandRunner,
    StateStore,
    StoredRecord,
    TaskExecutor,
)

__all__ = [
    # Config
    "EngineConfig",
    "ExecutorConfig",
    "FlowDAGConfig",
    "LoggingConfig",
    "RunnerConfig",
    "StateStoreConfig",
    # Domain
    "AgentRole",
    "Artifact",
    "ArtifactType",
    "DependencyResolver",
    "MonitoringMetrics",
    "MonitoringReport",
    "PhaseResult",
    "PhaseSpec",
    "PipelineMetrics",
    "PipelineOutcome",
    "PipelineResult",
    "Priority",
    "RunOutcome",
    "RunStatus",
    "TaskResult",
    "TaskSpec",
    "ValidationReport",
    # Orchestration
    "PhaseExecutor",
    "PipelineEngine",
    "PipelineValidator",
    # Ports
    "CommandResult",
    "CommandRunner",
    "StateStore",
    "StoredRecord",
    "TaskExecutor",
    # Exceptions
    "ConfigurationError",
    "CycleError",
    "FlowDAGError",
    "GraphValidationError",
    "StateStoreError",
    "TransportError",
    "ValidationError",
]
