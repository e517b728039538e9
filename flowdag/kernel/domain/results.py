"""Result models produced by pipeline runs, validation and monitoring."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from flowdag.kernel.domain.task import TaskSpec


class ArtifactType(StrEnum):
    CODE = "code"
    DOCUMENTATION = "documentation"
    TEST = "test"
    CONFIGURATION = "configuration"
    REPORT = "report"


class Artifact(BaseModel):
    """A file produced by a task. Opaque to the engine."""

    type: ArtifactType
    path: str
    size: int = 0
    checksum: str = ""


class TaskResult(BaseModel):
    """Outcome of one task as returned by a task executor.

    Attributes
    ----------
    task_id : str
        Id of the task this result belongs to
    success : bool
        Whether the task succeeded
    output : Any
        Executor payload, opaque to the engine
    error : str | None
        Error message if the task failed
    error_type : str | None
        Class name of the underlying error, if any
    duration_ms : float
        Wall time across all attempts
    attempts : int
        Number of attempts made
    transport_error : bool
        The executor raised instead of returning a result
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    task_id: str
    success: bool
    output: Any = None
    error: str | None = None
    error_type: str | None = None
    duration_ms: float = 0.0
    attempts: int = 1
    artifacts: list[Artifact] = Field(default_factory=list)
    transport_error: bool = False


class PhaseResult(BaseModel):
    """Aggregated outcome of a single phase.

    ``total_tasks`` counts declared tasks; ``skipped_tasks`` counts declared
    tasks that were never attempted, e.g. after a sequential phase stopped at
    its first failure.
    """

    phase_id: str
    success: bool
    duration_ms: float = 0.0
    tasks: tuple[TaskSpec, ...] = ()
    results: list[TaskResult] = Field(default_factory=list)
    total_tasks: int = 0
    successful_tasks: int = 0
    failed_tasks: int = 0
    skipped_tasks: int = 0
    started_at: float = 0.0
    completed_at: float = 0.0

    @classmethod
    def from_task_results(
        cls,
        phase_id: str,
        tasks: Sequence[TaskSpec],
        results: Sequence[TaskResult],
        *,
        duration_ms: float,
        started_at: float,
        completed_at: float,
    ) -> PhaseResult:
        successful = sum(1 for result in results if result.success)
        failed = len(results) - successful
        skipped = len(tasks) - len(results)
        return cls(
            phase_id=phase_id,
            success=failed == 0 and skipped == 0,
            duration_ms=duration_ms,
            tasks=tuple(tasks),
            results=list(results),
            total_tasks=len(tasks),
            successful_tasks=successful,
            failed_tasks=failed,
            skipped_tasks=skipped,
            started_at=started_at,
            completed_at=completed_at,
        )

    @property
    def has_transport_error(self) -> bool:
        return any(result.transport_error for result in self.results)

    @property
    def artifacts(self) -> list[Artifact]:
        return [artifact for result in self.results for artifact in result.artifacts]


class PipelineMetrics(BaseModel):
    """Aggregate task counts over the phases that ran."""

    total_tasks: int = 0
    successful_tasks: int = 0
    failed_tasks: int = 0
    average_task_duration_ms: float = 0.0
    quality_score: float = 0.0

    @classmethod
    def from_phases(cls, phases: Sequence[PhaseResult], duration_ms: float) -> PipelineMetrics:
        """Compute metrics; an empty run scores 0 rather than dividing by zero."""
        total = sum(phase.total_tasks for phase in phases)
        successful = sum(phase.successful_tasks for phase in phases)
        return cls(
            total_tasks=total,
            successful_tasks=successful,
            failed_tasks=total - successful,
            average_task_duration_ms=duration_ms / total if total else 0.0,
            quality_score=successful / total if total else 0.0,
        )


class RunOutcome(StrEnum):
    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial_failure"
    STRUCTURAL_ERROR = "structural_error"


class PipelineResult(BaseModel):
    """Final result of one ``aexecute()`` call."""

    pipeline_id: str
    run_id: str
    outcome: RunOutcome
    success: bool
    duration_ms: float
    execution_order: list[str] = Field(default_factory=list)
    phases: list[PhaseResult] = Field(default_factory=list)
    artifacts: list[Artifact] = Field(default_factory=list)
    metrics: PipelineMetrics = Field(default_factory=PipelineMetrics)

    @property
    def failed_phase(self) -> PhaseResult | None:
        return next((phase for phase in self.phases if not phase.success), None)


class PipelineOutcome(BaseModel):
    """Tagged result separating "could not run" from "ran with failures".

    ``result`` is set for ``succeeded`` and ``partial_failure``; ``errors``
    holds the structural problems for ``structural_error``.
    """

    outcome: RunOutcome
    result: PipelineResult | None = None
    error: str | None = None
    errors: list[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return {
            RunOutcome.SUCCEEDED: 0,
            RunOutcome.PARTIAL_FAILURE: 1,
            RunOutcome.STRUCTURAL_ERROR: 2,
        }[self.outcome]


class ValidationReport(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class RunStatus(StrEnum):
    """Lifecycle status reported by ``amonitor()``."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class MonitoringMetrics(BaseModel):
    total_tasks: int = 0
    successful_tasks: int = 0
    failed_tasks: int = 0


class MonitoringReport(BaseModel):
    """Best-effort progress derived from persisted checkpoints."""

    status: RunStatus
    progress: float = 0.0
    current_phase: str = "unknown"
    eta_ms: float = 0.0
    run_id: str | None = None
    metrics: MonitoringMetrics = Field(default_factory=MonitoringMetrics)
