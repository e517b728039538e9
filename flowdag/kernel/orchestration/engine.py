"""Pipeline engine: drives phases in dependency order and checkpoints progress."""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence

from flowdag.kernel.config.models import EngineConfig
from flowdag.kernel.domain.dag import DependencyResolver
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.results import (
    MonitoringReport,
    PhaseResult,
    PipelineMetrics,
    PipelineOutcome,
    PipelineResult,
    RunOutcome,
    RunStatus,
    ValidationReport,
)
from flowdag.kernel.exceptions import GraphValidationError, TransportError
from flowdag.kernel.logging import get_logger, reset_correlation_id, set_correlation_id
from flowdag.kernel.orchestration.checkpoints import CheckpointWriter, build_monitoring_report
from flowdag.kernel.orchestration.phase_executor import PhaseExecutor
from flowdag.kernel.orchestration.validator import PipelineValidator
from flowdag.kernel.ports.state_store import StateStore
from flowdag.kernel.ports.task_executor import TaskExecutor
from flowdag.kernel.utils.timer import Timer, phase_timer

logger = get_logger(__name__)


class PipelineEngine:
    """Owns a fixed list of phases and runs them against two collaborators.

    Each ``aexecute()`` call is an independent run with its own run id:

    1. write the ``started`` checkpoint
    2. resolve the phase order and reject structural errors
    3. run phases in order, checkpointing before and after each, stopping
       at the first unsuccessful phase
    4. write the final checkpoint and return the aggregated result

    Any exception after step 1 is recorded in a ``failed`` checkpoint and
    re-raised. Concurrent runs of the same pipeline id are not supported.

    Examples
    --------
    Example usage::

        engine = PipelineEngine(
            "release",
            phases,
            task_executor=CliTaskExecutor(runner),
            state_store=InMemoryStateStore(),
        )
        report = engine.validate()
        if report.is_valid:
            result = await engine.aexecute()
    """

    def __init__(
        self,
        pipeline_id: str,
        phases: Sequence[PhaseSpec],
        task_executor: TaskExecutor,
        state_store: StateStore,
        *,
        name: str | None = None,
        description: str = "",
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args
        ----
            pipeline_id: Identifier used as the checkpoint key prefix
            phases: Every phase of the pipeline, fixed for the engine's lifetime
            task_executor: Backend that runs individual tasks
            state_store: Backend that persists checkpoints
            name: Human-readable label, defaults to the id
            description: Free text
            config: Checkpoint namespace and validation thresholds
        """
        self.id = pipeline_id
        self.name = name or pipeline_id
        self.description = description
        self.config = config or EngineConfig()
        self.task_executor = task_executor
        self.state_store = state_store
        self._phases = tuple(phases)
        self._phase_executor = PhaseExecutor(task_executor)
        self._validator = PipelineValidator(self.config)

    @property
    def phases(self) -> tuple[PhaseSpec, ...]:
        return self._phases

    def resolve_order(self) -> list[PhaseSpec]:
        """Return phases in execution order, rejecting unusable pipelines.

        Raises
        ------
        CycleError
            If the phase graph contains a cycle
        GraphValidationError
            For unknown dependencies or malformed tasks
        """
        ordered = DependencyResolver(self._phases).resolve()
        if errors := self._validator.structural_errors(self._phases):
            raise GraphValidationError(errors)
        return ordered

    def validate(self) -> ValidationReport:
        """Static analysis of the phase graph. Touches no collaborator."""
        return self._validator.validate(self._phases)

    async def aexecute(self) -> PipelineResult:
        """Run the pipeline once.

        Returns
        -------
        PipelineResult
            Fully described result, ``success=False`` when a phase failed

        Raises
        ------
        GraphValidationError
            The pipeline could not run (``CycleError`` for cycles)
        TransportError
            A task could not reach its executor; ``phase_result`` holds the
            partial phase outcome
        StateStoreError
            A checkpoint write failed
        """
        run_id = uuid.uuid4().hex
        token = set_correlation_id(run_id)
        checkpoints = CheckpointWriter(self.state_store, self.config.namespace, self.id, run_id)
        try:
            with phase_timer() as timer:
                first_phase = self._phases[0].id if self._phases else None
                await checkpoints.astarted(len(self._phases), first_phase)
                logger.info("Pipeline {pipeline_id} run started", pipeline_id=self.id)
                try:
                    result = await self._arun_phases(checkpoints, run_id, timer)
                except Exception as e:
                    await self._arecord_failure(checkpoints, e)
                    raise
            return result
        finally:
            reset_correlation_id(token)

    async def _arun_phases(
        self, checkpoints: CheckpointWriter, run_id: str, timer: Timer
    ) -> PipelineResult:
        ordered = self.resolve_order()
        order_ids = [phase.id for phase in ordered]
        logger.debug("Resolved phase order: {order}", order=" -> ".join(order_ids))

        phase_results: list[PhaseResult] = []
        for index, phase in enumerate(ordered):
            await checkpoints.aphase_started(phase.id, time.time())
            phase_result = await self._phase_executor.arun(phase)
            phase_results.append(phase_result)

            has_next = phase_result.success and index + 1 < len(ordered)
            await checkpoints.aphase_finished(
                phase_result, ordered[index + 1].id if has_next else None
            )

            if phase_result.has_transport_error:
                raise self._transport_error(phase_result)
            if not phase_result.success:
                logger.warning(
                    "Pipeline {pipeline_id} stopped at phase {phase_id}",
                    pipeline_id=self.id,
                    phase_id=phase.id,
                )
                break

        duration_ms = timer.duration_ms
        success = all(phase.success for phase in phase_results)
        result = PipelineResult(
            pipeline_id=self.id,
            run_id=run_id,
            outcome=RunOutcome.SUCCEEDED if success else RunOutcome.PARTIAL_FAILURE,
            success=success,
            duration_ms=duration_ms,
            execution_order=order_ids,
            phases=phase_results,
            artifacts=[artifact for phase in phase_results for artifact in phase.artifacts],
            metrics=PipelineMetrics.from_phases(phase_results, duration_ms),
        )
        await checkpoints.acompleted(result)
        logger.info(
            "Pipeline {pipeline_id} {status}: {ok}/{total} tasks, quality {score:.2f}",
            pipeline_id=self.id,
            status=RunStatus.COMPLETED if success else RunStatus.FAILED,
            ok=result.metrics.successful_tasks,
            total=result.metrics.total_tasks,
            score=result.metrics.quality_score,
        )
        return result

    def _transport_error(self, phase_result: PhaseResult) -> TransportError:
        failed = next(result for result in phase_result.results if result.transport_error)
        error = TransportError(
            f"Task '{failed.task_id}' in phase '{phase_result.phase_id}' "
            f"could not be executed: {failed.error}",
            task_id=failed.task_id,
            phase_id=phase_result.phase_id,
        )
        error.phase_result = phase_result
        return error

    async def _arecord_failure(self, checkpoints: CheckpointWriter, error: Exception) -> None:
        logger.error(
            "Pipeline {pipeline_id} run aborted: {error_type}: {error}",
            pipeline_id=self.id,
            error_type=type(error).__name__,
            error=error,
        )
        try:
            await checkpoints.afailed(error)
        except Exception as store_error:
            logger.error(
                "Could not persist failure checkpoint for {pipeline_id}: {error}",
                pipeline_id=self.id,
                error=store_error,
            )

    async def amonitor(self) -> MonitoringReport:
        """Best-effort progress of the latest run, read from checkpoints only.

        Never raises for store failures; an unreadable store reports
        ``failed`` with zero progress.
        """
        try:
            records = await self.state_store.alist(self.config.namespace, prefix=f"{self.id}/")
        except Exception as e:
            logger.warning(
                "Could not read checkpoints for {pipeline_id}: {error}",
                pipeline_id=self.id,
                error=e,
            )
            records = []
        return build_monitoring_report(self.id, [phase.id for phase in self._phases], records)

    async def arun(self) -> PipelineOutcome:
        """Run the pipeline, folding structural errors into the outcome.

        Infrastructure errors still propagate.
        """
        try:
            result = await self.aexecute()
        except GraphValidationError as e:
            return PipelineOutcome(
                outcome=RunOutcome.STRUCTURAL_ERROR,
                error=str(e),
                errors=e.errors,
            )
        return PipelineOutcome(outcome=result.outcome, result=result)
