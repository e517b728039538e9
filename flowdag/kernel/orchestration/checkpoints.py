"""Checkpoint records written during a run, and the progress derived from them.

Keys live under one namespace and look like ``<pipeline_id>/<suffix>``:

- ``started``: written once per run, carries the run id every later
  record is matched against
- ``<phase_id>``: written when the phase starts and again when it finishes
- ``completed``: final record, ``status`` is completed or failed
- ``failed``: written when the run aborts with an exception

Monitoring only reads these records, so it can run in another process.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

from flowdag.kernel.domain.results import (
    MonitoringMetrics,
    MonitoringReport,
    PhaseResult,
    PipelineResult,
    RunStatus,
)
from flowdag.kernel.logging import get_logger
from flowdag.kernel.ports.state_store import StateStore, StoredRecord

logger = get_logger(__name__)

STARTED_KEY = "started"
COMPLETED_KEY = "completed"
FAILED_KEY = "failed"
RESERVED_KEYS = frozenset({STARTED_KEY, COMPLETED_KEY, FAILED_KEY})

KIND_PIPELINE = "pipeline"
KIND_PHASE = "phase"


class CheckpointWriter:
    """Writes the checkpoint records of one pipeline run."""

    def __init__(self, store: StateStore, namespace: str, pipeline_id: str, run_id: str) -> None:
        self.store = store
        self.namespace = namespace
        self.pipeline_id = pipeline_id
        self.run_id = run_id

    def key(self, suffix: str) -> str:
        return f"{self.pipeline_id}/{suffix}"

    async def _aput(self, suffix: str, record: dict[str, Any]) -> None:
        key = self.key(suffix)
        await self.store.aput(self.namespace, key, {"run_id": self.run_id, **record})
        logger.debug("Checkpoint {key} -> {status}", key=key, status=record.get("status"))

    async def astarted(self, total_phases: int, next_phase: str | None) -> None:
        await self._aput(
            STARTED_KEY,
            {
                "kind": KIND_PIPELINE,
                "status": RunStatus.RUNNING.value,
                "started_at": time.time(),
                "total_phases": total_phases,
                "next_phase": next_phase,
            },
        )

    async def aphase_started(self, phase_id: str, started_at: float) -> None:
        await self._aput(
            phase_id,
            {
                "kind": KIND_PHASE,
                "phase_id": phase_id,
                "status": RunStatus.RUNNING.value,
                "started_at": started_at,
            },
        )

    async def aphase_finished(self, result: PhaseResult, next_phase: str | None) -> None:
        status = RunStatus.COMPLETED if result.success else RunStatus.FAILED
        await self._aput(
            result.phase_id,
            {
                "kind": KIND_PHASE,
                "phase_id": result.phase_id,
                "status": status.value,
                "started_at": result.started_at,
                "completed_at": result.completed_at,
                "phase_result": result.model_dump(mode="json"),
                "next_phase": next_phase,
            },
        )

    async def acompleted(self, result: PipelineResult) -> None:
        status = RunStatus.COMPLETED if result.success else RunStatus.FAILED
        await self._aput(
            COMPLETED_KEY,
            {
                "kind": KIND_PIPELINE,
                "status": status.value,
                "completed_at": time.time(),
                "success": result.success,
                "execution_order": result.execution_order,
                "metrics": result.metrics.model_dump(mode="json"),
            },
        )

    async def afailed(self, error: BaseException) -> None:
        await self._aput(
            FAILED_KEY,
            {
                "kind": KIND_PIPELINE,
                "status": RunStatus.FAILED.value,
                "failed_at": time.time(),
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


def _unknown() -> MonitoringReport:
    return MonitoringReport(status=RunStatus.FAILED, progress=0.0, current_phase="unknown")


def build_monitoring_report(
    pipeline_id: str, phase_ids: Sequence[str], records: Sequence[StoredRecord]
) -> MonitoringReport:
    """Derive progress of the latest run of ``pipeline_id`` from its checkpoints.

    Parameters
    ----------
    pipeline_id : str
        Pipeline whose records are inspected
    phase_ids : Sequence[str]
        Declared phases, the denominator of ``progress``
    records : Sequence[StoredRecord]
        Every record listed from the checkpoint namespace

    Returns
    -------
    MonitoringReport
        ``failed`` with zero progress when no ``started`` record exists
    """
    prefix = f"{pipeline_id}/"
    by_suffix: dict[str, dict[str, Any]] = {
        record.key[len(prefix) :]: record.value
        for record in records
        if record.key.startswith(prefix) and isinstance(record.value, dict)
    }

    started = by_suffix.get(STARTED_KEY)
    if not started or not started.get("run_id"):
        return _unknown()
    run_id = started["run_id"]

    current = {
        suffix: value for suffix, value in by_suffix.items() if value.get("run_id") == run_id
    }
    declared = set(phase_ids)
    phase_records = {
        suffix: value
        for suffix, value in current.items()
        if value.get("kind") == KIND_PHASE and suffix in declared
    }

    completed = [v for v in phase_records.values() if v.get("status") == RunStatus.COMPLETED]
    running = [
        phase_id
        for phase_id in phase_ids
        if phase_records.get(phase_id, {}).get("status") == RunStatus.RUNNING
    ]
    phase_failed = any(v.get("status") == RunStatus.FAILED for v in phase_records.values())

    total = len(phase_ids)
    progress = (len(completed) / total) * 100 if total else 0.0

    durations = [
        (v["completed_at"] - v["started_at"]) * 1000
        for v in completed
        if v.get("completed_at") is not None and v.get("started_at") is not None
    ]
    average_ms = sum(durations) / len(completed) if completed else 0.0
    eta_ms = (total - len(completed)) * average_ms

    metrics = MonitoringMetrics()
    for value in phase_records.values():
        phase_result = value.get("phase_result") or {}
        metrics.total_tasks += int(phase_result.get("total_tasks", 0))
        metrics.successful_tasks += int(phase_result.get("successful_tasks", 0))
        metrics.failed_tasks += int(phase_result.get("failed_tasks", 0))

    final = current.get(COMPLETED_KEY, {})
    pipeline_failed = (
        FAILED_KEY in current or final.get("status") == RunStatus.FAILED or phase_failed
    )

    if FAILED_KEY in current:
        # An aborted run can leave a phase record stuck at running
        status, current_phase = RunStatus.FAILED, "failed"
    elif running:
        status, current_phase = RunStatus.RUNNING, running[0]
    elif total and progress >= 100:
        status, current_phase = RunStatus.COMPLETED, "completed"
    elif pipeline_failed:
        status, current_phase = RunStatus.FAILED, "failed"
    elif final.get("status") == RunStatus.COMPLETED:
        # A run with no phases still writes a successful final record
        status, current_phase = RunStatus.COMPLETED, "completed"
    else:
        status, current_phase = RunStatus.RUNNING, "unknown"

    return MonitoringReport(
        status=status,
        progress=progress,
        current_phase=current_phase,
        eta_ms=eta_ms,
        run_id=run_id,
        metrics=metrics,
    )
