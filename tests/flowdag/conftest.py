"""Shared fixtures for flowdag tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from flowdag.compiler.config_loader import clear_config_cache
from flowdag.drivers.state_store import InMemoryStateStore
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.results import TaskResult
from flowdag.kernel.domain.task import TaskSpec


class ScriptedExecutor:
    """Task executor returning scripted outcomes and recording every call.

    ``outcomes`` maps task ids to ``True``/``False``, a ``TaskResult`` or an
    exception to raise. Unlisted tasks succeed.
    """

    def __init__(
        self,
        outcomes: dict[str, Any] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def arun_task(self, task: TaskSpec) -> TaskResult:
        self.calls.append(task.id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if delay := self.delays.get(task.id):
                await asyncio.sleep(delay)
            outcome = self.outcomes.get(task.id, True)
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(outcome, TaskResult):
                return outcome
            return TaskResult(
                task_id=task.id,
                success=bool(outcome),
                error=None if outcome else f"{task.id} failed",
                duration_ms=1.0,
            )
        finally:
            self.active -= 1


@pytest.fixture
def make_task() -> Callable[..., TaskSpec]:
    def _make(task_id: str, role: str | None = "coder", **kwargs: Any) -> TaskSpec:
        return TaskSpec(id=task_id, description=f"Do {task_id}", role=role, **kwargs)

    return _make


@pytest.fixture
def make_phase(make_task: Callable[..., TaskSpec]) -> Callable[..., PhaseSpec]:
    def _make(
        phase_id: str,
        tasks: list[str] | tuple[TaskSpec, ...] = (),
        dependencies: tuple[str, ...] | list[str] = (),
        parallel: bool = False,
        **kwargs: Any,
    ) -> PhaseSpec:
        specs = tuple(make_task(t) if isinstance(t, str) else t for t in tasks)
        return PhaseSpec(
            id=phase_id,
            tasks=specs,
            dependencies=tuple(dependencies),
            parallel=parallel,
            **kwargs,
        )

    return _make


@pytest.fixture
def scripted_executor() -> Callable[..., ScriptedExecutor]:
    return ScriptedExecutor


@pytest.fixture
def memory_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture(autouse=True)
def _fresh_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()
