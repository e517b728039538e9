"""Phase descriptors: named groups of tasks with prerequisite phases."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flowdag.kernel.domain.task import TaskSpec


class PhaseSpec(BaseModel):
    """A phase of a pipeline.

    ``dependencies`` keeps the declared order with duplicates removed; the
    resolver walks it in that order, which is what makes resolution stable.
    A phase with no tasks is legal and succeeds trivially.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str = ""
    dependencies: tuple[str, ...] = ()
    tasks: tuple[TaskSpec, ...] = ()
    parallel: bool = False
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dedupe_dependencies(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("id"):
            return {**data, "name": data["id"]}
        return data

    @property
    def task_count(self) -> int:
        return len(self.tasks)
