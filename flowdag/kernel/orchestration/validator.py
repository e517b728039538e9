"""Static checks over a pipeline's phase graph."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from flowdag.kernel.config.models import EngineConfig
from flowdag.kernel.domain.dag import DependencyResolver
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.results import ValidationReport
from flowdag.kernel.orchestration.checkpoints import RESERVED_KEYS


class PipelineValidator:
    """Accumulates errors, warnings and suggestions for a list of phases.

    Pure: no collaborator is touched, so repeated calls on the same phases
    return identical reports.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    def validate(self, phases: Sequence[PhaseSpec]) -> ValidationReport:
        errors = self.structural_errors(phases)
        warnings: list[str] = []
        suggestions: list[str] = []

        for phase in phases:
            if phase.parallel and phase.task_count > self.config.max_parallel_tasks_warning:
                warnings.append(
                    f"Phase '{phase.id}' has {phase.task_count} parallel tasks"
                    " - consider breaking it down"
                )

        if len(phases) > self.config.max_phases_suggestion:
            suggestions.append(
                "Consider breaking down this workflow into smaller, composable workflows"
            )

        depended_on = {dep for phase in phases for dep in phase.dependencies}
        isolated = [p for p in phases if not p.dependencies and p.id not in depended_on]
        if len(isolated) > 1:
            suggestions.append(
                "Consider running isolated phases in parallel for better performance"
            )

        return ValidationReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
        )

    def structural_errors(self, phases: Sequence[PhaseSpec]) -> list[str]:
        """Errors that make the pipeline impossible to run."""
        resolver = DependencyResolver(phases)
        errors = [f"Duplicate phase id '{phase_id}'" for phase_id in resolver.duplicate_ids()]

        for phase in phases:
            if not phase.id:
                errors.append("Phase is missing an id")
            elif phase.id in RESERVED_KEYS:
                errors.append(f"Phase id '{phase.id}' is reserved for checkpoint records")

        errors.extend(
            f"Phase '{phase_id}' depends on non-existent phase '{dep}'"
            for phase_id, dep in resolver.missing_dependencies()
        )

        if cycle := DependencyResolver.detect_cycle(resolver.graph):
            errors.append(f"Workflow contains circular dependencies: {' -> '.join(cycle)}")

        for phase in phases:
            for task in phase.tasks:
                if not task.id or not task.description:
                    errors.append(
                        f"Phase '{phase.id}' contains invalid task: missing id or description"
                    )
                elif task.role is None:
                    errors.append(f"Task '{task.id}' in phase '{phase.id}' has no assigned agent")

        task_ids = Counter(task.id for phase in phases for task in phase.tasks if task.id)
        errors.extend(
            f"Task id '{task_id}' is used more than once"
            for task_id, count in task_ids.items()
            if count > 1
        )
        return errors
