"""Tests for flowdag.kernel.orchestration.validator."""

from flowdag.kernel.config.models import EngineConfig
from flowdag.kernel.domain.task import TaskSpec
from flowdag.kernel.orchestration.validator import PipelineValidator


class TestPipelineValidator:
    def test_valid_pipeline(self, make_phase) -> None:
        phases = [make_phase("a", tasks=["t1"]), make_phase("b", tasks=["t2"], dependencies=["a"])]

        report = PipelineValidator().validate(phases)

        assert report.is_valid is True
        assert report.errors == []
        assert report.warnings == []
        assert report.suggestions == []

    def test_cycle_reported(self, make_phase) -> None:
        phases = [make_phase("X", dependencies=["Y"]), make_phase("Y", dependencies=["X"])]

        report = PipelineValidator().validate(phases)

        assert report.is_valid is False
        assert report.errors == ["Workflow contains circular dependencies: X -> Y -> X"]

    def test_missing_dependency_names_both_phases(self, make_phase) -> None:
        report = PipelineValidator().validate([make_phase("Z", dependencies=["nonexistent"])])

        assert report.is_valid is False
        assert report.errors == ["Phase 'Z' depends on non-existent phase 'nonexistent'"]

    def test_invalid_tasks(self, make_phase, make_task) -> None:
        phases = [
            make_phase(
                "build",
                tasks=(
                    TaskSpec(id="", description="No id", role="coder"),
                    make_task("anon", role=None),
                ),
            )
        ]

        errors = PipelineValidator().validate(phases).errors

        assert "Phase 'build' contains invalid task: missing id or description" in errors
        assert "Task 'anon' in phase 'build' has no assigned agent" in errors

    def test_duplicate_ids(self, make_phase) -> None:
        phases = [make_phase("a", tasks=["t"]), make_phase("a"), make_phase("b", tasks=["t"])]

        errors = PipelineValidator().validate(phases).errors

        assert "Duplicate phase id 'a'" in errors
        assert "Task id 't' is used more than once" in errors

    def test_reserved_phase_id(self, make_phase) -> None:
        errors = PipelineValidator().validate([make_phase("completed")]).errors
        assert errors == ["Phase id 'completed' is reserved for checkpoint records"]

    def test_wide_parallel_phase_warns(self, make_phase) -> None:
        tasks = [f"t{i}" for i in range(11)]

        report = PipelineValidator().validate([make_phase("wide", tasks=tasks, parallel=True)])

        assert report.is_valid is True
        assert report.warnings == ["Phase 'wide' has 11 parallel tasks - consider breaking it down"]

    def test_wide_sequential_phase_does_not_warn(self, make_phase) -> None:
        tasks = [f"t{i}" for i in range(11)]
        assert PipelineValidator().validate([make_phase("long", tasks=tasks)]).warnings == []

    def test_thresholds_from_config(self, make_phase) -> None:
        validator = PipelineValidator(EngineConfig(max_parallel_tasks_warning=2))
        report = validator.validate([make_phase("p", tasks=["a", "b", "c"], parallel=True)])
        assert len(report.warnings) == 1

    def test_large_pipeline_suggestion(self, make_phase) -> None:
        phases = [make_phase("p0")]
        phases += [make_phase(f"p{i}", dependencies=[f"p{i - 1}"]) for i in range(1, 21)]

        report = PipelineValidator().validate(phases)

        assert report.is_valid is True
        assert report.suggestions == [
            "Consider breaking down this workflow into smaller, composable workflows"
        ]

    def test_isolated_phases_suggestion(self, make_phase) -> None:
        report = PipelineValidator().validate([make_phase("a"), make_phase("b")])
        assert report.suggestions == [
            "Consider running isolated phases in parallel for better performance"
        ]

    def test_repeated_validation_is_identical(self, make_phase) -> None:
        phases = [make_phase("X", dependencies=["Y"]), make_phase("Y", dependencies=["X"])]
        validator = PipelineValidator()
        assert validator.validate(phases) == validator.validate(phases)
