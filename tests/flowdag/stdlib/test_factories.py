"""Tests for the built-in pipeline factories."""

import re

import pytest

from flowdag.drivers.executors import LocalTaskExecutor
from flowdag.drivers.state_store import InMemoryStateStore
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.task import AgentRole, TaskSpec
from flowdag.stdlib import (
    PIPELINE_TEMPLATES,
    ModelType,
    ReviewDepth,
    create_code_review_pipeline,
    create_custom_pipeline,
    create_full_stack_pipeline,
    create_ml_pipeline,
)


@pytest.fixture
def collaborators():
    return LocalTaskExecutor(), InMemoryStateStore()


def _deps(engine) -> dict[str, tuple[str, ...]]:
    return {phase.id: phase.dependencies for phase in engine.phases}


class TestFullStackPipeline:
    def test_defaults(self, collaborators) -> None:
        engine = create_full_stack_pipeline(*collaborators, project_name="Acme Portal")

        assert engine.id == "fullstack-acme-portal"
        assert engine.name == "Full-Stack Development: Acme Portal"
        assert [p.id for p in engine.resolve_order()] == [
            "planning",
            "database",
            "backend",
            "frontend",
            "testing",
            "documentation",
        ]
        assert engine.validate().is_valid

    def test_every_option(self, collaborators) -> None:
        engine = create_full_stack_pipeline(
            *collaborators, project_name="shop", include_mobile=True, include_deploy=True
        )

        deps = _deps(engine)
        assert deps["mobile"] == ("backend",)
        assert deps["testing"] == ("backend", "frontend", "mobile")
        assert deps["deployment"] == ("testing", "documentation")
        assert engine.validate().is_valid

    def test_skipped_phases_are_rewired(self, collaborators) -> None:
        engine = create_full_stack_pipeline(
            *collaborators,
            project_name="api",
            include_database=False,
            include_backend=False,
            include_documentation=False,
        )

        deps = _deps(engine)
        assert deps["frontend"] == ("planning",)
        assert deps["testing"] == ("frontend",)
        assert "database" not in deps
        assert engine.validate().is_valid

    def test_deploy_without_tests_is_invalid(self, collaborators) -> None:
        engine = create_full_stack_pipeline(
            *collaborators, project_name="x", include_tests=False, include_deploy=True
        )

        report = engine.validate()

        assert not report.is_valid
        assert any("'testing'" in error for error in report.errors)

    def test_task_roles_and_metadata(self, collaborators) -> None:
        engine = create_full_stack_pipeline(*collaborators, project_name="Acme")
        planning = engine.phases[0]

        assert planning.parallel is True
        assert [t.role for t in planning.tasks] == [
            AgentRole.RESEARCHER,
            AgentRole.SYSTEM_ARCHITECT,
        ]
        assert planning.tasks[0].metadata == {"phase": "planning"}
        assert "Acme" in planning.tasks[0].description


class TestMlPipeline:
    def test_defaults(self, collaborators) -> None:
        engine = create_ml_pipeline(
            *collaborators, project_name="Churn Model", model_type=ModelType.REGRESSION
        )

        assert engine.id == "ml-churn-model"
        assert [p.id for p in engine.resolve_order()] == [
            "data-analysis",
            "data-processing",
            "feature-engineering",
            "model-training",
            "validation",
        ]
        training = next(p for p in engine.phases if p.id == "model-training")
        assert training.tasks[0].metadata["model_type"] == "regression"
        assert engine.validate().is_valid

    def test_minimal_with_deployment(self, collaborators) -> None:
        engine = create_ml_pipeline(
            *collaborators,
            project_name="m",
            model_type="clustering",
            include_data_processing=False,
            include_feature_engineering=False,
            include_model_validation=False,
            include_deployment=True,
        )

        assert _deps(engine) == {
            "data-analysis": (),
            "model-training": ("data-analysis",),
            "deployment": ("model-training",),
        }

    def test_unknown_model_type(self, collaborators) -> None:
        with pytest.raises(ValueError):
            create_ml_pipeline(*collaborators, project_name="m", model_type="genetic")


class TestCodeReviewPipeline:
    def test_basic_review(self, collaborators) -> None:
        engine = create_code_review_pipeline(
            *collaborators, repository_url="https://github.com/acme/widgets"
        )

        assert re.fullmatch(r"review-widgets-\d+", engine.id)
        assert [p.id for p in engine.phases] == [
            "code-analysis",
            "quality-review",
            "report-generation",
        ]
        static = engine.phases[0].tasks[0]
        assert "pr" not in static.metadata
        assert engine.validate().is_valid

    @pytest.mark.parametrize("depth", [ReviewDepth.COMPREHENSIVE, "security-focused"])
    def test_security_phase(self, collaborators, depth) -> None:
        engine = create_code_review_pipeline(
            *collaborators,
            repository_url="https://github.com/acme/widgets/",
            pr_number=42,
            review_depth=depth,
        )

        deps = _deps(engine)
        assert deps["security-review"] == ("quality-review",)
        assert deps["report-generation"] == ("security-review",)
        assert engine.phases[0].tasks[0].metadata["pr"] == 42
        assert engine.id.startswith("review-widgets-")

    def test_unknown_depth(self, collaborators) -> None:
        with pytest.raises(ValueError):
            create_code_review_pipeline(
                *collaborators, repository_url="repo", review_depth="cursory"
            )


class TestCustomPipeline:
    def test_wraps_phases(self, collaborators) -> None:
        phases = [
            PhaseSpec(
                id="only",
                tasks=(TaskSpec(id="t", description="do it", role="coder"),),
            )
        ]

        engine = create_custom_pipeline(
            *collaborators,
            pipeline_id="custom",
            name="Custom",
            description="one phase",
            phases=phases,
        )

        assert engine.id == "custom"
        assert engine.name == "Custom"
        assert engine.description == "one phase"
        assert engine.phases == tuple(phases)


class TestTemplates:
    def test_registry(self) -> None:
        assert set(PIPELINE_TEMPLATES) == {"full-stack", "ml", "code-review"}

    @pytest.mark.parametrize("name", ["full-stack", "ml", "code-review"])
    def test_templates_build_valid_pipelines(self, collaborators, name) -> None:
        engine = PIPELINE_TEMPLATES[name](*collaborators, "demo")
        assert engine.validate().is_valid

    def test_options_are_forwarded(self, collaborators) -> None:
        engine = PIPELINE_TEMPLATES["ml"](*collaborators, "demo", model_type="reinforcement")
        assert "reinforcement" in engine.description
