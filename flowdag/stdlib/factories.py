"""Pre-built pipelines for common delivery scenarios.

Each factory assembles a list of phases and hands it to a ``PipelineEngine``;
nothing here runs tasks. Timeouts are in seconds.

Examples
--------
Example usage::

    engine = create_full_stack_pipeline(
        executor,
        store,
        project_name="Acme Portal",
        include_mobile=True,
    )
    engine.id  # "fullstack-acme-portal"
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Sequence
from enum import StrEnum
from typing import Any

from flowdag.kernel.config.models import EngineConfig
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.domain.task import AgentRole, Priority, TaskSpec
from flowdag.kernel.orchestration.engine import PipelineEngine
from flowdag.kernel.ports.state_store import StateStore
from flowdag.kernel.ports.task_executor import TaskExecutor


class ModelType(StrEnum):
    CLASSIFICATION = "classification"
    REGRESSION = "regression"
    CLUSTERING = "clustering"
    REINFORCEMENT = "reinforcement"


class ReviewDepth(StrEnum):
    BASIC = "basic"
    COMPREHENSIVE = "comprehensive"
    SECURITY_FOCUSED = "security-focused"


def _slug(value: str) -> str:
    return re.sub(r"\s+", "-", value.lower())


def _task(
    task_id: str,
    description: str,
    role: AgentRole,
    priority: Priority,
    timeout: float,
    retries: int,
    **metadata: Any,
) -> TaskSpec:
    return TaskSpec(
        id=task_id,
        description=description,
        role=role,
        priority=priority,
        timeout=timeout,
        retries=retries,
        metadata=metadata,
    )


def create_full_stack_pipeline(
    task_executor: TaskExecutor,
    state_store: StateStore,
    *,
    project_name: str,
    include_backend: bool = True,
    include_frontend: bool = True,
    include_database: bool = True,
    include_mobile: bool = False,
    include_tests: bool = True,
    include_documentation: bool = True,
    include_deploy: bool = False,
    config: EngineConfig | None = None,
) -> PipelineEngine:
    """Planning through deployment for a full-stack application.

    Optional phases re-wire their dependents: with no backend, frontend and
    mobile depend on planning directly, and so on.
    """
    name = project_name
    phases = [
        PhaseSpec(
            id="planning",
            name="Project Planning & Architecture",
            parallel=True,
            tasks=(
                _task(
                    "requirements-analysis",
                    f"Analyze requirements for {name}",
                    AgentRole.RESEARCHER,
                    Priority.HIGH,
                    300,
                    2,
                    phase="planning",
                ),
                _task(
                    "system-architecture",
                    f"Design system architecture for {name}",
                    AgentRole.SYSTEM_ARCHITECT,
                    Priority.HIGH,
                    300,
                    2,
                    phase="planning",
                ),
            ),
        )
    ]

    if include_database:
        phases.append(
            PhaseSpec(
                id="database",
                name="Database Design",
                dependencies=("planning",),
                tasks=(
                    _task(
                        "database-schema",
                        f"Design database schema for {name}",
                        AgentRole.CODE_ANALYZER,
                        Priority.HIGH,
                        300,
                        2,
                        phase="database",
                    ),
                    _task(
                        "database-migrations",
                        f"Create database migrations for {name}",
                        AgentRole.BACKEND_DEV,
                        Priority.MEDIUM,
                        180,
                        2,
                        phase="database",
                    ),
                ),
            )
        )

    if include_backend:
        phases.append(
            PhaseSpec(
                id="backend",
                name="Backend Development",
                dependencies=("database",) if include_database else ("planning",),
                parallel=True,
                tasks=(
                    _task(
                        "api-design",
                        f"Design REST API for {name}",
                        AgentRole.API_DOCS,
                        Priority.HIGH,
                        300,
                        2,
                        phase="backend",
                    ),
                    _task(
                        "backend-implementation",
                        f"Implement backend services for {name}",
                        AgentRole.BACKEND_DEV,
                        Priority.HIGH,
                        600,
                        3,
                        phase="backend",
                    ),
                    _task(
                        "authentication",
                        f"Implement authentication system for {name}",
                        AgentRole.SECURITY_MANAGER,
                        Priority.HIGH,
                        300,
                        3,
                        phase="backend",
                    ),
                ),
            )
        )

    client_dependencies = ("backend",) if include_backend else ("planning",)
    if include_frontend:
        phases.append(
            PhaseSpec(
                id="frontend",
                name="Frontend Development",
                dependencies=client_dependencies,
                parallel=True,
                tasks=(
                    _task(
                        "ui-design",
                        f"Design user interface for {name}",
                        AgentRole.CODER,
                        Priority.HIGH,
                        300,
                        2,
                        phase="frontend",
                    ),
                    _task(
                        "frontend-implementation",
                        f"Implement frontend application for {name}",
                        AgentRole.CODER,
                        Priority.HIGH,
                        600,
                        3,
                        phase="frontend",
                    ),
                    _task(
                        "state-management",
                        f"Implement state management for {name}",
                        AgentRole.CODER,
                        Priority.MEDIUM,
                        300,
                        2,
                        phase="frontend",
                    ),
                ),
            )
        )

    if include_mobile:
        phases.append(
            PhaseSpec(
                id="mobile",
                name="Mobile Development",
                dependencies=client_dependencies,
                parallel=True,
                tasks=(
                    _task(
                        "mobile-app",
                        f"Develop mobile app for {name}",
                        AgentRole.MOBILE_DEV,
                        Priority.MEDIUM,
                        900,
                        3,
                        phase="mobile",
                    ),
                ),
            )
        )

    built = [
        phase_id
        for phase_id, included in (
            ("backend", include_backend),
            ("frontend", include_frontend),
            ("mobile", include_mobile),
        )
        if included
    ]

    if include_tests:
        phases.append(
            PhaseSpec(
                id="testing",
                name="Testing & Quality Assurance",
                dependencies=tuple(built) or ("planning",),
                parallel=True,
                tasks=(
                    _task(
                        "unit-tests",
                        f"Create unit tests for {name}",
                        AgentRole.TESTER,
                        Priority.HIGH,
                        300,
                        2,
                        phase="testing",
                    ),
                    _task(
                        "integration-tests",
                        f"Create integration tests for {name}",
                        AgentRole.TESTER,
                        Priority.HIGH,
                        400,
                        2,
                        phase="testing",
                    ),
                    _task(
                        "e2e-tests",
                        f"Create end-to-end tests for {name}",
                        AgentRole.TESTER,
                        Priority.MEDIUM,
                        500,
                        2,
                        phase="testing",
                    ),
                    _task(
                        "performance-tests",
                        f"Create performance tests for {name}",
                        AgentRole.PERF_ANALYZER,
                        Priority.MEDIUM,
                        300,
                        2,
                        phase="testing",
                    ),
                ),
            )
        )

    if include_documentation:
        doc_dependencies = [*built, "testing"] if include_tests else built
        phases.append(
            PhaseSpec(
                id="documentation",
                name="Documentation",
                dependencies=tuple(doc_dependencies) or ("planning",),
                parallel=True,
                tasks=(
                    _task(
                        "api-documentation",
                        f"Generate API documentation for {name}",
                        AgentRole.API_DOCS,
                        Priority.MEDIUM,
                        180,
                        1,
                        phase="documentation",
                    ),
                    _task(
                        "user-documentation",
                        f"Create user documentation for {name}",
                        AgentRole.CODER,
                        Priority.MEDIUM,
                        240,
                        1,
                        phase="documentation",
                    ),
                ),
            )
        )

    if include_deploy:
        # Deployment always waits on testing, even when testing was not requested
        deploy_dependencies = ["testing"]
        if include_documentation:
            deploy_dependencies.append("documentation")
        phases.append(
            PhaseSpec(
                id="deployment",
                name="Deployment & CI/CD",
                dependencies=tuple(deploy_dependencies),
                tasks=(
                    _task(
                        "cicd-pipeline",
                        f"Setup CI/CD pipeline for {name}",
                        AgentRole.CICD_ENGINEER,
                        Priority.HIGH,
                        300,
                        3,
                        phase="deployment",
                    ),
                    _task(
                        "production-deploy",
                        f"Deploy {name} to production",
                        AgentRole.CICD_ENGINEER,
                        Priority.CRITICAL,
                        600,
                        5,
                        phase="deployment",
                    ),
                ),
            )
        )

    return PipelineEngine(
        f"fullstack-{_slug(project_name)}",
        phases,
        task_executor,
        state_store,
        name=f"Full-Stack Development: {project_name}",
        description=f"Complete full-stack development workflow for {project_name}",
        config=config,
    )


def create_ml_pipeline(
    task_executor: TaskExecutor,
    state_store: StateStore,
    *,
    project_name: str,
    model_type: ModelType | str,
    include_data_processing: bool = True,
    include_feature_engineering: bool = True,
    include_model_validation: bool = True,
    include_deployment: bool = False,
    config: EngineConfig | None = None,
) -> PipelineEngine:
    """Data analysis, training and optional deployment of a model.

    Raises
    ------
    ValueError
        If ``model_type`` is not a known ``ModelType``
    """
    model = ModelType(model_type).value
    name = project_name

    phases = [
        PhaseSpec(
            id="data-analysis",
            name="Data Analysis & Preparation",
            tasks=(
                _task(
                    "data-exploration",
                    f"Explore and analyze data for {name}",
                    AgentRole.ML_DEVELOPER,
                    Priority.HIGH,
                    300,
                    2,
                    phase="data-analysis",
                    model_type=model,
                ),
            ),
        )
    ]

    if include_data_processing:
        phases.append(
            PhaseSpec(
                id="data-processing",
                name="Data Processing",
                dependencies=("data-analysis",),
                parallel=True,
                tasks=(
                    _task(
                        "data-cleaning",
                        f"Clean and preprocess data for {name}",
                        AgentRole.ML_DEVELOPER,
                        Priority.HIGH,
                        400,
                        2,
                        phase="data-processing",
                    ),
                    _task(
                        "data-validation",
                        f"Validate data quality for {name}",
                        AgentRole.TESTER,
                        Priority.HIGH,
                        200,
                        2,
                        phase="data-processing",
                    ),
                ),
            )
        )

    prepared = "data-processing" if include_data_processing else "data-analysis"
    if include_feature_engineering:
        phases.append(
            PhaseSpec(
                id="feature-engineering",
                name="Feature Engineering",
                dependencies=(prepared,),
                tasks=(
                    _task(
                        "feature-selection",
                        f"Engineer features for {name}",
                        AgentRole.ML_DEVELOPER,
                        Priority.HIGH,
                        600,
                        3,
                        phase="feature-engineering",
                        model_type=model,
                    ),
                ),
            )
        )
        prepared = "feature-engineering"

    phases.append(
        PhaseSpec(
            id="model-training",
            name="Model Training & Optimization",
            dependencies=(prepared,),
            parallel=True,
            tasks=(
                _task(
                    "model-training",
                    f"Train {model} model for {name}",
                    AgentRole.ML_DEVELOPER,
                    Priority.CRITICAL,
                    1200,
                    3,
                    phase="model-training",
                    model_type=model,
                ),
                _task(
                    "hyperparameter-tuning",
                    f"Optimize hyperparameters for {name}",
                    AgentRole.PERF_ANALYZER,
                    Priority.HIGH,
                    900,
                    2,
                    phase="model-training",
                ),
            ),
        )
    )

    if include_model_validation:
        phases.append(
            PhaseSpec(
                id="validation",
                name="Model Validation & Testing",
                dependencies=("model-training",),
                parallel=True,
                tasks=(
                    _task(
                        "model-validation",
                        f"Validate model performance for {name}",
                        AgentRole.TESTER,
                        Priority.HIGH,
                        300,
                        2,
                        phase="validation",
                    ),
                    _task(
                        "performance-analysis",
                        f"Analyze model performance metrics for {name}",
                        AgentRole.PERF_ANALYZER,
                        Priority.HIGH,
                        200,
                        2,
                        phase="validation",
                    ),
                ),
            )
        )

    if include_deployment:
        phases.append(
            PhaseSpec(
                id="deployment",
                name="Model Deployment",
                dependencies=("validation",) if include_model_validation else ("model-training",),
                tasks=(
                    _task(
                        "model-packaging",
                        f"Package model for deployment: {name}",
                        AgentRole.CICD_ENGINEER,
                        Priority.HIGH,
                        300,
                        2,
                        phase="deployment",
                    ),
                    _task(
                        "model-deployment",
                        f"Deploy model to production: {name}",
                        AgentRole.CICD_ENGINEER,
                        Priority.CRITICAL,
                        600,
                        3,
                        phase="deployment",
                    ),
                ),
            )
        )

    return PipelineEngine(
        f"ml-{_slug(project_name)}",
        phases,
        task_executor,
        state_store,
        name=f"ML Pipeline: {project_name}",
        description=f"Complete machine learning workflow for {project_name} ({model})",
        config=config,
    )


def create_code_review_pipeline(
    task_executor: TaskExecutor,
    state_store: StateStore,
    *,
    repository_url: str,
    pr_number: int | None = None,
    review_depth: ReviewDepth | str = ReviewDepth.BASIC,
    config: EngineConfig | None = None,
) -> PipelineEngine:
    """Static analysis, quality review and a final report for a repository.

    ``comprehensive`` and ``security-focused`` reviews add a security phase
    that the report waits on. The pipeline id carries a millisecond
    timestamp, so two reviews of the same repository never share
    checkpoints.
    """
    depth = ReviewDepth(review_depth)
    repo = repository_url
    scope: dict[str, Any] = {"repository": repo}
    if pr_number is not None:
        scope["pr"] = pr_number

    phases = [
        PhaseSpec(
            id="code-analysis",
            name="Code Analysis",
            parallel=True,
            tasks=(
                _task(
                    "static-analysis",
                    f"Perform static code analysis on {repo}",
                    AgentRole.CODE_ANALYZER,
                    Priority.HIGH,
                    300,
                    2,
                    **scope,
                ),
                _task(
                    "complexity-analysis",
                    f"Analyze code complexity for {repo}",
                    AgentRole.PERF_ANALYZER,
                    Priority.MEDIUM,
                    200,
                    2,
                    repository=repo,
                ),
            ),
        ),
        PhaseSpec(
            id="quality-review",
            name="Quality Review",
            dependencies=("code-analysis",),
            parallel=True,
            tasks=(
                _task(
                    "code-quality",
                    f"Review code quality for {repo}",
                    AgentRole.REVIEWER,
                    Priority.HIGH,
                    400,
                    2,
                    repository=repo,
                    review_type="quality",
                ),
                _task(
                    "test-coverage",
                    f"Analyze test coverage for {repo}",
                    AgentRole.TESTER,
                    Priority.MEDIUM,
                    200,
                    2,
                    repository=repo,
                ),
            ),
        ),
    ]

    with_security = depth in (ReviewDepth.COMPREHENSIVE, ReviewDepth.SECURITY_FOCUSED)
    if with_security:
        phases.append(
            PhaseSpec(
                id="security-review",
                name="Security Review",
                dependencies=("quality-review",),
                parallel=True,
                tasks=(
                    _task(
                        "security-scan",
                        f"Perform security scan on {repo}",
                        AgentRole.SECURITY_MANAGER,
                        Priority.CRITICAL,
                        600,
                        3,
                        repository=repo,
                        scan_type="comprehensive",
                    ),
                    _task(
                        "dependency-audit",
                        f"Audit dependencies for {repo}",
                        AgentRole.SECURITY_MANAGER,
                        Priority.HIGH,
                        300,
                        2,
                        repository=repo,
                    ),
                ),
            )
        )

    phases.append(
        PhaseSpec(
            id="report-generation",
            name="Report Generation",
            dependencies=("security-review",) if with_security else ("quality-review",),
            tasks=(
                _task(
                    "generate-report",
                    f"Generate review report for {repo}",
                    AgentRole.REVIEWER,
                    Priority.MEDIUM,
                    180,
                    1,
                    repository=repo,
                    report_type=depth.value,
                ),
            ),
        )
    )

    repo_name = repository_url.rstrip("/").rsplit("/", 1)[-1] or "repo"
    return PipelineEngine(
        f"review-{repo_name}-{int(time.time() * 1000)}",
        phases,
        task_executor,
        state_store,
        name=f"Code Review: {repository_url}",
        description=f"Automated code review pipeline for {repository_url} ({depth.value})",
        config=config,
    )


def create_custom_pipeline(
    task_executor: TaskExecutor,
    state_store: StateStore,
    *,
    pipeline_id: str,
    name: str,
    description: str,
    phases: Sequence[PhaseSpec],
    config: EngineConfig | None = None,
) -> PipelineEngine:
    return PipelineEngine(
        pipeline_id,
        phases,
        task_executor,
        state_store,
        name=name,
        description=description,
        config=config,
    )


TemplateFactory = Callable[..., PipelineEngine]


def _full_stack_template(
    task_executor: TaskExecutor, state_store: StateStore, subject: str, **options: Any
) -> PipelineEngine:
    return create_full_stack_pipeline(task_executor, state_store, project_name=subject, **options)


def _ml_template(
    task_executor: TaskExecutor, state_store: StateStore, subject: str, **options: Any
) -> PipelineEngine:
    options.setdefault("model_type", ModelType.CLASSIFICATION)
    return create_ml_pipeline(task_executor, state_store, project_name=subject, **options)


def _code_review_template(
    task_executor: TaskExecutor, state_store: StateStore, subject: str, **options: Any
) -> PipelineEngine:
    return create_code_review_pipeline(
        task_executor, state_store, repository_url=subject, **options
    )


# Each template takes (task_executor, state_store, subject, **options); the
# subject is the project name, or the repository URL for code reviews.
PIPELINE_TEMPLATES: dict[str, TemplateFactory] = {
    "full-stack": _full_stack_template,
    "ml": _ml_template,
    "code-review": _code_review_template,
}
