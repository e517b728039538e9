"""Task descriptors: the smallest unit of pipeline work.

A task is delegated opaquely to a task executor. The engine only reads the
fields below; ``metadata`` is carried through untouched.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(StrEnum):
    """Scheduling hint forwarded to the task executor."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AgentRole(StrEnum):
    """Closed catalogue of executor roles a task may be assigned to.

    Unknown names fail pydantic validation when the task is built, so a
    typo in a pipeline definition surfaces before anything runs.
    """

    GENERAL_PURPOSE = "general-purpose"
    STATUSLINE_SETUP = "statusline-setup"
    OUTPUT_STYLE_SETUP = "output-style-setup"
    REFINEMENT = "refinement"
    PSEUDOCODE = "pseudocode"
    ARCHITECTURE = "architecture"
    SPECIFICATION = "specification"
    ADAPTIVE_COORDINATOR = "adaptive-coordinator"
    MESH_COORDINATOR = "mesh-coordinator"
    HIERARCHICAL_COORDINATOR = "hierarchical-coordinator"
    ML_DEVELOPER = "ml-developer"
    BASE_TEMPLATE_GENERATOR = "base-template-generator"
    CODE_ANALYZER = "code-analyzer"
    BYZANTINE_COORDINATOR = "byzantine-coordinator"
    SWARM_INIT = "swarm-init"
    SMART_AGENT = "smart-agent"
    SPARC_COORD = "sparc-coord"
    PR_MANAGER = "pr-manager"
    PERF_ANALYZER = "perf-analyzer"
    TASK_ORCHESTRATOR = "task-orchestrator"
    SPARC_CODER = "sparc-coder"
    MEMORY_COORDINATOR = "memory-coordinator"
    MIGRATION_PLANNER = "migration-planner"
    GOSSIP_COORDINATOR = "gossip-coordinator"
    PERFORMANCE_BENCHMARKER = "performance-benchmarker"
    RAFT_MANAGER = "raft-manager"
    CRDT_SYNCHRONIZER = "crdt-synchronizer"
    SECURITY_MANAGER = "security-manager"
    QUORUM_MANAGER = "quorum-manager"
    REPO_ARCHITECT = "repo-architect"
    ISSUE_TRACKER = "issue-tracker"
    PROJECT_BOARD_SYNC = "project-board-sync"
    GITHUB_MODES = "github-modes"
    CODE_REVIEW_SWARM = "code-review-swarm"
    WORKFLOW_AUTOMATION = "workflow-automation"
    MULTI_REPO_SWARM = "multi-repo-swarm"
    SYNC_COORDINATOR = "sync-coordinator"
    RELEASE_SWARM = "release-swarm"
    RELEASE_MANAGER = "release-manager"
    SWARM_PR = "swarm-pr"
    SWARM_ISSUE = "swarm-issue"
    CICD_ENGINEER = "cicd-engineer"
    CODER = "coder"
    PLANNER = "planner"
    TESTER = "tester"
    RESEARCHER = "researcher"
    REVIEWER = "reviewer"
    SYSTEM_ARCHITECT = "system-architect"
    BACKEND_DEV = "backend-dev"
    API_DOCS = "api-docs"
    TDD_LONDON_SWARM = "tdd-london-swarm"
    PRODUCTION_VALIDATOR = "production-validator"
    MOBILE_DEV = "mobile-dev"


class TaskSpec(BaseModel):
    """A single unit of work inside a phase.

    Attributes
    ----------
    id : str
        Unique across the whole pipeline
    description : str
        Free text handed to the executor
    role : AgentRole | None
        Which executor role handles the task (manifest key ``agent``)
    priority : Priority
        Scheduling hint, defaults to medium
    timeout : float
        Per-attempt timeout in seconds
    retries : int
        Additional attempts after the first failure
    dependencies : tuple[str, ...]
        Intra-phase task ids; descriptive only, never enforced as ordering
    metadata : dict[str, Any]
        Opaque key/value data
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    id: str
    description: str
    role: AgentRole | None = Field(default=None, alias="agent")
    priority: Priority = Priority.MEDIUM
    timeout: float = Field(default=300.0, gt=0)
    retries: int = Field(default=2, ge=0)
    dependencies: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dedupe_dependencies(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value
