"""Pipeline manifests: YAML documents describing a pipeline's phases.

Manifest format::

    apiVersion: v1
    kind: Pipeline
    metadata:
      id: release
      name: Release
      description: Build and ship
    spec:
      phases:
        - id: build
          parallel: true
          tasks:
            - {id: compile, description: Compile sources, agent: coder}
        - id: ship
          dependencies: [build]
          tasks:
            - {id: deploy, description: Deploy, agent: cicd-engineer, priority: critical}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from flowdag.kernel.config.models import EngineConfig
from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.exceptions import ConfigurationError
from flowdag.kernel.logging import get_logger
from flowdag.kernel.orchestration.engine import PipelineEngine
from flowdag.kernel.ports.state_store import StateStore
from flowdag.kernel.ports.task_executor import TaskExecutor

logger = get_logger(__name__)

MANIFEST_KIND = "Pipeline"


class PipelineDefinition(BaseModel):
    """Validated content of a pipeline manifest."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    phases: tuple[PhaseSpec, ...] = ()


def parse_pipeline(data: Any, source: str = "<manifest>") -> PipelineDefinition:
    """Validate a manifest mapping into a ``PipelineDefinition``.

    Raises
    ------
    ConfigurationError
        If the document is not a well-formed ``kind: Pipeline`` manifest
    """
    if not isinstance(data, dict):
        raise ConfigurationError(source, f"expected a mapping, got {type(data).__name__}")

    kind = data.get("kind")
    if kind != MANIFEST_KIND:
        raise ConfigurationError(source, f"expected 'kind: {MANIFEST_KIND}', got 'kind: {kind}'")

    metadata = data.get("metadata")
    spec = data.get("spec")
    if not isinstance(metadata, dict):
        raise ConfigurationError(source, "manifest must have a 'metadata' mapping")
    if not isinstance(spec, dict):
        raise ConfigurationError(source, "manifest must have a 'spec' mapping")

    pipeline_id = metadata.get("id") or metadata.get("name")
    try:
        definition = PipelineDefinition(
            id=pipeline_id or "",
            name=metadata.get("name") or pipeline_id or "",
            description=metadata.get("description", ""),
            phases=spec.get("phases") or (),
        )
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(source, details) from e

    logger.debug(
        "Parsed pipeline '{pipeline_id}' with {count} phases",
        pipeline_id=definition.id,
        count=len(definition.phases),
    )
    return definition


def load_pipeline(path: str | Path) -> PipelineDefinition:
    """Read and validate a pipeline manifest from disk."""
    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(str(manifest_path), f"cannot read manifest: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(str(manifest_path), f"invalid YAML: {e}") from e
    return parse_pipeline(data, source=str(manifest_path))


def build_engine(
    definition: PipelineDefinition,
    task_executor: TaskExecutor,
    state_store: StateStore,
    config: EngineConfig | None = None,
) -> PipelineEngine:
    return PipelineEngine(
        definition.id,
        definition.phases,
        task_executor,
        state_store,
        name=definition.name,
        description=definition.description,
        config=config,
    )


def definition_to_manifest(engine: PipelineEngine | PipelineDefinition) -> dict[str, Any]:
    """Render a pipeline back into manifest form.

    Defaults are omitted so the output stays close to hand-written manifests.
    """
    phases = []
    for phase in engine.phases:
        entry: dict[str, Any] = {"id": phase.id}
        if phase.name != phase.id:
            entry["name"] = phase.name
        if phase.dependencies:
            entry["dependencies"] = list(phase.dependencies)
        entry["parallel"] = phase.parallel
        if phase.timeout is not None:
            entry["timeout"] = phase.timeout
        entry["tasks"] = [
            task.model_dump(mode="json", by_alias=True, exclude_defaults=True)
            for task in phase.tasks
        ]
        phases.append(entry)

    return {
        "apiVersion": "v1",
        "kind": MANIFEST_KIND,
        "metadata": {"id": engine.id, "name": engine.name, "description": engine.description},
        "spec": {"phases": phases},
    }


def dump_manifest(manifest: dict[str, Any]) -> str:
    return yaml.safe_dump(manifest, sort_keys=False, allow_unicode=True)
