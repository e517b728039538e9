"""Tests for flowdag.kernel.config.models."""

import dataclasses

import pytest

from flowdag.kernel.config.models import (
    EngineConfig,
    ExecutorConfig,
    FlowDAGConfig,
    StateStoreConfig,
)
from flowdag.kernel.exceptions import ValidationError


class TestEngineConfig:
    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.namespace == "workflows"
        assert config.max_parallel_tasks_warning == 10
        assert config.max_phases_suggestion == 20

    def test_empty_namespace_rejected(self) -> None:
        with pytest.raises(ValidationError, match="namespace"):
            EngineConfig(namespace="")

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EngineConfig(max_parallel_tasks_warning=0)

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            EngineConfig().namespace = "other"  # type: ignore[misc]


class TestExecutorConfig:
    def test_defaults(self) -> None:
        config = ExecutorConfig()
        assert config.kind == "cli"
        assert config.command == ("npx", "claude-flow")
        assert config.non_interactive is True

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValidationError, match="command"):
            ExecutorConfig(command=())

    def test_negative_backoff_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExecutorConfig(retry_backoff_seconds=-1)


def test_aggregate_defaults() -> None:
    config = FlowDAGConfig()
    assert config.state_store == StateStoreConfig()
    assert config.runner.container is None
    assert config.logging.level == "INFO"
