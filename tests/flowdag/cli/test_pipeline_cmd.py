"""Tests for the flowdag command line."""

import json

import pytest
import yaml
from typer.testing import CliRunner

from flowdag.cli.main import app

runner = CliRunner()

MANIFEST = """
apiVersion: v1
kind: Pipeline
metadata:
  id: release
  name: Release
spec:
  phases:
    - id: build
      parallel: true
      tasks:
        - {id: compile, description: Compile sources, agent: coder}
        - {id: lint, description: Lint sources, agent: reviewer}
    - id: ship
      dependencies: [build]
      tasks:
        - {id: deploy, description: Deploy, agent: cicd-engineer}
"""

CYCLIC_MANIFEST = """
kind: Pipeline
metadata: {id: loop}
spec:
  phases:
    - {id: a, dependencies: [b]}
    - {id: b, dependencies: [a]}
"""


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("FLOWDAG_CONFIG_PATH", "FLOWDAG_LOG_LEVEL", "FLOWDAG_LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    (tmp_path / "release.yaml").write_text(MANIFEST)
    (tmp_path / "loop.yaml").write_text(CYCLIC_MANIFEST)
    config = {
        "kind": "Config",
        "spec": {
            "logging": {"level": "ERROR"},
            "executor": {"kind": "local"},
            "state_store": {"provider": "file", "path": str(tmp_path / "state")},
        },
    }
    (tmp_path / "flowdag.yaml").write_text(yaml.safe_dump(config))
    return tmp_path


class TestValidate:
    def test_valid_pipeline(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "validate", "release.yaml"])

        assert result.exit_code == 0
        assert "Pipeline is valid" in result.stdout

    def test_cycle_json(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "validate", "loop.yaml", "--json"])

        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert report["is_valid"] is False
        assert any("circular" in error for error in report["errors"])

    def test_missing_manifest(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "validate", "nope.yaml"])
        assert result.exit_code == 2

    def test_missing_config_file(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "validate", "release.yaml", "-c", "missing.yaml"])
        assert result.exit_code == 2


class TestOrder:
    def test_order(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "order", "release.yaml", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"order": ["build", "ship"], "errors": []}

    def test_cycle(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "order", "loop.yaml", "--json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["order"] == []


class TestRunAndMonitor:
    def test_run_then_monitor(self, workspace) -> None:
        run = runner.invoke(app, ["-q", "run", "release.yaml", "-c", "flowdag.yaml", "--json"])

        assert run.exit_code == 0
        outcome = json.loads(run.stdout)
        assert outcome["outcome"] == "succeeded"
        assert outcome["exit_code"] == 0
        assert outcome["result"]["execution_order"] == ["build", "ship"]
        assert outcome["result"]["metrics"]["total_tasks"] == 3

        monitor = runner.invoke(
            app, ["-q", "monitor", "release.yaml", "-c", "flowdag.yaml", "--json"]
        )

        assert monitor.exit_code == 0
        report = json.loads(monitor.stdout)
        assert report["status"] == "completed"
        assert report["progress"] == 100.0
        assert report["run_id"] == outcome["result"]["run_id"]

    def test_run_table_output(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "run", "release.yaml", "-c", "flowdag.yaml"])

        assert result.exit_code == 0
        assert "succeeded" in result.stdout

    def test_structural_error_exit_code(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "run", "loop.yaml", "-c", "flowdag.yaml", "--json"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)["outcome"] == "structural_error"

    def test_monitor_without_runs(self, workspace) -> None:
        result = runner.invoke(
            app, ["-q", "monitor", "release.yaml", "-c", "flowdag.yaml", "--json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["run_id"] is None


class TestTemplate:
    def test_writes_manifest(self, workspace) -> None:
        result = runner.invoke(
            app,
            ["-q", "template", "ml", "-p", "Churn", "--model-type", "regression", "-o", "ml.yaml"],
        )

        assert result.exit_code == 0
        manifest = yaml.safe_load((workspace / "ml.yaml").read_text())
        assert manifest["kind"] == "Pipeline"
        assert manifest["metadata"]["id"] == "ml-churn"

    def test_rendered_manifest_validates(self, workspace) -> None:
        rendered = runner.invoke(app, ["-q", "template", "full-stack", "-p", "Shop"])
        (workspace / "shop.yaml").write_text(rendered.stdout)

        result = runner.invoke(app, ["-q", "validate", "shop.yaml"])

        assert rendered.exit_code == 0
        assert result.exit_code == 0

    def test_unknown_template(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "template", "mobile", "-p", "x"])
        assert result.exit_code == 1

    def test_bad_option(self, workspace) -> None:
        result = runner.invoke(app, ["-q", "template", "ml", "-p", "x", "--model-type", "genetic"])
        assert result.exit_code == 1


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "flowdag" in result.stdout
