"""Tests for flowdag.kernel.domain.dag."""

import pytest

from flowdag.kernel.domain.dag import DependencyResolver
from flowdag.kernel.exceptions import CycleError, GraphValidationError


class TestResolve:
    """Topological ordering of phases."""

    def test_linear_chain(self, make_phase) -> None:
        phases = [
            make_phase("c", dependencies=["b"]),
            make_phase("a"),
            make_phase("b", dependencies=["a"]),
        ]
        assert DependencyResolver(phases).order() == ["a", "b", "c"]

    def test_every_phase_follows_its_dependencies(self, make_phase) -> None:
        phases = [
            make_phase("deploy", dependencies=["test", "docs"]),
            make_phase("docs", dependencies=["build"]),
            make_phase("test", dependencies=["build", "lint"]),
            make_phase("lint"),
            make_phase("build", dependencies=["plan"]),
            make_phase("plan"),
        ]
        order = DependencyResolver(phases).order()

        assert sorted(order) == sorted(p.id for p in phases)
        position = {phase_id: index for index, phase_id in enumerate(order)}
        for phase in phases:
            for dep in phase.dependencies:
                assert position[dep] < position[phase.id]

    def test_resolution_is_stable(self, make_phase) -> None:
        phases = [
            make_phase("x", dependencies=["w"]),
            make_phase("y", dependencies=["w"]),
            make_phase("w"),
            make_phase("z"),
        ]
        resolver = DependencyResolver(phases)
        assert resolver.order() == resolver.order()
        assert DependencyResolver(phases).order() == resolver.order()

    def test_independent_phases_keep_input_order(self, make_phase) -> None:
        phases = [make_phase("second"), make_phase("first"), make_phase("third")]
        assert DependencyResolver(phases).order() == ["second", "first", "third"]

    def test_resolve_returns_phase_objects(self, make_phase) -> None:
        plan = make_phase("plan", tasks=["t1"])
        resolved = DependencyResolver([plan]).resolve()
        assert resolved == [plan]

    def test_empty_pipeline(self) -> None:
        assert DependencyResolver([]).order() == []


class TestResolveErrors:
    """Structural errors raised by resolve()."""

    def test_two_phase_cycle(self, make_phase) -> None:
        phases = [make_phase("x", dependencies=["y"]), make_phase("y", dependencies=["x"])]

        with pytest.raises(CycleError) as exc_info:
            DependencyResolver(phases).resolve()

        assert exc_info.value.phase_id in {"x", "y"}
        assert exc_info.value.cycle[0] == exc_info.value.cycle[-1]
        assert "Circular dependency detected involving phase" in str(exc_info.value)

    def test_self_dependency_is_a_cycle(self, make_phase) -> None:
        with pytest.raises(CycleError) as exc_info:
            DependencyResolver([make_phase("loop", dependencies=["loop"])]).resolve()
        assert exc_info.value.phase_id == "loop"

    def test_cycle_error_is_a_graph_validation_error(self, make_phase) -> None:
        phases = [
            make_phase("a", dependencies=["c"]),
            make_phase("b", dependencies=["a"]),
            make_phase("c", dependencies=["b"]),
        ]
        with pytest.raises(GraphValidationError):
            DependencyResolver(phases).resolve()

    def test_missing_dependency(self, make_phase) -> None:
        with pytest.raises(GraphValidationError) as exc_info:
            DependencyResolver([make_phase("z", dependencies=["nonexistent"])]).resolve()

        assert exc_info.value.errors == ["Phase 'z' depends on non-existent phase 'nonexistent'"]

    def test_duplicate_phase_ids(self, make_phase) -> None:
        with pytest.raises(GraphValidationError) as exc_info:
            DependencyResolver([make_phase("a"), make_phase("a")]).resolve()

        assert "Duplicate phase id 'a'" in exc_info.value.errors


class TestDetectCycle:
    """Static cycle detection over plain graphs."""

    def test_acyclic(self) -> None:
        assert DependencyResolver.detect_cycle({"a": [], "b": ["a"], "c": ["a", "b"]}) is None

    def test_cycle_path(self) -> None:
        cycle = DependencyResolver.detect_cycle({"a": ["b"], "b": ["c"], "c": ["a"]})
        assert cycle == ["a", "b", "c", "a"]

    def test_unknown_dependencies_are_ignored(self) -> None:
        assert DependencyResolver.detect_cycle({"a": ["missing"]}) is None

    def test_missing_dependencies_listed(self, make_phase) -> None:
        resolver = DependencyResolver(
            [make_phase("a", dependencies=["ghost"]), make_phase("b", dependencies=["a", "gone"])]
        )
        assert resolver.missing_dependencies() == [("a", "ghost"), ("b", "gone")]
