"""Phase dependency graph: topological ordering and cycle detection."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum, auto

from flowdag.kernel.domain.phase import PhaseSpec
from flowdag.kernel.exceptions import CycleError, GraphValidationError


class Color(Enum):
    """Colors for DFS cycle detection algorithm."""

    WHITE = auto()  # Unvisited
    GRAY = auto()  # On the current DFS stack
    BLACK = auto()  # Fully processed


class DependencyResolver:
    """Orders phases so every phase follows all phases it depends on.

    Resolution is a depth-first post-order walk. Phases are visited in their
    input order and dependencies in their declared order, so resolving the
    same phase set always yields the same order and independent phases keep
    their relative input order.

    Examples
    --------
    >>> from flowdag.kernel.domain.phase import PhaseSpec
    >>> resolver = DependencyResolver(
    ...     [PhaseSpec(id="build", dependencies=["plan"]), PhaseSpec(id="plan")]
    ... )
    >>> [phase.id for phase in resolver.resolve()]
    ['plan', 'build']
    """

    def __init__(self, phases: Sequence[PhaseSpec]) -> None:
        self._phases = tuple(phases)
        self._by_id: dict[str, PhaseSpec] = {}
        for phase in self._phases:
            self._by_id.setdefault(phase.id, phase)

    @property
    def graph(self) -> dict[str, tuple[str, ...]]:
        """Phase id -> declared dependency ids, in input order."""
        return {phase_id: phase.dependencies for phase_id, phase in self._by_id.items()}

    def duplicate_ids(self) -> list[str]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for phase in self._phases:
            if phase.id in seen and phase.id not in duplicates:
                duplicates.append(phase.id)
            seen.add(phase.id)
        return duplicates

    def missing_dependencies(self) -> list[tuple[str, str]]:
        """Return ``(phase_id, dependency_id)`` pairs naming unknown phases."""
        return [
            (phase.id, dep)
            for phase in self._phases
            for dep in phase.dependencies
            if dep not in self._by_id
        ]

    def resolve(self) -> list[PhaseSpec]:
        """Return the phases in a valid execution order.

        Raises
        ------
        GraphValidationError
            If phase ids repeat or a dependency names an unknown phase
        CycleError
            If the dependency graph contains a cycle
        """
        errors = [f"Duplicate phase id '{phase_id}'" for phase_id in self.duplicate_ids()]
        errors.extend(
            f"Phase '{phase_id}' depends on non-existent phase '{dep}'"
            for phase_id, dep in self.missing_dependencies()
        )
        if errors:
            raise GraphValidationError(errors)

        graph = self.graph
        colors = dict.fromkeys(graph, Color.WHITE)
        order: list[PhaseSpec] = []

        def visit(phase_id: str, path: list[str]) -> None:
            if colors[phase_id] == Color.GRAY:
                cycle = path[path.index(phase_id) :] + [phase_id]
                raise CycleError(phase_id, cycle)
            if colors[phase_id] == Color.BLACK:
                return

            colors[phase_id] = Color.GRAY
            path.append(phase_id)
            for dep in graph[phase_id]:
                visit(dep, path)
            path.pop()
            colors[phase_id] = Color.BLACK
            order.append(self._by_id[phase_id])

        for phase_id in graph:
            if colors[phase_id] == Color.WHITE:
                visit(phase_id, [])

        return order

    def order(self) -> list[str]:
        """Resolved phase ids, see :meth:`resolve`."""
        return [phase.id for phase in self.resolve()]

    @staticmethod
    def detect_cycle(graph: Mapping[str, Sequence[str]]) -> list[str] | None:
        """Detect a cycle in a dependency graph using three-state DFS.

        Dependencies that are not keys of ``graph`` are ignored, so this can
        run on graphs that also have missing-dependency errors.

        Parameters
        ----------
        graph : Mapping[str, Sequence[str]]
            Node id -> ids it depends on

        Returns
        -------
        list[str] | None
            The cycle path (first and last element equal) or None

        Examples
        --------
        >>> DependencyResolver.detect_cycle({"a": ["b"], "b": ["c"], "c": ["a"]})
        ['a', 'b', 'c', 'a']
        >>> DependencyResolver.detect_cycle({"a": ["b"], "b": []}) is None
        True
        """
        colors = dict.fromkeys(graph, Color.WHITE)

        def dfs(node: str, path: list[str]) -> list[str] | None:
            if colors[node] == Color.GRAY:
                return path[path.index(node) :] + [node]
            if colors[node] == Color.BLACK:
                return None

            colors[node] = Color.GRAY
            path.append(node)
            for dep in graph.get(node, ()):
                if dep in colors and (result := dfs(dep, path)):
                    return result
            path.pop()
            colors[node] = Color.BLACK
            return None

        for node in graph:
            if colors[node] == Color.WHITE and (result := dfs(node, [])):
                return result

        return None
