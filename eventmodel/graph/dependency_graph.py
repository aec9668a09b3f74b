"""Directed dependency graph over element ids.

Nodes are element ids; an edge a -> b exists for every OUTBOUND dependency on
a naming b. Parallel edges are kept (multigraph). Traversals use an explicit
stack so deep models cannot overflow the interpreter stack.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Mapping

from ..core.errors import (
    AsymmetricDependencyError,
    TypeMismatchError,
    UnknownReferenceError,
)
from ..core.models import DependencyType, Element


class DependencyGraph:
    """Adjacency-list multigraph derived from element dependencies."""

    def __init__(self) -> None:
        self._successors: dict[str, list[str]] = {}

    @classmethod
    def from_elements(cls, elements: Iterable[Element]) -> DependencyGraph:
        graph = cls()
        elements = list(elements)
        for element in elements:
            graph.add_node(element.id)
        for element in elements:
            for dep in element.outbound():
                graph.add_edge(element.id, dep.id)
        return graph

    # ── Mutation ──

    def add_node(self, node: str) -> None:
        self._successors.setdefault(node, [])

    def add_edge(self, source: str, target: str) -> None:
        self.add_node(source)
        self.add_node(target)
        self._successors[source].append(target)

    # ── Queries ──

    def predecessors(self, node: str) -> list[str]:
        return [
            source
            for source, targets in self._successors.items()
            for target in targets
            if target == node
        ]

    def to_adjacency(self) -> dict[str, list[str]]:
        """Adjacency mapping node -> successors (copy, insertion order)."""
        return {node: list(targets) for node, targets in self._successors.items()}

    def has_path(self, source: str, target: str) -> bool:
        """True if target is reachable from source (a node reaches itself)."""
        if source == target:
            return source in self._successors
        seen = {source}
        stack = [source]
        while stack:
            node = stack.pop()
            for succ in self._successors.get(node, ()):
                if succ == target:
                    return True
                if succ not in seen:
                    seen.add(succ)
                    stack.append(succ)
        return False

    def would_create_cycle(self, source: str, target: str) -> bool:
        """True if adding source -> target closes a cycle."""
        if source == target:
            return True
        return self.has_path(target, source)

    def path(self, source: str, target: str) -> list[str] | None:
        """One path from source to target, or None."""
        parents: dict[str, str | None] = {source: None}
        stack = [source]
        while stack:
            node = stack.pop()
            if node == target:
                path = [node]
                parent = parents[node]
                while parent is not None:
                    path.append(parent)
                    parent = parents[parent]
                return list(reversed(path))
            for succ in self._successors.get(node, ()):
                if succ not in parents:
                    parents[succ] = node
                    stack.append(succ)
        return None

    def find_cycle(self) -> list[str] | None:
        """Return one cycle as [n0, n1, ..., n0], or None if the graph is acyclic.

        Iterative three-colour DFS.
        """
        WHITE, GREY, BLACK = 0, 1, 2
        colour: dict[str, int] = defaultdict(int)

        for root in self._successors:
            if colour[root] != WHITE:
                continue
            # Stack of (node, iterator position)
            stack: list[tuple[str, int]] = [(root, 0)]
            trail: list[str] = [root]
            colour[root] = GREY
            while stack:
                node, pos = stack[-1]
                targets = self._successors.get(node, [])
                if pos < len(targets):
                    stack[-1] = (node, pos + 1)
                    succ = targets[pos]
                    if colour[succ] == GREY:
                        start = trail.index(succ)
                        return trail[start:] + [succ]
                    if colour[succ] == WHITE:
                        colour[succ] = GREY
                        stack.append((succ, 0))
                        trail.append(succ)
                else:
                    colour[node] = BLACK
                    stack.pop()
                    trail.pop()
        return None

    def topological_order(self) -> list[str]:
        """Kahn's algorithm; ties broken by node id for deterministic output.

        Raises:
            ValueError: If the graph has a cycle.
        """
        in_degree = {node: 0 for node in self._successors}
        for targets in self._successors.values():
            for target in targets:
                in_degree[target] += 1

        queue = sorted(node for node, degree in in_degree.items() if degree == 0)
        order: list[str] = []
        while queue:
            node = queue.pop(0)
            order.append(node)
            for succ in self._successors[node]:
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    queue.append(succ)
            queue.sort()

        if len(order) != len(in_degree):
            raise ValueError("Dependency graph contains a cycle")
        return order


def symmetry_check(element_id: str, elements: Mapping[str, Element]) -> None:
    """Check that every edge of an element is mirrored and correctly typed.

    For each dependency on the element, the other endpoint must exist, have the
    declared element_type, and declare the opposite-direction edge back.

    Raises:
        UnknownReferenceError: An edge names an element that does not exist.
        TypeMismatchError: A declared element_type differs from the actual type.
        AsymmetricDependencyError: The other endpoint lacks the mirrored edge.
    """
    element = elements.get(element_id)
    if element is None:
        raise UnknownReferenceError(f"Unknown element '{element_id}'", location=element_id)

    for i, dep in enumerate(element.dependencies):
        location = f"{element_id}.dependencies[{i}]"
        other = elements.get(dep.id)
        if other is None:
            raise UnknownReferenceError(
                f"Dependency points to unknown element '{dep.id}'", location=location
            )
        if other.type != dep.element_type:
            raise TypeMismatchError(
                f"Dependency declares '{dep.id}' as {dep.element_type.value} "
                f"but it is {other.type.value}",
                location=location,
            )
        opposite = (
            DependencyType.INBOUND
            if dep.type == DependencyType.OUTBOUND
            else DependencyType.OUTBOUND
        )
        mirror = other.find_dependency(element_id, opposite)
        if mirror is None:
            raise AsymmetricDependencyError(
                f"{dep.type.value} edge to '{dep.id}' has no {opposite.value} "
                f"edge back on '{dep.id}'",
                location=location,
                suggestion=f"Add the {opposite.value} dependency on '{dep.id}'",
            )
        if mirror.element_type != element.type:
            raise TypeMismatchError(
                f"'{dep.id}' declares '{element_id}' as {mirror.element_type.value} "
                f"but it is {element.type.value}",
                location=location,
            )
