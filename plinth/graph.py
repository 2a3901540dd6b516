"""
Dependency graph with depth-first topological sorting and cycle detection.
"""

from typing import Dict, List, Set
from dataclasses import dataclass, field

from .errors import CircularDependencyError, MissingDependencyError


# DFS colours
_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


@dataclass
class GraphNode:
    """Dependency graph node."""

    name: str
    dependencies: List[str] = field(default_factory=list)

    def __hash__(self) -> int:
        return hash(self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphNode):
            return NotImplemented
        return self.name == other.name


class DependencyGraph:
    """
    Dependency graph with cycle detection and topological sorting.

    Traversal is a depth-first search over nodes in insertion order, visiting
    each node's dependencies in their declared order. The output order is
    therefore deterministic for a given sequence of ``add_node`` calls.
    """

    def __init__(self):
        self._nodes: Dict[str, GraphNode] = {}

    def add_node(self, name: str, dependencies: List[str]) -> None:
        """
        Add node to graph, replacing any node with the same name.

        Args:
            name: Node name
            dependencies: List of dependency names
        """
        self._nodes[name] = GraphNode(name=name, dependencies=list(dependencies))

    def topological_sort(self) -> List[str]:
        """
        Compute topological sort of graph (dependency order).

        Returns:
            List of node names, dependencies first

        Raises:
            MissingDependencyError: If a dependency is not a node of the graph
            CircularDependencyError: If a cycle is detected
        """
        state: Dict[str, int] = {name: _UNVISITED for name in self._nodes}
        path: List[str] = []
        result: List[str] = []

        for root in self._nodes:
            if state[root] != _UNVISITED:
                continue

            # Explicit stack of (node, remaining dependencies) frames
            state[root] = _IN_PROGRESS
            path.append(root)
            stack = [(root, iter(self._nodes[root].dependencies))]

            while stack:
                name, deps = stack[-1]
                for dep in deps:
                    if dep not in self._nodes:
                        raise MissingDependencyError(name, dep)

                    colour = state[dep]
                    if colour == _IN_PROGRESS:
                        start = path.index(dep)
                        raise CircularDependencyError(cycle=path[start:] + [dep])
                    if colour == _UNVISITED:
                        state[dep] = _IN_PROGRESS
                        path.append(dep)
                        stack.append((dep, iter(self._nodes[dep].dependencies)))
                        break
                else:
                    stack.pop()
                    path.pop()
                    state[name] = _DONE
                    result.append(name)

        return result

    def reverse_topological_sort(self) -> List[str]:
        """
        Teardown order: dependents before their dependencies.

        Raises the same errors as ``topological_sort``.
        """
        return list(reversed(self.topological_sort()))

    def get_dependencies(self, node_name: str) -> List[str]:
        """
        Get direct dependencies of node.

        Args:
            node_name: Node name

        Returns:
            List of dependency names
        """
        node = self._nodes.get(node_name)
        return list(node.dependencies) if node else []

    def get_transitive_dependencies(self, node_name: str) -> Set[str]:
        """
        Get transitive closure of dependencies.

        Unknown dependency names are included but not expanded.
        """
        visited: Set[str] = set()
        pending = [node_name]

        while pending:
            name = pending.pop()
            if name in visited:
                continue
            visited.add(name)
            pending.extend(self.get_dependencies(name))

        visited.discard(node_name)
        return visited

    def get_dependents(self, node_name: str) -> List[str]:
        """Get nodes that depend directly on given node."""
        return [
            name for name, node in self._nodes.items()
            if node_name in node.dependencies
        ]

    def to_dict(self) -> Dict[str, List[str]]:
        """Export graph as adjacency dict."""
        return {name: list(node.dependencies) for name, node in self._nodes.items()}

    def to_dot(self) -> str:
        """
        Export graph as DOT format for visualization.

        Edges point from dependent to dependency.
        """
        lines = ["digraph dependencies {"]
        lines.append("  rankdir=LR;")
        lines.append("  node [shape=box, style=rounded];")

        for name in self._nodes:
            lines.append(f'  "{name}";')

        for name, node in self._nodes.items():
            for dep in node.dependencies:
                lines.append(f'  "{name}" -> "{dep}";')

        lines.append("}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def __repr__(self) -> str:
        return f"DependencyGraph({len(self._nodes)} nodes)"
