"""
Plugin registry - unique-name store with dependency-ordered views.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from .errors import DuplicatePluginError
from .graph import DependencyGraph
from .plugin import is_context_module, is_plugin


logger = logging.getLogger("plinth.registry")


class PluginRegistry:
    """
    Stores plugins by ``metadata.name``.

    Ordering is computed on demand: every call to ``get_plugins_in_order``
    builds a fresh ``DependencyGraph`` from the current registrations, so
    missing or circular dependencies surface at the moment ordering is
    requested.
    """

    def __init__(self):
        self._plugins: Dict[str, Any] = {}

    def register(self, plugin: Any) -> None:
        """
        Register a plugin.

        Raises:
            TypeError: If ``plugin`` has no ``PluginMetadata``
            DuplicatePluginError: If the name is already taken
        """
        if not is_plugin(plugin):
            raise TypeError(
                f"{plugin!r} is not a plugin: missing PluginMetadata 'metadata' attribute"
            )

        name = plugin.metadata.name
        if name in self._plugins:
            raise DuplicatePluginError(name)

        self._plugins[name] = plugin
        logger.debug(
            f"Registered plugin {name} v{plugin.metadata.version}"
            + (f" (→ {', '.join(plugin.metadata.dependencies)})"
               if plugin.metadata.dependencies else "")
        )

    def get(self, name: str) -> Optional[Any]:
        return self._plugins.get(name)

    def has(self, name: str) -> bool:
        return name in self._plugins

    @property
    def names(self) -> List[str]:
        """Plugin names in registration order."""
        return list(self._plugins)

    def all(self) -> List[Any]:
        """Plugins in registration order."""
        return list(self._plugins.values())

    def get_context_modules(self) -> List[Any]:
        """Registered plugins that are context modules, in registration order."""
        return [p for p in self._plugins.values() if is_context_module(p)]

    def build_graph(self) -> DependencyGraph:
        """Build a dependency graph from the current registrations."""
        graph = DependencyGraph()
        for name, plugin in self._plugins.items():
            graph.add_node(name, plugin.metadata.dependencies)
        return graph

    def get_plugins_in_order(self) -> List[Any]:
        """
        Plugins in dependency order (dependencies first).

        Raises:
            MissingDependencyError: A declared dependency is not registered
            CircularDependencyError: The dependencies form a cycle
        """
        order = self.build_graph().topological_sort()
        return [self._plugins[name] for name in order]

    def get_plugins_in_reverse_order(self) -> List[Any]:
        """Plugins in teardown order (dependents first)."""
        order = self.build_graph().reverse_topological_sort()
        return [self._plugins[name] for name in order]

    def __contains__(self, name: str) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)

    def __repr__(self) -> str:
        return f"PluginRegistry({len(self._plugins)} plugins)"
