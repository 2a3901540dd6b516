"""
Plugin registry (registry.py)

Tests PluginRegistry registration rules and dependency-ordered views.
"""

import pytest

from plinth.errors import (
    CircularDependencyError,
    DuplicatePluginError,
    MissingDependencyError,
)
from plinth.plugin import BaseContextModule, PluginMetadata
from plinth.registry import PluginRegistry

from tests.conftest import BarePlugin, make_registry


class OrdersModule(BaseContextModule):
    metadata = PluginMetadata(name="orders-context", version="1.0.0")
    context_name = "Orders"


# ============================================================================
# register
# ============================================================================

class TestRegister:

    def test_register_and_get(self):
        plugin = BarePlugin("logger")
        registry = make_registry(plugin)
        assert registry.get("logger") is plugin
        assert registry.has("logger")
        assert "logger" in registry
        assert len(registry) == 1

    def test_get_unknown(self):
        assert PluginRegistry().get("nope") is None

    def test_duplicate_rejected(self):
        registry = make_registry(BarePlugin("logger"))
        with pytest.raises(DuplicatePluginError, match="'logger' is already registered") as exc_info:
            registry.register(BarePlugin("logger"))
        assert exc_info.value.plugin_name == "logger"
        assert exc_info.value.code == "DUPLICATE_PLUGIN"
        assert len(registry) == 1

    def test_rejects_non_plugin(self):
        with pytest.raises(TypeError, match="not a plugin"):
            PluginRegistry().register(object())

    def test_registration_order_views(self):
        registry = make_registry(BarePlugin("b"), BarePlugin("a"))
        assert registry.names == ["b", "a"]
        assert [p.metadata.name for p in registry.all()] == ["b", "a"]
        assert [p.metadata.name for p in registry] == ["b", "a"]

    def test_context_modules(self):
        module = OrdersModule()
        registry = make_registry(BarePlugin("logger"), module)
        assert registry.get_context_modules() == [module]


# ============================================================================
# Ordering
# ============================================================================

class TestOrdering:

    def test_in_order(self):
        a = BarePlugin("A")
        b = BarePlugin("B", ["A"])
        c = BarePlugin("C", ["A", "B"])
        registry = make_registry(c, b, a)

        assert registry.get_plugins_in_order() == [a, b, c]
        assert registry.get_plugins_in_reverse_order() == [c, b, a]

    def test_returns_plugin_objects(self):
        a = BarePlugin("A")
        registry = make_registry(a)
        assert registry.get_plugins_in_order()[0] is a

    def test_missing_dependency(self):
        registry = make_registry(BarePlugin("api", ["database"]))
        with pytest.raises(MissingDependencyError):
            registry.get_plugins_in_order()

    def test_circular_dependency(self):
        registry = make_registry(BarePlugin("a", ["b"]), BarePlugin("b", ["a"]))
        with pytest.raises(CircularDependencyError):
            registry.get_plugins_in_reverse_order()

    def test_graph_rebuilt_per_request(self):
        registry = make_registry(BarePlugin("api", ["database"]))
        with pytest.raises(MissingDependencyError):
            registry.get_plugins_in_order()

        registry.register(BarePlugin("database"))
        assert [p.metadata.name for p in registry.get_plugins_in_order()] == ["database", "api"]

    def test_build_graph(self):
        registry = make_registry(BarePlugin("a"), BarePlugin("b", ["a"]))
        graph = registry.build_graph()
        assert graph.to_dict() == {"a": [], "b": ["a"]}
