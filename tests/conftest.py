"""
Shared test fixtures and helpers for Plinth test suite.
"""

from typing import Any, List, Optional

import pytest

from plinth.application import ApplicationBuilder
from plinth.context import PluginContext
from plinth.cqrs import InMemoryCommandBus, InMemoryEventBus, InMemoryQueryBus
from plinth.di.core import Container
from plinth.plugin import PluginMetadata
from plinth.registry import PluginRegistry


# ============================================================================
# Plugin Helpers
# ============================================================================


class RecordingPlugin:
    """
    Plugin whose hooks append ``(hook, name)`` to a shared journal.

    ``fail_on`` names hooks that raise instead.
    """

    def __init__(
        self,
        name: str,
        dependencies: Optional[List[str]] = None,
        journal: Optional[list] = None,
        fail_on: tuple = (),
    ):
        self.metadata = PluginMetadata(
            name=name, version="1.0.0", dependencies=dependencies or []
        )
        self.journal = journal if journal is not None else []
        self.fail_on = fail_on
        self.contexts: List[Any] = []

    async def initialize(self, context):
        self.contexts.append(context)
        self._record("initialize")

    async def start(self):
        self._record("start")

    async def stop(self):
        self._record("stop")

    def _record(self, hook: str):
        self.journal.append((hook, self.metadata.name))
        if hook in self.fail_on:
            raise RuntimeError(f"{self.metadata.name} {hook} boom")


class BarePlugin:
    """Plugin with metadata and no hooks."""

    def __init__(self, name: str, dependencies: Optional[List[str]] = None):
        self.metadata = PluginMetadata(
            name=name, version="0.1.0", dependencies=dependencies or []
        )


def make_registry(*plugins) -> PluginRegistry:
    registry = PluginRegistry()
    for plugin in plugins:
        registry.register(plugin)
    return registry


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def journal() -> list:
    return []


@pytest.fixture
def container() -> Container:
    """Container holding the three in-memory buses."""
    c = Container()
    c.register_instance("commandBus", InMemoryCommandBus())
    c.register_instance("queryBus", InMemoryQueryBus())
    c.register_instance("eventBus", InMemoryEventBus())
    return c


@pytest.fixture
def plugin_context(container) -> PluginContext:
    return PluginContext(container)


@pytest.fixture
def builder() -> ApplicationBuilder:
    return ApplicationBuilder.create()
