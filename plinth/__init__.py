"""
Plinth - dependency-ordered plugin lifecycle runtime.

Registers plugins (infrastructure extensions and bounded-context modules),
orders them by their declared dependencies and drives them through
initialize, start and stop:

- Initialize and start run dependencies first and abort on the first failure
- Stop runs dependents first and attempts every plugin
- Context modules register repositories, then wire commands, queries and
  event handlers onto the buses
"""

__version__ = "0.1.0"

from .errors import (
    RuntimeFault,
    CircularDependencyError,
    MissingDependencyError,
    DuplicatePluginError,
    PluginLifecycleError,
    LifecycleStateError,
)

from .graph import DependencyGraph, GraphNode

from .plugin import (
    Plugin,
    PluginMetadata,
    ContextModule,
    BaseContextModule,
    CommandDefinition,
    QueryDefinition,
    EventHandlerDefinition,
    RepositoryDefinition,
    HealthStatus,
    HealthCheckResult,
    is_plugin,
    is_context_module,
)

from .registry import PluginRegistry

from .lifecycle import (
    LifecycleManager,
    LifecyclePhase,
    LifecycleEvent,
    StopFailure,
)

from .context import PluginContext
from .config import ConfigLoader, ConfigError
from .di import Container, ServiceLifetime, ProviderNotFoundError

from .cqrs import (
    InMemoryCommandBus,
    InMemoryQueryBus,
    InMemoryEventBus,
    HandlerNotFoundError,
    DuplicateHandlerError,
)

from .application import ApplicationBuilder, Application

__all__ = [
    # Errors
    "RuntimeFault",
    "CircularDependencyError",
    "MissingDependencyError",
    "DuplicatePluginError",
    "PluginLifecycleError",
    "LifecycleStateError",

    # Graph
    "DependencyGraph",
    "GraphNode",

    # Plugins
    "Plugin",
    "PluginMetadata",
    "ContextModule",
    "BaseContextModule",
    "CommandDefinition",
    "QueryDefinition",
    "EventHandlerDefinition",
    "RepositoryDefinition",
    "HealthStatus",
    "HealthCheckResult",
    "is_plugin",
    "is_context_module",

    # Registry / lifecycle
    "PluginRegistry",
    "LifecycleManager",
    "LifecyclePhase",
    "LifecycleEvent",
    "StopFailure",

    # Runtime environment
    "PluginContext",
    "ConfigLoader",
    "ConfigError",
    "Container",
    "ServiceLifetime",
    "ProviderNotFoundError",

    # CQRS
    "InMemoryCommandBus",
    "InMemoryQueryBus",
    "InMemoryEventBus",
    "HandlerNotFoundError",
    "DuplicateHandlerError",

    # Driver
    "ApplicationBuilder",
    "Application",
]
