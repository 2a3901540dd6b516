"""
Plugin contracts and the context-module base class.

A plugin is any object exposing ``metadata`` (a ``PluginMetadata``) and,
optionally, the lifecycle hooks ``initialize(context)``, ``start()``,
``stop()`` and ``health_check()``. Hooks may be coroutine functions or plain
functions.

Context modules are plugins that additionally wire one bounded context's
commands, queries, event handlers and repositories into the runtime. There is
no required base class: ``is_context_module`` checks for the capability set.
``BaseContextModule`` supplies the standard wiring.

Example:
    class OrdersModule(BaseContextModule):
        metadata = PluginMetadata(
            name="orders-context",
            version="1.0.0",
            dependencies=["inventory-context"],
        )
        context_name = "Orders"

        def get_repositories(self):
            return [RepositoryDefinition("orderRepository", InMemoryOrderRepository())]

        def get_commands(self):
            repo = self.context.container.resolve("orderRepository")
            return [CommandDefinition("CreateOrder", CreateOrder, CreateOrderHandler(repo))]
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    List,
    Mapping,
    Optional,
    Protocol,
    TYPE_CHECKING,
    runtime_checkable,
)

from .di.scopes import ServiceLifetime

if TYPE_CHECKING:
    from .context import PluginContext


logger = logging.getLogger("plinth.plugins")

# Container tokens the driver registers the buses under
COMMAND_BUS_TOKEN = "commandBus"
QUERY_BUS_TOKEN = "queryBus"
EVENT_BUS_TOKEN = "eventBus"

_CONTEXT_MODULE_METHODS = (
    "get_commands",
    "get_queries",
    "get_event_handlers",
    "get_repositories",
)


@dataclass
class PluginMetadata:
    """Declared identity and dependencies of a plugin."""

    name: str
    version: str
    description: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Plugin must have a name")
        if not self.version:
            raise ValueError(f"Plugin '{self.name}' must have a version")
        self.dependencies = list(self.dependencies)


class HealthStatus(str, Enum):
    """Health check outcome."""
    UP = "up"
    DEGRADED = "degraded"
    DOWN = "down"


@dataclass
class HealthCheckResult:
    """Result of a plugin health check."""
    status: HealthStatus
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "message": self.message}

    @classmethod
    def coerce(cls, value: Any) -> "HealthCheckResult":
        """Accept a result or a ``{"status", "message"}`` mapping."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping) and "status" in value:
            return cls(HealthStatus(value["status"]), value.get("message"))
        raise TypeError(
            f"health_check must return HealthCheckResult or a status mapping, got {value!r}"
        )


@runtime_checkable
class Plugin(Protocol):
    """
    Plugin protocol.

    Only ``metadata`` is required; hooks are looked up with ``getattr`` at
    call time.
    """

    metadata: PluginMetadata


@runtime_checkable
class ContextModule(Protocol):
    """Plugin that wires one bounded context into the runtime."""

    metadata: PluginMetadata
    context_name: str

    def get_commands(self) -> List["CommandDefinition"]: ...

    def get_queries(self) -> List["QueryDefinition"]: ...

    def get_event_handlers(self) -> List["EventHandlerDefinition"]: ...

    def get_repositories(self) -> List["RepositoryDefinition"]: ...


# ============================================================================
# Definitions
# ============================================================================

@dataclass
class CommandDefinition:
    """Binds a command type to its handler."""
    name: str
    command_type: type
    handler: Any


@dataclass
class QueryDefinition:
    """Binds a query type to its handler."""
    name: str
    query_type: type
    handler: Any


@dataclass
class EventHandlerDefinition:
    """Subscribes a handler to an event type."""
    event_name: str
    event_type: type
    handler: Any


@dataclass
class RepositoryDefinition:
    """
    Repository (or any service) to register in the container.

    Give either a ready ``instance`` or a ``factory``. A factory is registered
    with transient lifetime when ``singleton=False``. An instance is registered
    as-is and left for the module to close; the container only closes
    singletons its factories built.
    """
    token: str
    instance: Any = None
    singleton: bool = True
    factory: Optional[Callable[..., Any]] = None

    def __post_init__(self):
        if self.instance is None and self.factory is None:
            raise ValueError(
                f"Repository '{self.token}' needs an instance or a factory"
            )

    @property
    def lifetime(self) -> ServiceLifetime:
        return ServiceLifetime.SINGLETON if self.singleton else ServiceLifetime.TRANSIENT


def is_plugin(obj: Any) -> bool:
    """True if ``obj`` carries plugin metadata."""
    return isinstance(getattr(obj, "metadata", None), PluginMetadata)


def is_context_module(obj: Any) -> bool:
    """Structural check: ``obj`` is a plugin with the context-module capability set."""
    if not is_plugin(obj) or not isinstance(getattr(obj, "context_name", None), str):
        return False
    return all(callable(getattr(obj, method, None)) for method in _CONTEXT_MODULE_METHODS)


# ============================================================================
# BaseContextModule
# ============================================================================

class BaseContextModule:
    """
    Standard wiring for context modules.

    Subclasses set ``metadata`` and ``context_name`` and override whichever
    of ``get_commands``, ``get_queries``, ``get_event_handlers`` and
    ``get_repositories`` they need.

    ``initialize`` registers repositories before asking for any handler, so
    handlers built in ``get_commands`` and friends can resolve them from
    ``self.context.container``. Subclasses overriding ``initialize`` should
    call ``await super().initialize(context)``.
    """

    metadata: PluginMetadata
    context_name: str

    def __init__(self):
        self.context: Optional["PluginContext"] = None

    def get_commands(self) -> List[CommandDefinition]:
        return []

    def get_queries(self) -> List[QueryDefinition]:
        return []

    def get_event_handlers(self) -> List[EventHandlerDefinition]:
        return []

    def get_repositories(self) -> List[RepositoryDefinition]:
        return []

    async def initialize(self, context: "PluginContext") -> None:
        """Register repositories, then commands, queries and event handlers."""
        self.context = context
        container = context.container

        # 1. Repositories first; handlers resolve them
        for repo in self.get_repositories():
            if repo.factory is None:
                # Module-supplied instance: the module owns its teardown
                container.register_instance(repo.token, repo.instance)
            else:
                container.register(repo.token, repo.factory, repo.lifetime)

        # 2. Buses
        command_bus = container.resolve(COMMAND_BUS_TOKEN)
        query_bus = container.resolve(QUERY_BUS_TOKEN)
        event_bus = container.resolve(EVENT_BUS_TOKEN)

        # 3. Commands
        commands = self.get_commands()
        for cmd in commands:
            command_bus.register(cmd.command_type, cmd.handler)

        # 4. Queries
        queries = self.get_queries()
        for query in queries:
            query_bus.register(query.query_type, query.handler)

        # 5. Event handlers
        event_handlers = self.get_event_handlers()
        for handler in event_handlers:
            event_bus.subscribe(handler.event_type, handler.handler)

        logger.debug(
            f"{self.context_name}: wired {len(commands)} command(s), "
            f"{len(queries)} query(ies), {len(event_handlers)} event handler(s)"
        )

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            status=HealthStatus.UP,
            message=f"{self.context_name} context is healthy",
        )

    def __repr__(self) -> str:
        metadata = getattr(self, "metadata", None)
        name = metadata.name if metadata else "?"
        return f"<{self.__class__.__name__} {name}>"
