"""
Application builder and running application.

Usage:
    app = await (
        ApplicationBuilder.create()
        .use_config(ConfigLoader.load(paths=["plinth.yaml"]))
        .use_plugin(DatabasePlugin())
        .use_context(OrdersModule())
        .use_context(InventoryModule())
        .build()
    )

    async with app:
        await serve_forever()
"""

import inspect
import logging
from typing import Any, Dict, Iterable, List, Optional

from .config import ConfigLoader
from .context import PluginContext
from .cqrs import InMemoryCommandBus, InMemoryEventBus, InMemoryQueryBus
from .di.core import Container
from .lifecycle import LifecycleManager, LifecyclePhase, StopFailure
from .plugin import (
    COMMAND_BUS_TOKEN,
    EVENT_BUS_TOKEN,
    QUERY_BUS_TOKEN,
    HealthCheckResult,
    HealthStatus,
    is_context_module,
)
from .registry import PluginRegistry


logger = logging.getLogger("plinth.application")

LOGGER_TOKEN = "logger"
CONFIG_TOKEN = "config"


class ApplicationBuilder:
    """Fluent builder collecting the container, logger, config and plugins."""

    def __init__(self):
        self._container: Optional[Container] = None
        self._logger: Optional[logging.Logger] = None
        self._config: Optional[ConfigLoader] = None
        self._plugins: List[Any] = []

    @classmethod
    def create(cls) -> "ApplicationBuilder":
        return cls()

    def use_container(self, container: Container) -> "ApplicationBuilder":
        self._container = container
        return self

    def use_logger(self, logger: logging.Logger) -> "ApplicationBuilder":
        self._logger = logger
        return self

    def use_config(self, config: ConfigLoader) -> "ApplicationBuilder":
        self._config = config
        return self

    def use_plugin(self, plugin: Any) -> "ApplicationBuilder":
        self._plugins.append(plugin)
        return self

    def use_plugins(self, plugins: Iterable[Any]) -> "ApplicationBuilder":
        self._plugins.extend(plugins)
        return self

    def use_context(self, module: Any) -> "ApplicationBuilder":
        """Add a context module (checked structurally)."""
        if not is_context_module(module):
            raise TypeError(f"{module!r} is not a context module")
        self._plugins.append(module)
        return self

    @property
    def plugins(self) -> List[Any]:
        return list(self._plugins)

    def build_registry(self) -> PluginRegistry:
        """Register the collected plugins into a fresh registry."""
        registry = PluginRegistry()
        for plugin in self._plugins:
            registry.register(plugin)
        return registry

    async def build(self) -> "Application":
        """
        Wire the runtime and initialize every plugin.

        Raises:
            DuplicatePluginError, MissingDependencyError,
            CircularDependencyError, PluginLifecycleError
        """
        container = self._container or Container()
        app_logger = self._logger or logging.getLogger("plinth")
        config = self._config or ConfigLoader()

        defaults = {
            LOGGER_TOKEN: app_logger,
            CONFIG_TOKEN: config,
            COMMAND_BUS_TOKEN: InMemoryCommandBus(),
            QUERY_BUS_TOKEN: InMemoryQueryBus(),
            EVENT_BUS_TOKEN: InMemoryEventBus(),
        }
        for token, value in defaults.items():
            if not container.is_registered(token):
                container.register_instance(token, value)

        registry = self.build_registry()
        context = PluginContext(container, logger=app_logger, config=config)
        app = Application(registry, context)
        await app.lifecycle.initialize_all(context)
        return app


class Application:
    """
    Initialized set of plugins sharing one runtime environment.

    Supports ``async with``: start on entry, stop on exit.
    """

    def __init__(self, registry: PluginRegistry, context: PluginContext):
        self.registry = registry
        self.context = context
        self.lifecycle = LifecycleManager(registry)

    @property
    def container(self) -> Container:
        return self.context.container

    @property
    def command_bus(self) -> Any:
        return self.container.resolve(COMMAND_BUS_TOKEN)

    @property
    def query_bus(self) -> Any:
        return self.container.resolve(QUERY_BUS_TOKEN)

    @property
    def event_bus(self) -> Any:
        return self.container.resolve(EVENT_BUS_TOKEN)

    @property
    def phase(self) -> LifecyclePhase:
        return self.lifecycle.phase

    def resolve(self, token: Any) -> Any:
        return self.container.resolve(token)

    async def start(self) -> None:
        await self.lifecycle.start_all()

    async def stop(self) -> List[StopFailure]:
        """Stop every plugin, then close container-owned singletons."""
        failures = await self.lifecycle.stop_all()
        await self.container.shutdown()
        return failures

    async def health_check(self) -> Dict[str, Any]:
        """
        Aggregate plugin health.

        Returns:
            ``{"status": ..., "plugins": {name: {"status", "message"}}}``
        """
        results: Dict[str, HealthCheckResult] = {}

        for plugin in self.registry:
            name = plugin.metadata.name
            hook = getattr(plugin, "health_check", None)
            if hook is None:
                results[name] = HealthCheckResult(HealthStatus.UP)
                continue
            try:
                result = hook()
                if inspect.isawaitable(result):
                    result = await result
                results[name] = HealthCheckResult.coerce(result)
            except Exception as e:
                logger.error(f"Health check for {name} raised: {e}")
                results[name] = HealthCheckResult(HealthStatus.DOWN, str(e))

        statuses = {r.status for r in results.values()}
        if HealthStatus.DOWN in statuses:
            overall = HealthStatus.DOWN
        elif statuses <= {HealthStatus.UP}:
            overall = HealthStatus.UP
        else:
            overall = HealthStatus.DEGRADED

        return {
            "status": overall.value,
            "plugins": {name: r.to_dict() for name, r in results.items()},
        }

    async def __aenter__(self) -> "Application":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.stop()
        return False  # Don't suppress exceptions
