"""
Lifecycle Manager - Drives plugins through initialize, start and stop.

Initialize and start run in dependency order and abort on the first failing
plugin. Stop runs in reverse dependency order, attempts every plugin and
collects failures instead of raising.
"""

from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass
import inspect
import logging
from enum import Enum

from .errors import (
    CircularDependencyError,
    LifecycleStateError,
    MissingDependencyError,
    PluginLifecycleError,
)
from .registry import PluginRegistry


logger = logging.getLogger("plinth.lifecycle")


class LifecyclePhase(str, Enum):
    """Lifecycle phases, for the manager and for each plugin."""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class LifecycleEvent:
    """Event emitted during lifecycle transitions."""
    phase: LifecyclePhase
    plugin_name: Optional[str] = None
    message: Optional[str] = None
    error: Optional[BaseException] = None


@dataclass
class StopFailure:
    """A plugin whose stop hook raised."""
    plugin_name: str
    error: Exception

    def __iter__(self):
        # Unpacks as (plugin_name, error)
        return iter((self.plugin_name, self.error))


async def _call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class LifecycleManager:
    """
    Coordinates plugin lifecycle.

    Responsibilities:
    - Initialize and start plugins in dependency order, fail-fast
    - Stop plugins in reverse order, fail-soft
    - Track a phase per plugin and for the manager
    - Emit lifecycle events

    Usage:
        manager = LifecycleManager(registry)
        await manager.initialize_all(context)
        await manager.start_all()
        ...
        failures = await manager.stop_all()
    """

    def __init__(self, registry: PluginRegistry):
        self.registry = registry
        self._phase = LifecyclePhase.UNINITIALIZED
        self._plugin_phases: Dict[str, LifecyclePhase] = {}
        self.event_handlers: List[Callable[[LifecycleEvent], None]] = []
        self.logger = logger

    @property
    def phase(self) -> LifecyclePhase:
        """Current manager phase."""
        return self._phase

    def get_plugin_phase(self, name: str) -> LifecyclePhase:
        """Phase of a plugin; UNINITIALIZED if it was never touched."""
        return self._plugin_phases.get(name, LifecyclePhase.UNINITIALIZED)

    def on_event(self, handler: Callable[[LifecycleEvent], None]) -> None:
        """
        Register event handler.

        Args:
            handler: Callable that receives LifecycleEvent
        """
        self.event_handlers.append(handler)

    def _emit_event(self, event: LifecycleEvent) -> None:
        for handler in self.event_handlers:
            try:
                handler(event)
            except Exception:
                self.logger.exception("Lifecycle event handler error")

    def _set_phase(self, phase: LifecyclePhase) -> None:
        self._phase = phase
        self._emit_event(LifecycleEvent(phase))

    async def initialize_all(self, context: Any) -> None:
        """
        Initialize all plugins in dependency order.

        Does nothing unless the manager is UNINITIALIZED.

        Args:
            context: PluginContext handed to every ``initialize`` hook

        Raises:
            PluginLifecycleError: If a plugin fails to initialize
            MissingDependencyError, CircularDependencyError: Bad registration set
        """
        if self._phase != LifecyclePhase.UNINITIALIZED:
            self.logger.debug(f"initialize_all skipped in phase {self._phase.value}")
            return

        self._set_phase(LifecyclePhase.INITIALIZING)
        plugins = self.registry.get_plugins_in_order()
        self.logger.info(f"Initializing {len(plugins)} plugin(s)...")

        for plugin in plugins:
            await self._initialize_plugin(plugin, context)

        self._set_phase(LifecyclePhase.INITIALIZED)
        self.logger.info("✅ All plugins initialized")

    async def _initialize_plugin(self, plugin: Any, context: Any) -> None:
        name = plugin.metadata.name
        self._plugin_phases[name] = LifecyclePhase.INITIALIZING

        try:
            hook = getattr(plugin, "initialize", None)
            if hook is not None:
                set_current = getattr(context, "set_current_plugin_name", None)
                if callable(set_current):
                    set_current(name)
                await _call_hook(hook, context)
        except Exception as e:
            self._plugin_phases[name] = LifecyclePhase.UNINITIALIZED
            self.logger.error(f"     ✗ {name} initialize failed: {e}")
            self._emit_event(LifecycleEvent(
                LifecyclePhase.INITIALIZING,
                plugin_name=name,
                message=f"{name} initialize failed",
                error=e,
            ))
            raise PluginLifecycleError(name, "initialize", e) from e

        self._plugin_phases[name] = LifecyclePhase.INITIALIZED
        self._emit_event(LifecycleEvent(
            LifecyclePhase.INITIALIZED,
            plugin_name=name,
            message=f"{name} initialized",
        ))
        self.logger.debug(f"     ✓ {name} initialized")

    async def start_all(self) -> None:
        """
        Start all plugins in dependency order.

        A second call after a successful start does nothing.

        Raises:
            LifecycleStateError: If plugins are not initialized
            PluginLifecycleError: If a plugin fails to start
        """
        if self._phase == LifecyclePhase.STARTED:
            self.logger.debug("start_all skipped: already started")
            return

        if self._phase != LifecyclePhase.INITIALIZED:
            raise LifecycleStateError(
                "start plugins", self._phase.value, LifecyclePhase.INITIALIZED.value
            )

        self._set_phase(LifecyclePhase.STARTING)
        plugins = self.registry.get_plugins_in_order()
        self.logger.info(f"Starting {len(plugins)} plugin(s)...")

        for plugin in plugins:
            await self._start_plugin(plugin)

        self._set_phase(LifecyclePhase.STARTED)
        self.logger.info("✅ All plugins started")

    async def _start_plugin(self, plugin: Any) -> None:
        name = plugin.metadata.name
        self._plugin_phases[name] = LifecyclePhase.STARTING

        try:
            hook = getattr(plugin, "start", None)
            if hook is not None:
                await _call_hook(hook)
        except Exception as e:
            self._plugin_phases[name] = LifecyclePhase.INITIALIZED
            self.logger.error(f"     ✗ {name} start failed: {e}")
            self._emit_event(LifecycleEvent(
                LifecyclePhase.STARTING,
                plugin_name=name,
                message=f"{name} start failed",
                error=e,
            ))
            raise PluginLifecycleError(name, "start", e) from e

        self._plugin_phases[name] = LifecyclePhase.STARTED
        self._emit_event(LifecycleEvent(
            LifecyclePhase.STARTED,
            plugin_name=name,
            message=f"{name} started",
        ))
        self.logger.debug(f"     ✓ {name} started")

    async def stop_all(self) -> List[StopFailure]:
        """
        Stop all plugins in reverse dependency order.

        Allowed from any phase. ``stop`` is attempted on every registered
        plugin, whatever its own phase. Does not raise for hook errors: they
        are logged and returned.

        Returns:
            Failures as (plugin_name, error) records, in stop order
        """
        self._set_phase(LifecyclePhase.STOPPING)
        try:
            plugins = self.registry.get_plugins_in_reverse_order()
        except (MissingDependencyError, CircularDependencyError) as e:
            # No dependency order exists; fall back to registration order
            self.logger.warning(f"Stopping in reverse registration order: {e}")
            plugins = list(reversed(self.registry.all()))
        self.logger.info(f"Stopping {len(plugins)} plugin(s)...")

        failures: List[StopFailure] = []
        for plugin in plugins:
            failure = await self._stop_plugin(plugin)
            if failure is not None:
                failures.append(failure)

        self._set_phase(LifecyclePhase.STOPPED)
        if failures:
            self.logger.warning(
                f"⚠️  Stopped with {len(failures)} failure(s): "
                + ", ".join(f.plugin_name for f in failures)
            )
        else:
            self.logger.info("✅ All plugins stopped")
        return failures

    async def _stop_plugin(self, plugin: Any) -> Optional[StopFailure]:
        name = plugin.metadata.name
        self._plugin_phases[name] = LifecyclePhase.STOPPING

        try:
            hook = getattr(plugin, "stop", None)
            if hook is not None:
                await _call_hook(hook)
        except Exception as e:
            # Log but don't raise - continue cleanup
            self._plugin_phases[name] = LifecyclePhase.STOPPED
            self.logger.error(f"     ✗ {name} stop error: {e}", exc_info=e)
            self._emit_event(LifecycleEvent(
                LifecyclePhase.STOPPED,
                plugin_name=name,
                message=f"{name} stop error",
                error=e,
            ))
            return StopFailure(name, e)

        self._plugin_phases[name] = LifecyclePhase.STOPPED
        self._emit_event(LifecycleEvent(
            LifecyclePhase.STOPPED,
            plugin_name=name,
            message=f"{name} stopped",
        ))
        self.logger.debug(f"     ✓ {name} stopped")
        return None

    def get_status(self) -> Dict[str, Any]:
        """
        Get current lifecycle status.

        Returns:
            Status dict with manager phase and per-plugin phases
        """
        return {
            "phase": self._phase.value,
            "plugins": {
                name: self.get_plugin_phase(name).value
                for name in self.registry.names
            },
            "total_plugins": len(self.registry),
        }
