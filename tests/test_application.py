"""
Application builder and driver (application.py)

Tests the build / start / stop flow, default container wiring and
aggregated health.
"""

import logging

import pytest

from plinth.application import Application, ApplicationBuilder
from plinth.config import ConfigLoader
from plinth.cqrs import InMemoryCommandBus
from plinth.di.core import Container
from plinth.errors import (
    DuplicatePluginError,
    MissingDependencyError,
    PluginLifecycleError,
)
from plinth.lifecycle import LifecyclePhase
from plinth.plugin import (
    BaseContextModule,
    HealthCheckResult,
    HealthStatus,
    PluginMetadata,
)

from tests.conftest import BarePlugin, RecordingPlugin


class GreetingsModule(BaseContextModule):
    metadata = PluginMetadata(name="greetings-context", version="1.0.0")
    context_name = "Greetings"


class ConfiguredPlugin:
    metadata = PluginMetadata(name="configured", version="1.0.0")

    def __init__(self):
        self.config = None
        self.logger_name = None

    def initialize(self, context):
        self.config = context.get_config()
        self.logger_name = context.get_logger().name


class HealthPlugin:
    def __init__(self, name, status=HealthStatus.UP, raises=False):
        self.metadata = PluginMetadata(name=name, version="1.0.0")
        self.status = status
        self.raises = raises

    async def health_check(self):
        if self.raises:
            raise RuntimeError("probe failed")
        return HealthCheckResult(self.status)


# ============================================================================
# Builder
# ============================================================================

class TestBuilder:

    def test_fluent(self, builder):
        plugin = BarePlugin("a")
        assert builder.use_plugin(plugin) is builder
        assert builder.use_plugins([BarePlugin("b")]) is builder
        assert builder.use_context(GreetingsModule()) is builder
        assert [p.metadata.name for p in builder.plugins] == ["a", "b", "greetings-context"]

    def test_use_context_rejects_plain_plugin(self, builder):
        with pytest.raises(TypeError, match="not a context module"):
            builder.use_context(BarePlugin("a"))

    def test_build_registry(self, builder):
        registry = builder.use_plugin(BarePlugin("a")).build_registry()
        assert registry.names == ["a"]

    @pytest.mark.asyncio
    async def test_build_initializes_in_order(self, builder, journal):
        builder.use_plugin(RecordingPlugin("api", ["db"], journal=journal))
        builder.use_plugin(RecordingPlugin("db", journal=journal))

        app = await builder.build()
        assert isinstance(app, Application)
        assert app.phase == LifecyclePhase.INITIALIZED
        assert journal == [("initialize", "db"), ("initialize", "api")]

    @pytest.mark.asyncio
    async def test_default_container_entries(self, builder):
        app = await builder.build()
        for token in ("logger", "config", "commandBus", "queryBus", "eventBus"):
            assert app.container.is_registered(token)
        assert isinstance(app.command_bus, InMemoryCommandBus)
        assert app.resolve("logger").name == "plinth"

    @pytest.mark.asyncio
    async def test_keeps_preregistered_entries(self, builder):
        container = Container()
        bus = InMemoryCommandBus()
        container.register_instance("commandBus", bus)

        app = await builder.use_container(container).build()
        assert app.container is container
        assert app.command_bus is bus

    @pytest.mark.asyncio
    async def test_uses_logger_and_config(self, builder):
        plugin = ConfiguredPlugin()
        custom = logging.getLogger("shop")
        config = ConfigLoader.from_dict({"plugins": {"configured": {"retries": 2}}})

        app = await builder.use_logger(custom).use_config(config).use_plugin(plugin).build()
        assert app.resolve("logger") is custom
        assert app.resolve("config") is config
        assert plugin.config == {"retries": 2}
        assert plugin.logger_name == "plinth.plugins.configured"

    @pytest.mark.asyncio
    async def test_duplicate_plugin(self, builder):
        builder.use_plugins([BarePlugin("a"), BarePlugin("a")])
        with pytest.raises(DuplicatePluginError):
            await builder.build()

    @pytest.mark.asyncio
    async def test_missing_dependency(self, builder):
        builder.use_plugin(BarePlugin("api", ["db"]))
        with pytest.raises(MissingDependencyError):
            await builder.build()

    @pytest.mark.asyncio
    async def test_initialize_failure(self, builder):
        builder.use_plugin(RecordingPlugin("db", fail_on=("initialize",)))
        with pytest.raises(PluginLifecycleError, match="db initialize boom"):
            await builder.build()


# ============================================================================
# Application
# ============================================================================

class TestApplication:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, builder, journal):
        builder.use_plugin(RecordingPlugin("db", journal=journal))
        builder.use_plugin(RecordingPlugin("api", ["db"], journal=journal))
        app = await builder.build()
        journal.clear()

        await app.start()
        assert app.phase == LifecyclePhase.STARTED
        assert await app.stop() == []
        assert app.phase == LifecyclePhase.STOPPED
        assert journal == [
            ("start", "db"), ("start", "api"),
            ("stop", "api"), ("stop", "db"),
        ]

    @pytest.mark.asyncio
    async def test_stop_returns_failures(self, builder, journal):
        builder.use_plugin(RecordingPlugin("db", journal=journal, fail_on=("stop",)))
        app = await builder.build()
        await app.start()

        failures = await app.stop()
        assert [name for name, _ in failures] == ["db"]

    @pytest.mark.asyncio
    async def test_stop_shuts_down_container(self, builder):
        closed = []

        class Pool:
            def close(self):
                closed.append(True)

        app = await builder.build()
        app.container.register("pool", Pool)
        app.resolve("pool")

        await app.start()
        await app.stop()
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_async_context_manager(self, builder, journal):
        builder.use_plugin(RecordingPlugin("db", journal=journal))
        app = await builder.build()

        async with app as running:
            assert running is app
            assert app.phase == LifecyclePhase.STARTED
        assert app.phase == LifecyclePhase.STOPPED
        assert journal[-1] == ("stop", "db")

    @pytest.mark.asyncio
    async def test_context_manager_stops_on_error(self, builder, journal):
        builder.use_plugin(RecordingPlugin("db", journal=journal))
        app = await builder.build()

        with pytest.raises(ValueError):
            async with app:
                raise ValueError("request failed")
        assert ("stop", "db") in journal


# ============================================================================
# Health
# ============================================================================

class TestHealth:

    @pytest.mark.asyncio
    async def test_all_up(self, builder):
        builder.use_plugin(BarePlugin("no-hook"))
        builder.use_context(GreetingsModule())
        app = await builder.build()

        health = await app.health_check()
        assert health == {
            "status": "up",
            "plugins": {
                "no-hook": {"status": "up", "message": None},
                "greetings-context": {
                    "status": "up",
                    "message": "Greetings context is healthy",
                },
            },
        }

    @pytest.mark.asyncio
    async def test_degraded(self, builder):
        builder.use_plugin(HealthPlugin("a"))
        builder.use_plugin(HealthPlugin("b", HealthStatus.DEGRADED))
        app = await builder.build()
        assert (await app.health_check())["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_down_wins(self, builder):
        builder.use_plugin(HealthPlugin("a", HealthStatus.DEGRADED))
        builder.use_plugin(HealthPlugin("b", HealthStatus.DOWN))
        app = await builder.build()
        assert (await app.health_check())["status"] == "down"

    @pytest.mark.asyncio
    async def test_raising_probe_is_down(self, builder):
        builder.use_plugin(HealthPlugin("a", raises=True))
        app = await builder.build()

        health = await app.health_check()
        assert health["status"] == "down"
        assert health["plugins"]["a"] == {"status": "down", "message": "probe failed"}

    @pytest.mark.asyncio
    async def test_mapping_result(self, builder):
        class DictHealth:
            metadata = PluginMetadata(name="dict", version="1.0.0")

            def health_check(self):
                return {"status": "degraded", "message": "replica lag"}

        app = await builder.use_plugin(DictHealth()).build()
        health = await app.health_check()
        assert health["status"] == "degraded"
        assert health["plugins"]["dict"] == {"status": "degraded", "message": "replica lag"}

    @pytest.mark.asyncio
    async def test_unusable_result_is_down(self, builder):
        class Odd:
            def __init__(self, name, value):
                self.metadata = PluginMetadata(name=name, version="1.0.0")
                self.value = value

            def health_check(self):
                return self.value

        builder.use_plugin(Odd("none", None))
        builder.use_plugin(Odd("bad-status", {"status": "sideways"}))
        builder.use_plugin(HealthPlugin("fine"))
        app = await builder.build()

        health = await app.health_check()
        assert health["status"] == "down"
        assert health["plugins"]["none"]["status"] == "down"
        assert "status mapping" in health["plugins"]["none"]["message"]
        assert health["plugins"]["bad-status"]["status"] == "down"
        assert health["plugins"]["fine"]["status"] == "up"
