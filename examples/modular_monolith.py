"""
Modular monolith: two bounded contexts and an audit plugin on one runtime.

Run it:
    python examples/modular_monolith.py

Inspect it:
    plinth order examples/modular_monolith.py:create_builder
    plinth graph examples/modular_monolith.py:create_builder
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from plinth import (
    ApplicationBuilder,
    BaseContextModule,
    CommandDefinition,
    ConfigLoader,
    EventHandlerDefinition,
    HealthCheckResult,
    HealthStatus,
    PluginMetadata,
    QueryDefinition,
    RepositoryDefinition,
)
from plinth.plugin import COMMAND_BUS_TOKEN, EVENT_BUS_TOKEN


DEFAULT_CONFIG = {
    "plugins": {
        "inventory-context": {"initial_stock": {"widget": 10, "gadget": 3}},
    },
}


# ============================================================================
# Inventory context
# ============================================================================

@dataclass
class ReserveStock:
    sku: str
    quantity: int


@dataclass
class GetStock:
    sku: str


@dataclass
class StockReserved:
    sku: str
    quantity: int


class InsufficientStock(Exception):
    pass


class InventoryRepository:
    def __init__(self, stock: Optional[Dict[str, int]] = None):
        self.stock: Dict[str, int] = dict(stock or {})


class ReserveStockHandler:
    def __init__(self, repository: InventoryRepository, event_bus: Any):
        self.repository = repository
        self.event_bus = event_bus

    async def handle(self, command: ReserveStock) -> None:
        available = self.repository.stock.get(command.sku, 0)
        if available < command.quantity:
            raise InsufficientStock(
                f"{command.sku}: {available} available, {command.quantity} requested"
            )
        self.repository.stock[command.sku] = available - command.quantity
        await self.event_bus.publish(StockReserved(command.sku, command.quantity))


class InventoryModule(BaseContextModule):
    metadata = PluginMetadata(
        name="inventory-context",
        version="1.0.0",
        description="Stock levels and reservations",
    )
    context_name = "Inventory"

    def get_repositories(self):
        initial = self.context.get_config().get("initial_stock", {})
        return [RepositoryDefinition("inventoryRepository", InventoryRepository(initial))]

    def get_commands(self):
        container = self.context.container
        handler = ReserveStockHandler(
            container.resolve("inventoryRepository"),
            container.resolve(EVENT_BUS_TOKEN),
        )
        return [CommandDefinition("ReserveStock", ReserveStock, handler)]

    def get_queries(self):
        repository = self.context.container.resolve("inventoryRepository")
        return [
            QueryDefinition("GetStock", GetStock, lambda q: repository.stock.get(q.sku, 0)),
        ]


# ============================================================================
# Orders context
# ============================================================================

@dataclass
class PlaceOrder:
    order_id: str
    sku: str
    quantity: int


@dataclass
class GetOrder:
    order_id: str


@dataclass
class OrderPlaced:
    order_id: str


class OrderRepository:
    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}


class PlaceOrderHandler:
    def __init__(self, repository: OrderRepository, command_bus: Any, event_bus: Any):
        self.repository = repository
        self.command_bus = command_bus
        self.event_bus = event_bus

    async def handle(self, command: PlaceOrder) -> str:
        await self.command_bus.dispatch(ReserveStock(command.sku, command.quantity))
        self.repository.orders[command.order_id] = {
            "sku": command.sku,
            "quantity": command.quantity,
        }
        await self.event_bus.publish(OrderPlaced(command.order_id))
        return command.order_id


class OrdersModule(BaseContextModule):
    metadata = PluginMetadata(
        name="orders-context",
        version="1.0.0",
        description="Order placement",
        dependencies=["inventory-context", "audit-log"],
    )
    context_name = "Orders"

    def get_repositories(self):
        return [RepositoryDefinition("orderRepository", factory=OrderRepository)]

    def get_commands(self):
        container = self.context.container
        handler = PlaceOrderHandler(
            container.resolve("orderRepository"),
            container.resolve(COMMAND_BUS_TOKEN),
            container.resolve(EVENT_BUS_TOKEN),
        )
        return [CommandDefinition("PlaceOrder", PlaceOrder, handler)]

    def get_queries(self):
        repository = self.context.container.resolve("orderRepository")
        return [
            QueryDefinition("GetOrder", GetOrder, lambda q: repository.orders.get(q.order_id)),
        ]


# ============================================================================
# Infrastructure plugin
# ============================================================================

class AuditLogPlugin:
    """Records every domain event it sees."""

    metadata = PluginMetadata(name="audit-log", version="0.3.0")

    def __init__(self):
        self.entries: List[str] = []
        self.running = False
        self.logger = logging.getLogger("plinth.plugins.audit-log")

    def record(self, event: Any) -> None:
        self.entries.append(f"{type(event).__name__} {event}")

    async def initialize(self, context) -> None:
        self.logger = context.get_logger()
        # Subscribed before the context modules wire theirs
        event_bus = context.container.resolve(EVENT_BUS_TOKEN)
        event_bus.subscribe(StockReserved, self.record)
        event_bus.subscribe(OrderPlaced, self.record)

    async def start(self) -> None:
        self.running = True
        self.logger.info("audit log open")

    async def stop(self) -> None:
        self.running = False
        self.logger.info(f"audit log closed after {len(self.entries)} entries")

    def health_check(self) -> HealthCheckResult:
        if not self.running:
            return HealthCheckResult(HealthStatus.DEGRADED, "not running")
        return HealthCheckResult(HealthStatus.UP)


def create_builder(config: Optional[ConfigLoader] = None) -> ApplicationBuilder:
    """Registration order is irrelevant; dependencies decide load order."""
    return (
        ApplicationBuilder.create()
        .use_config(config or ConfigLoader.from_dict(DEFAULT_CONFIG))
        .use_context(OrdersModule())
        .use_context(InventoryModule())
        .use_plugin(AuditLogPlugin())
    )


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    app = await create_builder().build()
    async with app:
        await app.command_bus.dispatch(PlaceOrder("o-1", "widget", 2))
        print("order:", await app.query_bus.dispatch(GetOrder("o-1")))
        print("widgets left:", await app.query_bus.dispatch(GetStock("widget")))
        print("health:", await app.health_check())


if __name__ == "__main__":
    asyncio.run(main())
