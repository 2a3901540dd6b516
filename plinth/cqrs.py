"""
In-memory command, query and event buses.

Just enough dispatch to run context modules in one process. Handlers are
either callables or objects with a ``handle(message)`` method; both sync and
async handlers are accepted.
"""

import inspect
import logging
from typing import Any, Dict, List, Tuple

from .errors import RuntimeFault


logger = logging.getLogger("plinth.cqrs")


class HandlerNotFoundError(RuntimeFault):
    """No handler registered for a message type."""

    code = "HANDLER_NOT_FOUND"

    def __init__(self, message_type: type):
        self.message_type = message_type
        super().__init__(
            f"No handler registered for {message_type.__name__}",
            details={"message_type": message_type.__name__},
        )


class DuplicateHandlerError(RuntimeFault):
    """A second handler was registered for a command or query type."""

    code = "DUPLICATE_HANDLER"

    def __init__(self, message_type: type):
        self.message_type = message_type
        super().__init__(
            f"A handler for {message_type.__name__} is already registered",
            suggestion="Commands and queries have exactly one handler.",
            details={"message_type": message_type.__name__},
        )


async def _invoke(handler: Any, message: Any) -> Any:
    target = getattr(handler, "handle", handler)
    if not callable(target):
        raise TypeError(f"Handler {handler!r} is neither callable nor has handle()")

    result = target(message)
    if inspect.isawaitable(result):
        result = await result
    return result


class _SingleHandlerBus:
    """One handler per message type."""

    kind = "message"

    def __init__(self):
        self._handlers: Dict[type, Any] = {}

    def register(self, message_type: type, handler: Any) -> None:
        if message_type in self._handlers:
            raise DuplicateHandlerError(message_type)
        self._handlers[message_type] = handler
        logger.debug(f"Registered {self.kind} handler for {message_type.__name__}")

    def has_handler(self, message_type: type) -> bool:
        return message_type in self._handlers

    async def dispatch(self, message: Any) -> Any:
        """Run the handler registered for ``type(message)`` and return its result."""
        handler = self._handlers.get(type(message))
        if handler is None:
            raise HandlerNotFoundError(type(message))
        return await _invoke(handler, message)

    def __len__(self) -> int:
        return len(self._handlers)


class InMemoryCommandBus(_SingleHandlerBus):
    """Dispatches commands to their single handler."""
    kind = "command"


class InMemoryQueryBus(_SingleHandlerBus):
    """Dispatches queries to their single handler."""
    kind = "query"


class InMemoryEventBus:
    """
    Publishes events to every subscribed handler.

    Handlers run in subscription order. A failing handler is logged and
    reported in the return value; the others still run.
    """

    def __init__(self):
        self._subs: Dict[type, List[Any]] = {}

    def subscribe(self, event_type: type, handler: Any) -> None:
        self._subs.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type.__name__}")

    def subscribers(self, event_type: type) -> List[Any]:
        return list(self._subs.get(event_type, ()))

    async def publish(self, event: Any) -> List[Tuple[Any, Exception]]:
        """
        Deliver ``event`` to its subscribers.

        Returns:
            (handler, error) pairs for handlers that raised
        """
        failures: List[Tuple[Any, Exception]] = []
        for handler in self.subscribers(type(event)):
            try:
                await _invoke(handler, event)
            except Exception as e:
                logger.error(
                    f"Event handler {handler!r} failed for {type(event).__name__}: {e}",
                    exc_info=e,
                )
                failures.append((handler, e))
        return failures

    async def publish_all(self, events: List[Any]) -> List[Tuple[Any, Exception]]:
        failures: List[Tuple[Any, Exception]] = []
        for event in events:
            failures.extend(await self.publish(event))
        return failures
