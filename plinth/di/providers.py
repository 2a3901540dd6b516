"""
Provider implementations.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, TYPE_CHECKING

from .scopes import ServiceLifetime

if TYPE_CHECKING:
    from .core import Container


@dataclass(frozen=True)
class ProviderMeta:
    """Provider metadata, used in diagnostics."""
    name: str
    token: str
    lifetime: ServiceLifetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "token": self.token,
            "lifetime": self.lifetime.value,
        }


def _wants_container(factory: Callable) -> bool:
    """True if the factory takes one required positional parameter."""
    try:
        sig = inspect.signature(factory)
    except (TypeError, ValueError):
        return False

    required = [
        p for p in sig.parameters.values()
        if p.default is inspect.Parameter.empty
        and p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    return len(required) == 1


class FactoryProvider:
    """
    Provider that calls a factory to produce instances.

    Factories taking a single positional argument receive the container,
    so they can resolve their own dependencies.
    """

    __slots__ = ("_meta", "_factory", "_wants_container")

    def __init__(
        self,
        token: str,
        factory: Callable[..., Any],
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    ):
        if not callable(factory):
            raise TypeError(f"Factory for {token} must be callable, got {factory!r}")
        if inspect.iscoroutinefunction(factory):
            raise TypeError(f"Factory for {token} must be synchronous")

        self._factory = factory
        self._wants_container = _wants_container(factory)
        self._meta = ProviderMeta(
            name=getattr(factory, "__qualname__", type(factory).__name__),
            token=token,
            lifetime=ServiceLifetime(lifetime),
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    def instantiate(self, container: "Container") -> Any:
        if self._wants_container:
            return self._factory(container)
        return self._factory()


class ValueProvider:
    """Provider that returns a pre-bound constant value."""

    __slots__ = ("_meta", "_value")

    def __init__(self, token: str, value: Any):
        self._value = value
        self._meta = ProviderMeta(
            name=f"{type(value).__name__}_instance",
            token=token,
            lifetime=ServiceLifetime.SINGLETON,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    def instantiate(self, container: "Container") -> Any:
        return self._value
