"""
DI container - a typed map from token to provider.

Resolution is synchronous so plugins can resolve dependencies while they
build their handler lists.
"""

import inspect
import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union, overload

from .errors import DuplicateProviderError, ProviderNotFoundError, ResolutionCycleError
from .providers import FactoryProvider, ValueProvider
from .scopes import ServiceLifetime


logger = logging.getLogger("plinth.di")

T = TypeVar("T")

Token = Union[str, type]

# Module-level cache: type -> "module.qualname" string
_type_key_cache: Dict[type, str] = {}

# Methods tried, in order, when closing cached singletons
_CLOSE_METHODS = ("aclose", "shutdown", "close")


def token_to_key(token: Token) -> str:
    """Convert type or string token to its registry key."""
    if isinstance(token, str):
        return token

    if isinstance(token, type):
        key = _type_key_cache.get(token)
        if key is None:
            key = f"{token.__module__}.{token.__qualname__}"
            _type_key_cache[token] = key
        return key

    return str(token)


class Container:
    """
    DI Container - manages providers and cached singleton instances.

    Example:
        container = Container()
        container.register("orderRepository", InMemoryOrderRepository)
        container.register(
            "orderService",
            lambda c: OrderService(c.resolve("orderRepository")),
            ServiceLifetime.TRANSIENT,
        )
        service = container.resolve("orderService")
    """

    def __init__(self):
        self._providers: Dict[str, Any] = {}
        self._cache: Dict[str, Any] = {}
        # (key, instance) for every singleton a factory built, in creation order
        self._owned: List[Tuple[str, Any]] = []
        self._stack: List[str] = []

    def register(
        self,
        token: Token,
        factory: Any,
        lifetime: Union[ServiceLifetime, str] = ServiceLifetime.SINGLETON,
        *,
        replace: bool = False,
    ) -> None:
        """
        Register a factory under a token.

        Args:
            token: Type or string key
            factory: Callable producing the instance
            lifetime: SINGLETON (cached) or TRANSIENT (new per resolve)
            replace: Override an existing registration instead of failing

        Raises:
            DuplicateProviderError: Token already registered and replace is False
        """
        key = token_to_key(token)
        provider = FactoryProvider(key, factory, ServiceLifetime(lifetime))
        self._add(key, provider, replace)

    def register_instance(self, token: Token, value: Any, *, replace: bool = False) -> None:
        """Register a pre-built object as a singleton."""
        key = token_to_key(token)
        self._add(key, ValueProvider(key, value), replace)

    def _add(self, key: str, provider: Any, replace: bool) -> None:
        existing = self._providers.get(key)
        if existing is not None and not replace:
            raise DuplicateProviderError(key, existing.meta.name)

        self._providers[key] = provider
        self._cache.pop(key, None)
        logger.debug(
            f"Registered {key} ({provider.meta.lifetime.value}, {provider.meta.name})"
        )

    @overload
    def resolve(self, token: Type[T], *, optional: bool = False) -> T: ...

    @overload
    def resolve(self, token: str, *, optional: bool = False) -> Any: ...

    def resolve(self, token, *, optional: bool = False):
        """
        Resolve a dependency.

        Args:
            token: Type or string key
            optional: If True, return None if not found instead of raising

        Returns:
            The resolved instance

        Raises:
            ProviderNotFoundError: If provider not found and not optional
            ResolutionCycleError: If the factory chain resolves itself
        """
        key = token_to_key(token)

        if key in self._cache:
            return self._cache[key]

        provider = self._providers.get(key)
        if provider is None:
            if optional:
                return None
            raise ProviderNotFoundError(
                token=key,
                candidates=self._similar(key),
                requested_by=self._stack[-1] if self._stack else None,
            )

        if key in self._stack:
            start = self._stack.index(key)
            raise ResolutionCycleError(self._stack[start:] + [key])

        self._stack.append(key)
        try:
            instance = provider.instantiate(self)
        finally:
            self._stack.pop()

        if provider.meta.lifetime.cacheable:
            self._cache[key] = instance
            if not isinstance(provider, ValueProvider):
                self._owned.append((key, instance))

        return instance

    def is_registered(self, token: Token) -> bool:
        """Check if a provider is registered for the token."""
        return token_to_key(token) in self._providers

    def tokens(self) -> List[str]:
        """Registered token keys, in registration order."""
        return list(self._providers)

    def describe(self) -> List[Dict[str, Any]]:
        """Provider metadata for diagnostics."""
        return [provider.meta.to_dict() for provider in self._providers.values()]

    async def shutdown(self) -> None:
        """
        Close factory-built singletons in reverse instantiation order.

        Instances exposing ``aclose``, ``shutdown`` or ``close`` have the first
        of those called. Failures are logged and do not stop the sweep.
        Instances dropped by a ``replace=True`` registration are closed here
        too. Pre-registered instances are owned by the caller and left alone.
        """
        for key, instance in reversed(self._owned):
            for method_name in _CLOSE_METHODS:
                method = getattr(instance, method_name, None)
                if callable(method):
                    try:
                        result = method()
                        if inspect.isawaitable(result):
                            await result
                    except Exception:
                        logger.exception(f"Error closing {key}")
                    break

        self._owned.clear()
        self._cache.clear()

    def _similar(self, key: str) -> List[str]:
        lowered = key.lower()
        return [
            candidate for candidate in self._providers
            if lowered in candidate.lower() or candidate.lower() in lowered
        ]

    def __contains__(self, token: Token) -> bool:
        return self.is_registered(token)

    def __len__(self) -> int:
        return len(self._providers)

    def __repr__(self) -> str:
        return f"Container({len(self._providers)} providers)"
