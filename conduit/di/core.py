"""
DI Container - the service locator the dispatch core resolves
collaborators from.

Single bindings (``register``) resolve to one instance per token and tag.
Multi bindings (``add``) collect any number of providers under one token,
resolved together, in registration order, with ``resolve_all``.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar
import logging

from .errors import DuplicateProviderError, ProviderNotFoundError
from .providers import FactoryProvider, ValueProvider, token_to_key

logger = logging.getLogger("conduit.di")

T = TypeVar("T")


class Container:
    """
    DI Container - manages providers and cached singleton instances.

    Example:
        container = Container()
        container.register_value("events", EventBus())
        container.add("middleware", request_id_middleware)
        container.add("middleware", auth_middleware)

        events = container.resolve("events")
        chain = container.resolve_all("middleware")
    """

    __slots__ = ("_providers", "_multi", "_cache")

    def __init__(self):
        self._providers: Dict[str, Any] = {}  # {cache_key: provider}
        self._multi: Dict[str, List[Any]] = {}  # {token_key: [provider, ...]}
        self._cache: Dict[str, Any] = {}  # {cache_key: instance}

    @staticmethod
    def _make_cache_key(token_key: str, tag: Optional[str]) -> str:
        return f"{token_key}#{tag}" if tag else token_key

    # ========================================================================
    # Registration
    # ========================================================================

    def register(self, provider: Any, tag: Optional[str] = None) -> None:
        """
        Register a provider.

        Args:
            provider: Provider instance
            tag: Optional tag for disambiguation

        Raises:
            DuplicateProviderError: If another provider owns the key
        """
        key = self._make_cache_key(provider.meta.token, tag)

        existing = self._providers.get(key)
        if existing is not None:
            if existing is provider:
                return
            raise DuplicateProviderError(provider.meta.token, tag, existing.meta.name)

        self._providers[key] = provider
        logger.debug(
            "Registered provider '%s' for token=%s (tag=%s)",
            provider.meta.name, provider.meta.token, tag,
        )

    def register_value(self, token: Type | str, value: Any, tag: Optional[str] = None) -> None:
        """Register a pre-built object under ``token``."""
        self.register(ValueProvider(value, token), tag=tag)

    def register_factory(
        self,
        token: Type | str,
        factory: Any,
        scope: str = "singleton",
        tag: Optional[str] = None,
    ) -> None:
        """Register ``factory(container)`` under ``token``."""
        self.register(FactoryProvider(factory, token, scope=scope), tag=tag)

    def add(self, token: Type | str, value: Any) -> None:
        """Append a value to the multi binding for ``token``."""
        provider = ValueProvider(value, token)
        self._multi.setdefault(provider.meta.token, []).append(provider)
        logger.debug("Added '%s' to multi binding %s", provider.meta.name, provider.meta.token)

    # ========================================================================
    # Resolution
    # ========================================================================

    def resolve(self, token: Type[T] | str, *, tag: Optional[str] = None, optional: bool = False) -> T:
        """
        Resolve a single dependency.

        Raises:
            ProviderNotFoundError: If no provider is registered and not optional
        """
        token_key = token_to_key(token)
        cache_key = self._make_cache_key(token_key, tag)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        provider = self._providers.get(cache_key)
        if provider is None:
            if optional:
                return None
            self._raise_not_found(token_key, tag)

        instance = provider.instantiate(self)
        if provider.meta.scope == "singleton":
            self._cache[cache_key] = instance
        return instance

    def resolve_all(self, token: Type[T] | str) -> List[T]:
        """
        Resolve every provider bound under ``token``, in registration order.

        Raises:
            ProviderNotFoundError: If nothing at all is registered for the token
        """
        token_key = token_to_key(token)
        providers = list(self._multi.get(token_key, ()))
        single = self._providers.get(token_key)
        if single is not None:
            providers.insert(0, single)

        if not providers:
            raise ProviderNotFoundError(token_key)

        return [p.instantiate(self) for p in providers]

    def is_registered(self, token: Type | str, tag: Optional[str] = None) -> bool:
        """Check if a provider is registered for the token."""
        token_key = token_to_key(token)
        if tag is None and token_key in self._multi:
            return True
        return self._make_cache_key(token_key, tag) in self._providers

    def _raise_not_found(self, token_key: str, tag: Optional[str]) -> None:
        candidates = [key for key in self._providers if key.split("#", 1)[0] == token_key]
        raise ProviderNotFoundError(token_key, tag=tag, candidates=candidates)
