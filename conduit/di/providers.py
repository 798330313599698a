"""
Provider implementations for the DI container.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Type


def token_to_key(token: Any) -> str:
    """Convert a type or string token to its registry key."""
    if isinstance(token, str):
        return token
    if isinstance(token, type):
        return f"{token.__module__}.{token.__qualname__}"
    return str(token)


@dataclass(frozen=True, slots=True)
class ProviderMeta:
    """Compact provider metadata."""
    name: str
    token: str
    scope: str  # "singleton" or "transient"


class ValueProvider:
    """Provider that returns a pre-bound constant value."""

    __slots__ = ("_meta", "_value")

    def __init__(self, value: Any, token: Type | str, name: Optional[str] = None):
        self._value = value
        self._meta = ProviderMeta(
            name=name or getattr(value, "__name__", type(value).__name__),
            token=token_to_key(token),
            scope="singleton",
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    def instantiate(self, container: Any) -> Any:
        """Return pre-bound value."""
        return self._value


class FactoryProvider:
    """
    Provider that calls a factory to build the instance.

    The factory receives the container so it can resolve its own
    dependencies. Singleton-scoped results are cached by the container.
    """

    __slots__ = ("_meta", "_factory")

    def __init__(
        self,
        factory: Callable[[Any], Any],
        token: Type | str,
        scope: str = "singleton",
        name: Optional[str] = None,
    ):
        if scope not in ("singleton", "transient"):
            raise ValueError(f"Unsupported scope: {scope}")
        self._factory = factory
        self._meta = ProviderMeta(
            name=name or getattr(factory, "__name__", "factory"),
            token=token_to_key(token),
            scope=scope,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    def instantiate(self, container: Any) -> Any:
        """Call the factory with the resolving container."""
        return self._factory(container)
