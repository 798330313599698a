"""
Collections - named groups of handler methods implementing business logic.

A collection class is instantiated once per handler invocation, bound to
that invocation's RequestContext. Handlers receive the context as their
only argument and may be sync or async:

    class Orders(Collection):
        endpoints = {
            "list": "GET /",
            "get": "GET /:id",
        }

        async def list(self, ctx):
            return await self.repo().all()

        def get(self, ctx):
            order = ORDERS.get(ctx.params["id"])
            if order is None:
                return NotFound("no such order", "ORDER_MISSING")
            return order
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

from .context import RequestContext
from .faults import ConfigurationFault, InternalServerFault

logger = logging.getLogger("conduit.collection")

C = TypeVar("C", bound=type)


class Collection:
    """
    Base collection class.

    Class Attributes:
        endpoints: handler name -> ``"<METHOD> <path>"``, read by
            CollectionRouteSource
    """

    endpoints: Dict[str, str] = {}

    def __init__(self, ctx: RequestContext):
        self.ctx = ctx

    def resolve(self, token: Any) -> Any:
        """Resolve a dependency from the context's DI container."""
        if self.ctx.container is None:
            raise InternalServerFault(
                f"Collection '{self.ctx.collection_name}' has no DI container to resolve {token!r}"
            )
        return self.ctx.container.resolve(token)


@dataclass(frozen=True, slots=True)
class CollectionDescriptor:
    """Registered collection: its logical name and the class to instantiate."""
    name: str
    constructor: Type[Any]

    def has_handler(self, handler_name: str) -> bool:
        return callable(getattr(self.constructor, handler_name, None))


class CollectionRegistry:
    """
    Resolves logical collection names to their descriptors.

    Usage:
        registry = CollectionRegistry()
        registry.register("orders", Orders)

        @registry.collection("users")
        class Users(Collection):
            ...
    """

    def __init__(self):
        self._collections: Dict[str, CollectionDescriptor] = {}

    def register(self, name: str, constructor: Type[Any]) -> CollectionDescriptor:
        """
        Register a collection class under ``name``.

        Raises:
            ConfigurationFault: If the name is already taken by another class.
        """
        existing = self._collections.get(name)
        if existing is not None and existing.constructor is not constructor:
            raise ConfigurationFault(
                f"Collection '{name}' already registered with {existing.constructor.__name__}",
                metadata={"collection": name},
            )

        descriptor = CollectionDescriptor(name=name, constructor=constructor)
        self._collections[name] = descriptor
        logger.debug("Registered collection '%s' -> %s", name, constructor.__name__)
        return descriptor

    def collection(self, name: Optional[str] = None) -> Callable[[C], C]:
        """Class decorator form of ``register``; defaults to the lowercased class name."""
        def decorator(cls: C) -> C:
            self.register(name or cls.__name__.lower(), cls)
            return cls
        return decorator

    def get_collection_by_name(self, name: str) -> CollectionDescriptor:
        """
        Resolve a collection descriptor.

        Raises:
            InternalServerFault: If no collection is registered under ``name``.
        """
        descriptor = self._collections.get(name)
        if descriptor is None:
            raise InternalServerFault(
                f"Collection '{name}' is not registered",
                code="collectionNotFound",
            )
        return descriptor

    def descriptors(self) -> List[CollectionDescriptor]:
        return list(self._collections.values())

    def __contains__(self, name: str) -> bool:
        return name in self._collections

    def __iter__(self) -> Iterator[str]:
        return iter(self._collections)

    def __len__(self) -> int:
        return len(self._collections)
