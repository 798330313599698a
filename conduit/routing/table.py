"""
Route table - every compiled route, indexed for the two lookups the
dispatcher performs:

- by method: ordered list, first matching route wins (declaration order)
- by collection: collection name -> handler name -> route, for forwarding

A table is built wholesale and never mutated afterwards, so concurrent
requests read it without locking.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..faults import ConfigurationFault, Fault
from .descriptors import EndpointDescriptor
from .route import Route

logger = logging.getLogger("conduit.routing")


class RouteTable:
    """
    Immutable route indices.

    Usage:
        table = RouteTable.build(descriptors, registry=..., context_factory=..., events=...)
        route, params = table.find("GET", "/users/42")
        target = table.lookup("orders", "list")
    """

    __slots__ = ("_by_method", "_by_collection", "_routes")

    def __init__(
        self,
        by_method: Dict[str, List[Route]],
        by_collection: Dict[str, Dict[str, Route]],
        routes: List[Route],
    ):
        self._by_method = MappingProxyType({m: tuple(r) for m, r in by_method.items()})
        self._by_collection = MappingProxyType(
            {c: MappingProxyType(h) for c, h in by_collection.items()}
        )
        self._routes = tuple(routes)

    @classmethod
    def empty(cls) -> "RouteTable":
        return cls({}, {}, [])

    @classmethod
    def build(
        cls,
        descriptors: Iterable[EndpointDescriptor],
        *,
        registry: Any,
        context_factory: Any,
        events: Any,
        validate: bool = True,
    ) -> "RouteTable":
        """
        Compile descriptors into a new table.

        Indices are filled in local dicts and handed to the table only once
        every descriptor compiled, so no caller ever sees a partial table.

        Args:
            descriptors: Endpoint descriptors in declaration order
            registry: Collection registry used by the routes' handles
            context_factory: Context factory used by the routes' handles
            events: Event sink used by the routes' handles
            validate: Check every collection and handler exists in ``registry``

        Raises:
            ConfigurationFault: On a malformed template, a duplicate
                collection/handler pair, or (with ``validate``) a missing
                collection or handler.
        """
        by_method: Dict[str, List[Route]] = {}
        by_collection: Dict[str, Dict[str, Route]] = {}
        routes: List[Route] = []

        for descriptor in descriptors:
            if validate:
                cls._validate(descriptor, registry)

            try:
                route = Route(
                    descriptor,
                    registry=registry,
                    context_factory=context_factory,
                    events=events,
                )
            except Fault:
                raise
            except Exception as e:
                raise ConfigurationFault(
                    f"Cannot compile endpoint {descriptor.method} {descriptor.path_template} "
                    f"of {descriptor.collection_name}.{descriptor.handler_name}: {e}"
                ) from e

            handlers = by_collection.setdefault(route.collection_name, {})
            if route.handler_name in handlers:
                raise ConfigurationFault(
                    f"Duplicate endpoint for {route.collection_name}.{route.handler_name}",
                    metadata={"collection": route.collection_name, "handler": route.handler_name},
                )

            handlers[route.handler_name] = route
            by_method.setdefault(route.method, []).append(route)
            routes.append(route)

        logger.info(
            "Route table built: %d routes, %d collections",
            len(routes), len(by_collection),
        )
        return cls(by_method, by_collection, routes)

    @staticmethod
    def _validate(descriptor: EndpointDescriptor, registry: Any) -> None:
        if descriptor.collection_name not in registry:
            raise ConfigurationFault(
                f"Collection '{descriptor.collection_name}' used by endpoint "
                f"{descriptor.method} {descriptor.path_template} is not registered",
                metadata={"collection": descriptor.collection_name},
            )

        collection = registry.get_collection_by_name(descriptor.collection_name)
        if not collection.has_handler(descriptor.handler_name):
            raise ConfigurationFault(
                f"Not found handler '{descriptor.handler_name}' in collection's "
                f"logic file '{descriptor.collection_name}'",
                metadata={
                    "collection": descriptor.collection_name,
                    "handler": descriptor.handler_name,
                },
            )

    # ========================================================================
    # Lookups
    # ========================================================================

    @property
    def by_method(self) -> Mapping[str, Tuple[Route, ...]]:
        return self._by_method

    @property
    def by_collection(self) -> Mapping[str, Mapping[str, Route]]:
        return self._by_collection

    @property
    def routes(self) -> Tuple[Route, ...]:
        return self._routes

    def find(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, Optional[str]]]]:
        """
        First route of ``method`` whose template matches ``path``.

        Returns:
            ``(route, params)`` or None when no route matches.

        Raises:
            DecodeFault: If the matching route's parameters are malformed.
        """
        for route in self._by_method.get(method.lower(), ()):
            params = route.match(path)
            if params is not None:
                return route, params
        return None

    def lookup(self, collection_name: str, handler_name: str) -> Optional[Route]:
        """Route registered for a collection handler, or None."""
        handlers = self._by_collection.get(collection_name)
        if handlers is None:
            return None
        return handlers.get(handler_name)

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self):
        return iter(self._routes)
