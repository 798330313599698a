"""
Route - one compiled endpoint bound to its collection handler.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..faults import InternalServerFault
from .descriptors import EndpointDescriptor
from .matcher import PathMatcher

if TYPE_CHECKING:
    from ..context import RequestContext

logger = logging.getLogger("conduit.routing")


@dataclass(slots=True)
class RouteResult:
    """What a handle resolves to: the handler's return value and its context."""
    result: Any
    context: "RequestContext"


class Route:
    """
    Compiled route.

    Attributes:
        collection_name: Owning collection
        handler_name: Handler method name on the collection
        method: Lowercased HTTP method
        path: Normalized path template
        keys: Parameter names in capture order
    """

    __slots__ = (
        "collection_name", "handler_name", "method", "matcher",
        "_registry", "_context_factory", "_events",
    )

    def __init__(
        self,
        descriptor: EndpointDescriptor,
        *,
        registry: Any,
        context_factory: Any,
        events: Any,
    ):
        self.collection_name = descriptor.collection_name
        self.handler_name = descriptor.handler_name
        self.method = descriptor.method.lower()
        self.matcher = PathMatcher(descriptor.path_template)

        self._registry = registry
        self._context_factory = context_factory
        self._events = events

    @property
    def path(self) -> str:
        return self.matcher.path

    @property
    def keys(self) -> List[str]:
        return self.matcher.keys

    def match(self, path: str) -> Optional[Dict[str, Optional[str]]]:
        """Match a request path; None when it does not match."""
        return self.matcher.match(path)

    async def handle(self, request: Any, response: Any, state: Optional[Dict[str, Any]]) -> RouteResult:
        """
        Invoke this route's handler for one request.

        Resolves the collection, creates a fresh context, instantiates the
        collection bound to it and calls the handler with the context.

        Raises:
            InternalServerFault: If the collection is unknown or does not
                expose a callable handler of this name.
        """
        descriptor = self._registry.get_collection_by_name(self.collection_name)
        context = self._context_factory.create(
            request,
            response,
            name=descriptor.name,
            handle_name=self.handler_name,
            state=state,
        )

        instance = descriptor.constructor(context)
        handler = getattr(instance, self.handler_name, None)

        if not callable(handler):
            message = (
                f"Not found handler '{self.handler_name}' in collection's "
                f"logic file '{self.collection_name}'"
            )
            self._events.emit("error", message)
            raise InternalServerFault(message)

        result = handler(context)
        if inspect.isawaitable(result):
            result = await result

        return RouteResult(result=result, context=context)

    def __repr__(self) -> str:
        return (
            f"Route({self.method.upper()} {self.path} -> "
            f"{self.collection_name}.{self.handler_name})"
        )
