"""
Dispatcher - runs one request end to end.

Pipeline per request:
    lookup -> middleware -> handler -> result post-processing (not found /
    forward) -> formatting -> send

Every stage propagates its failure to ``error_handle``, the single terminal
handler that answers with a JSON ``{"error": {...}}`` envelope.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .di import ProviderNotFoundError
from .faults import (
    ConfigurationFault,
    Fault,
    InternalServerFault,
    NotFoundFault,
    NotImplementedFault,
    RequestTimeoutFault,
    to_envelope,
    to_fault,
)
from .middleware import Middleware, run_middlewares
from .outcomes import Forward, NotFound, Ok
from .routing import Route, RouteResult, RouteTable

logger = logging.getLogger("conduit.dispatcher")

MODES = ("development", "production")


@dataclass
class Services:
    """
    Collaborators of the dispatcher, assembled once at startup.

    Attributes:
        registry: Collection registry (``get_collection_by_name``)
        context_factory: Builds a RequestContext per handler invocation
        events: Event sink (``emit``)
        formatter_provider: ``get_formatter(context)``
        route_source: ``await load()`` returning endpoint descriptors
        locator: Source of the ``middleware`` chain (``resolve_all``)
    """

    registry: Any
    context_factory: Any
    events: Any
    formatter_provider: Any
    route_source: Any
    locator: Optional[Any] = None

    @classmethod
    def from_container(cls, container: Any) -> "Services":
        """Resolve every collaborator from a DI container; the container is the locator."""
        return cls(
            registry=container.resolve("collection_registry"),
            context_factory=container.resolve("context_factory"),
            events=container.resolve("events"),
            formatter_provider=container.resolve("formatter_provider"),
            route_source=container.resolve("route_source"),
            locator=container,
        )


class Dispatcher:
    """
    Request dispatcher.

    Usage:
        dispatcher = Dispatcher(services, mode="development")
        await dispatcher.init()
        await dispatcher.request_listener(request, response)

    Args:
        services: Collaborators
        mode: ``"development"`` includes stack traces in error bodies,
            ``"production"`` strips them
        max_forward_depth: Forwards allowed within one request
        request_timeout: Seconds before a request is answered with 504;
            None disables the deadline
        validate: Check descriptors against the registry at ``init()``
    """

    def __init__(
        self,
        services: Services,
        *,
        mode: str = "production",
        max_forward_depth: int = 10,
        request_timeout: Optional[float] = None,
        validate: bool = True,
    ):
        if mode not in MODES:
            raise ConfigurationFault(
                f"Unknown mode '{mode}', expected one of {', '.join(MODES)}",
                metadata={"mode": mode},
            )
        self.services = services
        self.mode = mode
        self.max_forward_depth = max_forward_depth
        self.request_timeout = request_timeout
        self.validate = validate

        self.route_table = RouteTable.empty()
        self.ready = False

    @property
    def events(self) -> Any:
        return self.services.events

    # ========================================================================
    # Startup
    # ========================================================================

    async def init(self) -> RouteTable:
        """
        Load descriptors and swap in a freshly built route table.

        Raises:
            ConfigurationFault: If the descriptor source fails or any
                descriptor cannot be compiled. The previous table stays live.
        """
        try:
            descriptors = await self.services.route_source.load()
        except Fault:
            raise
        except Exception as e:
            raise ConfigurationFault(f"Cannot load route descriptors: {e}") from e

        table = RouteTable.build(
            descriptors,
            registry=self.services.registry,
            context_factory=self.services.context_factory,
            events=self.services.events,
            validate=self.validate,
        )

        self.route_table = table
        self.ready = True
        return table

    # ========================================================================
    # Request pipeline
    # ========================================================================

    async def request_listener(self, request: Any, response: Any) -> None:
        """Serve one request. Never raises; failures end in ``error_handle``."""
        self.events.emit("incomingMessage", request)

        try:
            route, state = self.find_route(request)
            if self.request_timeout is None:
                await self._process(route, request, response, state)
            else:
                try:
                    await asyncio.wait_for(
                        self._process_within_deadline(route, request, response, state),
                        timeout=self.request_timeout,
                    )
                except asyncio.TimeoutError:
                    raise RequestTimeoutFault(self.request_timeout)
        except Exception as error:
            await self.error_handle(request, response, error)

    async def _process_within_deadline(
        self,
        route: Optional[Route],
        request: Any,
        response: Any,
        state: Dict[str, Any],
    ) -> None:
        # Only expiry of the request deadline may surface as TimeoutError
        try:
            await self._process(route, request, response, state)
        except (TimeoutError, asyncio.TimeoutError) as e:
            raise InternalServerFault.wrap(e) from e

    def find_route(self, request: Any) -> Tuple[Optional[Route], Dict[str, Any]]:
        """
        First route of the request's method matching its path.

        Returns ``(None, {})`` when nothing matches; ``_process`` then runs
        ``not_implemented_handle`` after the middleware.

        Raises:
            DecodeFault: If the matching route's parameters are malformed.
        """
        found = self.route_table.find(request.method, request.path)
        if found is None:
            return None, {}
        return found

    async def _process(
        self,
        route: Optional[Route],
        request: Any,
        response: Any,
        state: Dict[str, Any],
    ) -> None:
        await self.call_middlewares(request, response, state)

        if route is None:
            route_result = await self.not_implemented_handle(request, response, state)
        else:
            route_result = await route.handle(request, response, state)

        route_result = await self.handle_result_process(route_result, request, response, state)

        # HEAD never has a body
        if request.method.upper() == "HEAD":
            await response.send(None)
            return

        context = route_result.context
        formatter = self.services.formatter_provider.get_formatter(context)
        if formatter is None:
            raise InternalServerFault("Not found formatter")

        body = formatter(context, route_result.result)
        if inspect.isawaitable(body):
            body = await body

        await response.send(body)

    def middlewares(self) -> List[Middleware]:
        """Middleware chain from the locator; empty when none is registered."""
        locator = self.services.locator
        if locator is None:
            return []
        try:
            return list(locator.resolve_all("middleware"))
        except ProviderNotFoundError:
            return []

    async def call_middlewares(self, request: Any, response: Any, state: Dict[str, Any]) -> None:
        await run_middlewares(self.middlewares(), request, response, state)

    async def not_implemented_handle(self, request: Any, response: Any, state: Dict[str, Any]) -> RouteResult:
        raise NotImplementedFault(f"Resource or collection '{request.url}' not implemented in API")

    # ========================================================================
    # Result post-processing
    # ========================================================================

    @staticmethod
    def apply_outcome(route_result: RouteResult) -> RouteResult:
        """
        Fold a tagged handler outcome into the context's actions.

        ``Ok(value)`` unwraps to ``value``; ``NotFound`` and ``Forward`` set
        the matching action slot. Plain values pass through.
        """
        result = route_result.result
        actions = route_result.context.actions

        if isinstance(result, Ok):
            return RouteResult(result.value, route_result.context)
        if isinstance(result, NotFound):
            actions.not_found = result
            return RouteResult(None, route_result.context)
        if isinstance(result, Forward):
            actions.forward = result
            return RouteResult(None, route_result.context)
        return route_result

    async def handle_result_process(
        self,
        route_result: RouteResult,
        request: Any,
        response: Any,
        state: Dict[str, Any],
        depth: int = 0,
    ) -> RouteResult:
        """
        Apply the handler's outcome.

        Raises:
            NotFoundFault: If the handler signaled not found.
            InternalServerFault: If a forward target is unknown or the
                forward depth is exceeded.
        """
        route_result = self.apply_outcome(route_result)
        actions = route_result.context.actions

        if actions.not_found is not None:
            raise NotFoundFault(actions.not_found.message, actions.not_found.code)

        if actions.forward is not None:
            forward = actions.forward
            # Cleared first so a stale flag never re-triggers
            actions.forward = None
            return await self.forwarding(forward, request, response, state, depth + 1)

        return route_result

    async def forwarding(
        self,
        forward: Forward,
        request: Any,
        response: Any,
        state: Dict[str, Any],
        depth: int = 1,
    ) -> RouteResult:
        """Re-dispatch to another collection handler within the same request."""
        if depth > self.max_forward_depth:
            raise InternalServerFault(
                f"Forward depth exceeded {self.max_forward_depth} at "
                f"{forward.collection_name}.{forward.handler_name}",
                code="forwardDepthExceeded",
            )

        routes = self.route_table.by_collection.get(forward.collection_name)
        if routes is None:
            raise InternalServerFault(
                f"Collection {forward.collection_name} not found for forward",
                code="forwardCollectionNotFound",
            )

        route = routes.get(forward.handler_name)
        if route is None:
            raise InternalServerFault(
                f"Handle {forward.handler_name} not found for forward",
                code="forwardCollectionNotFound",
            )

        self.events.emit(
            "forwarding",
            f"Forwarding to {forward.collection_name}.{forward.handler_name} ...",
        )

        route_result = await route.handle(request, response, state)
        return await self.handle_result_process(route_result, request, response, state, depth)

    # ========================================================================
    # Terminal error handler
    # ========================================================================

    async def error_handle(self, request: Any, response: Any, error: Optional[BaseException]) -> None:
        """Answer with the normalized error envelope. No-op for None."""
        if error is None:
            return

        fault = to_fault(error)
        stack = fault.format_stack()
        self.events.emit("error", stack)

        if getattr(response, "sent", False):
            logger.error(
                "Error after response was sent for %s %s: %s",
                request.method, request.url, fault,
            )
            return

        prepared = to_envelope(fault, include_stack=self.mode == "development")
        content = json.dumps({"error": prepared}, default=str)
        body = content.encode("utf-8")

        response.set_status(fault.status)
        response.set_header("Content-Type", "application/json")
        response.set_header("Content-Length", len(body))
        await response.send(body)
