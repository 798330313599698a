"""
Middleware system - serial, side-effecting request hooks.

A middleware is any async callable ``(request, response, state)``. The
dispatcher awaits each one in registration order before the handler runs;
return values are ignored and raising is the only way to stop the
pipeline. The error then reaches the dispatcher's terminal handler.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .http import Request, Response

Middleware = Callable[["Request", "Response", Dict[str, Any]], Awaitable[None]]

logger = logging.getLogger("conduit.middleware")


async def run_middlewares(
    middlewares: Iterable[Middleware],
    request: "Request",
    response: "Response",
    state: Dict[str, Any],
) -> None:
    """Await every middleware in order; the first failure propagates."""
    for middleware in middlewares:
        await middleware(request, response, state)


@dataclass
class MiddlewareDescriptor:
    middleware: Middleware
    priority: int
    name: str


class MiddlewareStack:
    """
    Ordered middleware collection.

    Lower priority runs first; equal priorities keep registration order.
    ``install(container)`` publishes the sorted chain as the container's
    ``middleware`` multi binding, which is what the dispatcher resolves.
    """

    def __init__(self):
        self.middlewares: List[MiddlewareDescriptor] = []

    def add(self, middleware: Middleware, priority: int = 50, name: Optional[str] = None) -> None:
        if name is None:
            name = getattr(middleware, "__name__", type(middleware).__name__)
        self.middlewares.append(MiddlewareDescriptor(middleware, priority, name))

    def ordered(self) -> List[Middleware]:
        return [d.middleware for d in sorted(self.middlewares, key=lambda d: d.priority)]

    def install(self, container: Any) -> None:
        for middleware in self.ordered():
            container.add("middleware", middleware)
        logger.debug("Installed %d middleware", len(self.middlewares))

    def __len__(self) -> int:
        return len(self.middlewares)


# ============================================================================
# Built-in middleware
# ============================================================================

class RequestIdMiddleware:
    """Tags each request with an ID and echoes it on the response.

    The client's header wins when present, otherwise 16 random bytes as hex.
    """

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name

    async def __call__(self, request: "Request", response: "Response", state: Dict[str, Any]) -> None:
        request_id = request.header(self.header_name) or os.urandom(16).hex()
        request.state["request_id"] = request_id
        response.set_header(self.header_name, request_id)


class LoggingMiddleware:
    """Logs each request as it enters the pipeline."""

    def __init__(self):
        self.logger = logging.getLogger("conduit.requests")

    async def __call__(self, request: "Request", response: "Response", state: Dict[str, Any]) -> None:
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info("%s %s", request.method, request.url)


class CORSMiddleware:
    """Sets CORS response headers; preflight (OPTIONS) also gets the allow lists."""

    DEFAULT_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")

    def __init__(
        self,
        allow_origins: Iterable[str] = ("*",),
        allow_methods: Iterable[str] = DEFAULT_METHODS,
        allow_headers: Iterable[str] = ("*",),
        allow_credentials: bool = False,
        max_age: int = 3600,
    ):
        self.origins = frozenset(allow_origins)
        self.preflight_headers = {
            "access-control-allow-methods": ", ".join(allow_methods),
            "access-control-allow-headers": ", ".join(allow_headers),
            "access-control-max-age": str(max_age),
        }
        self.credentials = allow_credentials

    def allowed_origin(self, origin: Optional[str]) -> Optional[str]:
        """Value for ``access-control-allow-origin``, or None to omit it."""
        if origin and (origin in self.origins or "*" in self.origins):
            return origin
        return "*" if "*" in self.origins else None

    async def __call__(self, request: "Request", response: "Response", state: Dict[str, Any]) -> None:
        allowed = self.allowed_origin(request.header("origin"))
        if allowed is not None:
            response.set_header("access-control-allow-origin", allowed)
        if self.credentials:
            response.set_header("access-control-allow-credentials", "true")

        if request.method == "OPTIONS":
            for name, value in self.preflight_headers.items():
                response.set_header(name, value)
