"""
Conduit - request-dispatch core for collection-based HTTP APIs.

Declared endpoints are compiled into a route table; each request is
matched, run through middleware, handed to a collection handler, optionally
forwarded to other handlers, formatted by content negotiation and sent.
Every failure ends in one JSON error envelope.

Example:
    from conduit import Collection, CollectionRegistry, ConduitConfig, create_app

    registry = CollectionRegistry()

    @registry.collection("users")
    class Users(Collection):
        endpoints = {"get": "GET /users/:id"}

        async def get(self, ctx):
            return {"id": ctx.params["id"]}

    app = create_app(ConduitConfig(mode="development"), registry=registry)
"""

__version__ = "0.1.0"

from .asgi import ASGIAdapter
from .collection import Collection, CollectionDescriptor, CollectionRegistry
from .config import ConduitConfig, ConfigLoader
from .context import Actions, ContextFactory, RequestContext
from .di import Container, ProviderNotFoundError
from .dispatcher import Dispatcher, Services
from .events import EventBus
from .faults import (
    ConfigurationFault,
    DecodeFault,
    Fault,
    HTTPFault,
    InternalServerFault,
    NotFoundFault,
    NotImplementedFault,
    RequestTimeoutFault,
)
from .formatters import (
    BaseFormatter,
    FormatterProvider,
    HTMLFormatter,
    JSONFormatter,
    PlainTextFormatter,
    YAMLFormatter,
)
from .http import Request, Response
from .middleware import CORSMiddleware, LoggingMiddleware, MiddlewareStack, RequestIdMiddleware
from .outcomes import Forward, NotFound, Ok, Outcome
from .routing import (
    CollectionRouteSource,
    EndpointDescriptor,
    PathMatcher,
    Route,
    RouteResult,
    RouteTable,
    StaticRouteSource,
    YamlRouteSource,
)
from .server import build_container, create_app, create_dispatcher

__all__ = [
    "__version__",
    # Application
    "ASGIAdapter",
    "create_app",
    "create_dispatcher",
    "build_container",
    "Dispatcher",
    "Services",
    "ConduitConfig",
    "ConfigLoader",
    # Collections
    "Collection",
    "CollectionDescriptor",
    "CollectionRegistry",
    "RequestContext",
    "Actions",
    "ContextFactory",
    "Ok",
    "NotFound",
    "Forward",
    "Outcome",
    # Routing
    "PathMatcher",
    "EndpointDescriptor",
    "Route",
    "RouteResult",
    "RouteTable",
    "StaticRouteSource",
    "YamlRouteSource",
    "CollectionRouteSource",
    # Transport
    "Request",
    "Response",
    # Collaborators
    "Container",
    "ProviderNotFoundError",
    "EventBus",
    "FormatterProvider",
    "BaseFormatter",
    "JSONFormatter",
    "YAMLFormatter",
    "PlainTextFormatter",
    "HTMLFormatter",
    "MiddlewareStack",
    "RequestIdMiddleware",
    "LoggingMiddleware",
    "CORSMiddleware",
    # Faults
    "Fault",
    "HTTPFault",
    "NotFoundFault",
    "NotImplementedFault",
    "InternalServerFault",
    "DecodeFault",
    "RequestTimeoutFault",
    "ConfigurationFault",
]
