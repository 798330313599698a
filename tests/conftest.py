"""
Shared test fixtures and helpers for the Conduit test suite.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytest

from conduit.collection import Collection, CollectionRegistry
from conduit.context import ContextFactory
from conduit.di import Container
from conduit.dispatcher import Dispatcher, Services
from conduit.events import EventBus
from conduit.formatters import FormatterProvider
from conduit.http import Request, Response
from conduit.routing import EndpointDescriptor, StaticRouteSource


# ============================================================================
# ASGI Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = [
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or [])
    ]
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }


class SendRecorder:
    """ASGI send callable that keeps every message."""

    def __init__(self):
        self.messages: List[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def status(self) -> Optional[int]:
        for m in self.messages:
            if m["type"] == "http.response.start":
                return m["status"]
        return None

    @property
    def headers(self) -> Dict[str, str]:
        for m in self.messages:
            if m["type"] == "http.response.start":
                return {k.decode(): v.decode() for k, v in m["headers"]}
        return {}

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages if m["type"] == "http.response.body")


def make_receive(messages: Iterable[dict]):
    queue = list(messages)

    async def receive() -> dict:
        if queue:
            return queue.pop(0)
        return {"type": "http.disconnect"}

    return receive


# ============================================================================
# Dispatcher Helpers
# ============================================================================


def make_request(method: str = "GET", path: str = "/", **kwargs: Any) -> Request:
    return Request.build(method, path, **kwargs)


def descriptor(collection: str, handler: str, method: str, path: str) -> EndpointDescriptor:
    return EndpointDescriptor(
        collection_name=collection,
        handler_name=handler,
        method=method,
        path_template=path,
    )


def make_dispatcher(
    collections: Dict[str, type],
    descriptors: List[EndpointDescriptor],
    *,
    middleware: Iterable[Any] = (),
    events: Optional[EventBus] = None,
    formatter_provider: Optional[Any] = None,
    validate: bool = True,
    **kwargs: Any,
) -> Tuple[Dispatcher, Container]:
    """Assemble a dispatcher over in-memory collections and descriptors."""
    registry = CollectionRegistry()
    for name, cls in collections.items():
        registry.register(name, cls)

    container = Container()
    for mw in middleware:
        container.add("middleware", mw)

    services = Services(
        registry=registry,
        context_factory=ContextFactory(container),
        events=events or EventBus(),
        formatter_provider=formatter_provider or FormatterProvider(),
        route_source=StaticRouteSource(descriptors),
        locator=container,
    )
    return Dispatcher(services, validate=validate, **kwargs), container


async def dispatch(dispatcher: Dispatcher, method: str = "GET", path: str = "/", **kwargs: Any) -> Response:
    """Run one request through the dispatcher and return the (unsent-transport) response."""
    response = Response()
    await dispatcher.request_listener(make_request(method, path, **kwargs), response)
    return response


class RecordingEvents(EventBus):
    """EventBus that remembers every emitted event."""

    def __init__(self):
        super().__init__()
        self.emitted: List[Tuple[str, Any]] = []

    def emit(self, event_name: str, payload: Any = None) -> None:
        self.emitted.append((event_name, payload))
        super().emit(event_name, payload)

    def names(self) -> List[str]:
        return [name for name, _ in self.emitted]


# ============================================================================
# Collections
# ============================================================================


class Users(Collection):
    async def get(self, ctx):
        return {"id": ctx.params["id"]}

    def list(self, ctx):
        return [{"id": "1"}, {"id": "2"}]


class Orders(Collection):
    async def list(self, ctx):
        ctx.state["seen_by"] = ctx.state.get("seen_by", []) + ["orders.list"]
        return {"orders": [], "state": dict(ctx.state)}


@pytest.fixture
def events():
    return RecordingEvents()
