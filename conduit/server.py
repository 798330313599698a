"""
Application assembly - wires the default collaborators into a Dispatcher
and wraps it as an ASGI app.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Iterable, Optional

from .asgi import ASGIAdapter
from .collection import CollectionRegistry
from .config import ConduitConfig
from .context import ContextFactory
from .di import Container
from .dispatcher import Dispatcher, Services
from .events import EventBus
from .faults import ConfigurationFault
from .formatters import FormatterProvider
from .middleware import Middleware
from .routing import CollectionRouteSource, RouteSource, YamlRouteSource

logger = logging.getLogger("conduit.server")


def build_container(
    config: ConduitConfig,
    *,
    registry: CollectionRegistry,
    route_source: Optional[RouteSource] = None,
    middleware: Iterable[Middleware] = (),
    formatter_provider: Optional[FormatterProvider] = None,
    events: Optional[EventBus] = None,
    container: Optional[Container] = None,
) -> Container:
    """
    Register every dispatcher collaborator in a container.

    Without an explicit ``route_source`` the endpoints come from
    ``config.routes_file`` when set, else from the collections' own
    ``endpoints`` declarations.
    """
    if container is None:
        container = Container()

    if route_source is None:
        if config.routes_file:
            route_source = YamlRouteSource(config.routes_file)
        else:
            route_source = CollectionRouteSource(registry)

    container.register_value("collection_registry", registry)
    container.register_value("context_factory", ContextFactory(container))
    container.register_value("events", events if events is not None else EventBus())
    container.register_value(
        "formatter_provider",
        formatter_provider if formatter_provider is not None else FormatterProvider(),
    )
    container.register_value("route_source", route_source)

    for mw in middleware:
        container.add("middleware", mw)

    return container


def create_dispatcher(
    config: Optional[ConduitConfig] = None,
    *,
    registry: CollectionRegistry,
    **kwargs: Any,
) -> Dispatcher:
    """Build an uninitialized Dispatcher; see ``build_container`` for kwargs."""
    config = config or ConduitConfig()
    container = build_container(config, registry=registry, **kwargs)
    return Dispatcher(
        Services.from_container(container),
        mode=config.mode,
        max_forward_depth=config.max_forward_depth,
        request_timeout=config.request_timeout,
    )


def create_app(
    config: Optional[ConduitConfig] = None,
    *,
    registry: CollectionRegistry,
    **kwargs: Any,
) -> ASGIAdapter:
    """
    Build the ASGI application.

    Example:
        registry = CollectionRegistry()
        registry.register("users", Users)
        app = create_app(ConduitConfig(mode="development"), registry=registry)
    """
    return ASGIAdapter(create_dispatcher(config, registry=registry, **kwargs))


def load_registry(target: str) -> CollectionRegistry:
    """
    Import ``"package.module:attribute"`` and return the CollectionRegistry
    it names. Importing the module runs its ``@registry.collection``
    decorators.

    Raises:
        ConfigurationFault: If the target cannot be imported or is not a registry.
    """
    module_name, _, attr = target.partition(":")
    attr = attr or "registry"

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationFault(f"Cannot import '{module_name}': {e}") from e

    registry = getattr(module, attr, None)
    if not isinstance(registry, CollectionRegistry):
        raise ConfigurationFault(
            f"'{target}' is not a CollectionRegistry",
            metadata={"target": target},
        )
    return registry


def serve(app: ASGIAdapter, config: ConduitConfig) -> None:
    """Run ``app`` with uvicorn until interrupted."""
    import uvicorn

    logger.info("Serving on http://%s:%d (%s mode)", config.host, config.port, config.mode)
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        lifespan="on",
    )
