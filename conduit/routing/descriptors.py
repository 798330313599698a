"""
Endpoint descriptors and the sources that supply them.

A descriptor declares that ``<METHOD> <path template>`` is served by the
handler ``handler_name`` of the logical collection ``collection_name``.

Sources are awaited once, when the dispatcher builds its route table:
- StaticRouteSource: an in-memory list
- YamlRouteSource: a YAML routes file
- CollectionRouteSource: ``endpoints`` declared on registered collections
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

import yaml

from ..faults import ConfigurationFault

logger = logging.getLogger("conduit.routing")


@dataclass(frozen=True, slots=True)
class EndpointDescriptor:
    """Declared mapping from method + path template to a collection handler."""

    collection_name: str
    handler_name: str
    method: str
    path_template: str

    @classmethod
    def parse(
        cls,
        collection_name: str,
        handler_name: str,
        endpoint: str,
        prefix: str = "/",
    ) -> "EndpointDescriptor":
        """
        Parse the ``"<METHOD> <path>"`` endpoint notation.

        The path is joined onto the collection's mount ``prefix``::

            EndpointDescriptor.parse("users", "get", "GET /:id", prefix="/users")
            # -> method "GET", path_template "/users/:id"

        Raises:
            ConfigurationFault: If the notation is not two space-separated parts.
        """
        parts = endpoint.split()
        if len(parts) != 2:
            raise ConfigurationFault(
                f"Invalid endpoint '{endpoint}' for {collection_name}.{handler_name}: "
                "expected '<METHOD> <path>'",
                metadata={"collection": collection_name, "handler": handler_name},
            )

        method, path = parts
        joined = posixpath.normpath(posixpath.join("/", prefix or "/", path.lstrip("/")))

        return cls(
            collection_name=collection_name,
            handler_name=handler_name,
            method=method,
            path_template=joined,
        )


@runtime_checkable
class RouteSource(Protocol):
    """Supplies the raw descriptor list the route table is built from."""

    async def load(self) -> List[EndpointDescriptor]:
        ...


class StaticRouteSource:
    """Descriptor source over an in-memory list."""

    def __init__(self, descriptors: Iterable[EndpointDescriptor]):
        self._descriptors = list(descriptors)

    async def load(self) -> List[EndpointDescriptor]:
        return list(self._descriptors)


class YamlRouteSource:
    """
    Descriptor source backed by a YAML routes file.

    Format::

        prefixes:            # optional collection mount points
          users: /api/users
        collections:
          users:
            get: GET /:id
            list: GET /
          orders:
            list: GET /

    Each handler is served by exactly one endpoint.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> List[EndpointDescriptor]:
        data = await asyncio.to_thread(self._read)
        return self.parse(data, source=str(self.path))

    def _read(self) -> Any:
        if not self.path.exists():
            raise ConfigurationFault(
                f"Routes file '{self.path}' not found",
                metadata={"path": str(self.path)},
            )
        with open(self.path) as f:
            try:
                return yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationFault(f"Routes file '{self.path}' is not valid YAML: {e}") from e

    @staticmethod
    def parse(data: Any, source: str = "<routes>") -> List[EndpointDescriptor]:
        """Turn a loaded routes document into descriptors, in file order."""
        if not data:
            return []
        if not isinstance(data, dict) or not isinstance(data.get("collections", {}), dict):
            raise ConfigurationFault(f"Routes document {source} must map 'collections' to handlers")

        prefixes: Dict[str, str] = data.get("prefixes") or {}
        descriptors: List[EndpointDescriptor] = []

        for collection_name, handlers in (data.get("collections") or {}).items():
            if not isinstance(handlers, dict):
                raise ConfigurationFault(
                    f"Collection '{collection_name}' in {source} must map handler names to endpoints"
                )
            prefix = prefixes.get(collection_name, "/")
            for handler_name, endpoint in handlers.items():
                if not isinstance(endpoint, str):
                    raise ConfigurationFault(
                        f"Endpoint of {collection_name}.{handler_name} in {source} must be a string"
                    )
                descriptors.append(
                    EndpointDescriptor.parse(collection_name, handler_name, endpoint, prefix)
                )

        logger.debug("Loaded %d endpoint descriptors from %s", len(descriptors), source)
        return descriptors


class CollectionRouteSource:
    """
    Descriptor source reading the ``endpoints`` mapping declared on each
    registered collection class::

        class Users(Collection):
            endpoints = {"get": "GET /:id", "list": "GET /"}
    """

    def __init__(self, registry: Any, prefixes: Optional[Dict[str, str]] = None):
        self.registry = registry
        self.prefixes = prefixes or {}

    async def load(self) -> List[EndpointDescriptor]:
        descriptors: List[EndpointDescriptor] = []
        for descriptor in self.registry.descriptors():
            prefix = self.prefixes.get(descriptor.name, "/")
            endpoints = getattr(descriptor.constructor, "endpoints", None) or {}
            for handler_name, endpoint in endpoints.items():
                descriptors.append(
                    EndpointDescriptor.parse(descriptor.name, handler_name, endpoint, prefix)
                )
        return descriptors
