"""
Endpoint descriptors and descriptor sources (routing/descriptors.py)
"""

import pytest

from conduit.collection import Collection, CollectionRegistry
from conduit.faults import ConfigurationFault
from conduit.routing import (
    CollectionRouteSource,
    EndpointDescriptor,
    RouteSource,
    StaticRouteSource,
    YamlRouteSource,
)


ROUTES_YAML = """\
prefixes:
  users: /api/users
collections:
  users:
    get: GET /:id
    list: GET /
  orders:
    list: GET /orders
    create: POST /orders
"""


# ============================================================================
# EndpointDescriptor.parse
# ============================================================================

class TestEndpointDescriptorParse:

    def test_method_and_path(self):
        d = EndpointDescriptor.parse("users", "get", "GET /users/:id")
        assert d == EndpointDescriptor("users", "get", "GET", "/users/:id")

    def test_prefix_join(self):
        d = EndpointDescriptor.parse("users", "get", "GET /:id", prefix="/api/users")
        assert d.path_template == "/api/users/:id"

    def test_prefix_root_endpoint(self):
        d = EndpointDescriptor.parse("users", "list", "GET /", prefix="/api/users")
        assert d.path_template == "/api/users"

    def test_dot_segments_collapsed(self):
        d = EndpointDescriptor.parse("users", "list", "GET ../health", prefix="/api/users")
        assert d.path_template == "/api/health"

    @pytest.mark.parametrize("endpoint", ["GET", "GET /a /b", ""])
    def test_bad_notation(self, endpoint):
        with pytest.raises(ConfigurationFault):
            EndpointDescriptor.parse("users", "get", endpoint)

    def test_frozen(self):
        d = EndpointDescriptor.parse("users", "get", "GET /x")
        with pytest.raises(AttributeError):
            d.method = "POST"


# ============================================================================
# Sources
# ============================================================================

class TestStaticRouteSource:

    @pytest.mark.asyncio
    async def test_load_returns_copy(self):
        descriptors = [EndpointDescriptor("users", "get", "GET", "/users/:id")]
        source = StaticRouteSource(descriptors)

        loaded = await source.load()
        assert loaded == descriptors
        assert loaded is not descriptors

    def test_is_route_source(self):
        assert isinstance(StaticRouteSource([]), RouteSource)


class TestYamlRouteSource:

    @pytest.mark.asyncio
    async def test_load(self, tmp_path):
        path = tmp_path / "routes.yaml"
        path.write_text(ROUTES_YAML)

        descriptors = await YamlRouteSource(path).load()

        assert descriptors == [
            EndpointDescriptor("users", "get", "GET", "/api/users/:id"),
            EndpointDescriptor("users", "list", "GET", "/api/users"),
            EndpointDescriptor("orders", "list", "GET", "/orders"),
            EndpointDescriptor("orders", "create", "POST", "/orders"),
        ]

    @pytest.mark.asyncio
    async def test_same_descriptors_as_static_source(self, tmp_path):
        path = tmp_path / "routes.yaml"
        path.write_text(ROUTES_YAML)

        static = StaticRouteSource([
            EndpointDescriptor.parse("users", "get", "GET /:id", "/api/users"),
            EndpointDescriptor.parse("users", "list", "GET /", "/api/users"),
            EndpointDescriptor.parse("orders", "list", "GET /orders"),
            EndpointDescriptor.parse("orders", "create", "POST /orders"),
        ])

        assert await YamlRouteSource(str(path)).load() == await static.load()

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationFault):
            await YamlRouteSource(tmp_path / "absent.yaml").load()

    @pytest.mark.asyncio
    async def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "routes.yaml"
        path.write_text("collections: [unclosed")
        with pytest.raises(ConfigurationFault):
            await YamlRouteSource(path).load()

    def test_empty_document(self):
        assert YamlRouteSource.parse(None) == []

    def test_handlers_must_be_mapping(self):
        with pytest.raises(ConfigurationFault):
            YamlRouteSource.parse({"collections": {"users": ["GET /"]}})

    def test_endpoint_must_be_string(self):
        with pytest.raises(ConfigurationFault):
            YamlRouteSource.parse({"collections": {"users": {"get": ["GET /a", "GET /b"]}}})

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigurationFault):
            YamlRouteSource.parse(["GET /"])


class TestCollectionRouteSource:

    @pytest.mark.asyncio
    async def test_reads_endpoints(self):
        registry = CollectionRegistry()

        @registry.collection("users")
        class Users(Collection):
            endpoints = {"get": "GET /:id", "list": "GET /"}

            def get(self, ctx):
                pass

            def list(self, ctx):
                pass

        @registry.collection()
        class Health(Collection):
            endpoints = {"check": "GET /health"}

            def check(self, ctx):
                pass

        source = CollectionRouteSource(registry, prefixes={"users": "/users"})
        descriptors = await source.load()

        assert descriptors == [
            EndpointDescriptor("users", "get", "GET", "/users/:id"),
            EndpointDescriptor("users", "list", "GET", "/users"),
            EndpointDescriptor("health", "check", "GET", "/health"),
        ]

    @pytest.mark.asyncio
    async def test_collection_without_endpoints(self):
        registry = CollectionRegistry()
        registry.register("plain", Collection)
        assert await CollectionRouteSource(registry).load() == []
