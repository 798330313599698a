"""
Routes and the route table (routing/route.py, routing/table.py)
"""

import pytest
from unittest.mock import MagicMock

from conduit.collection import Collection, CollectionRegistry
from conduit.context import ContextFactory
from conduit.faults import ConfigurationFault, InternalServerFault
from conduit.http import Response
from conduit.routing import Route, RouteResult, RouteTable

from tests.conftest import Orders, Users, descriptor, make_request


def make_registry(**collections):
    registry = CollectionRegistry()
    for name, cls in collections.items():
        registry.register(name, cls)
    return registry


def build(descriptors, registry=None, events=None, validate=True):
    return RouteTable.build(
        descriptors,
        registry=registry if registry is not None else make_registry(users=Users, orders=Orders),
        context_factory=ContextFactory(),
        events=events or MagicMock(),
        validate=validate,
    )


# ============================================================================
# Route
# ============================================================================

class TestRoute:

    def make_route(self, registry=None, events=None, **kw):
        d = descriptor(kw.get("collection", "users"), kw.get("handler", "get"), "GET", kw.get("path", "/users/:id/"))
        return Route(
            d,
            registry=registry if registry is not None else make_registry(users=Users),
            context_factory=ContextFactory(),
            events=events or MagicMock(),
        )

    def test_metadata(self):
        route = self.make_route()
        assert route.method == "get"
        assert route.path == "/users/:id"
        assert route.keys == ["id"]
        assert route.collection_name == "users"
        assert route.handler_name == "get"

    def test_match_delegates_to_matcher(self):
        route = self.make_route()
        assert route.match("/users/5") == {"id": "5"}
        assert route.match("/nope") is None

    @pytest.mark.asyncio
    async def test_handle_invokes_async_handler(self):
        route = self.make_route()
        result = await route.handle(make_request(path="/users/5"), Response(), {"id": "5"})

        assert isinstance(result, RouteResult)
        assert result.result == {"id": "5"}
        assert result.context.collection_name == "users"
        assert result.context.handler_name == "get"

    @pytest.mark.asyncio
    async def test_handle_invokes_sync_handler(self):
        route = self.make_route(handler="list", path="/users")
        result = await route.handle(make_request(path="/users"), Response(), {})
        assert result.result == [{"id": "1"}, {"id": "2"}]

    @pytest.mark.asyncio
    async def test_context_shares_state(self):
        state = {"id": "5"}
        route = self.make_route()
        result = await route.handle(make_request(), Response(), state)
        assert result.context.state is state

    @pytest.mark.asyncio
    async def test_fresh_instance_per_invocation(self):
        instances = []

        class Tracking(Collection):
            def __init__(self, ctx):
                super().__init__(ctx)
                instances.append(self)

            def get(self, ctx):
                return self.ctx is ctx

        route = self.make_route(registry=make_registry(users=Tracking))
        first = await route.handle(make_request(), Response(), {})
        second = await route.handle(make_request(), Response(), {})

        assert first.result is True and second.result is True
        assert len(instances) == 2
        assert instances[0] is not instances[1]

    @pytest.mark.asyncio
    async def test_missing_handler_raises_and_emits(self):
        events = MagicMock()
        route = self.make_route(handler="delete", events=events)

        with pytest.raises(InternalServerFault) as exc_info:
            await route.handle(make_request(), Response(), {})

        message = "Not found handler 'delete' in collection's logic file 'users'"
        assert exc_info.value.message == message
        assert exc_info.value.status == 500
        events.emit.assert_called_once_with("error", message)

    @pytest.mark.asyncio
    async def test_non_callable_member_is_missing(self):
        class WithAttr(Collection):
            get = "not a handler"

        route = self.make_route(registry=make_registry(users=WithAttr))
        with pytest.raises(InternalServerFault):
            await route.handle(make_request(), Response(), {})

    @pytest.mark.asyncio
    async def test_unregistered_collection(self):
        route = self.make_route(registry=make_registry())
        with pytest.raises(InternalServerFault) as exc_info:
            await route.handle(make_request(), Response(), {})
        assert exc_info.value.code == "collectionNotFound"


# ============================================================================
# RouteTable.build
# ============================================================================

class TestRouteTableBuild:

    def test_empty(self):
        table = RouteTable.empty()
        assert len(table) == 0
        assert table.find("GET", "/") is None

    def test_indices(self):
        table = build([
            descriptor("users", "get", "GET", "/users/:id"),
            descriptor("users", "list", "GET", "/users"),
            descriptor("orders", "list", "POST", "/orders"),
        ])

        assert len(table) == 3
        assert set(table.by_method) == {"get", "post"}
        assert [r.handler_name for r in table.by_method["get"]] == ["get", "list"]
        assert set(table.by_collection["users"]) == {"get", "list"}
        assert table.lookup("orders", "list").method == "post"

    def test_every_route_in_one_bucket_and_slot(self):
        table = build([
            descriptor("users", "get", "GET", "/users/:id"),
            descriptor("orders", "list", "GET", "/orders"),
        ])
        for route in table:
            assert sum(route in bucket for bucket in table.by_method.values()) == 1
            assert table.by_collection[route.collection_name][route.handler_name] is route

    def test_duplicate_collection_handler_pair(self):
        with pytest.raises(ConfigurationFault):
            build([
                descriptor("users", "get", "GET", "/users/:id"),
                descriptor("users", "get", "GET", "/people/:id"),
            ])

    def test_malformed_template(self):
        with pytest.raises(ConfigurationFault):
            build([descriptor("users", "get", "GET", "/users/:id([)")])

    def test_validation_unknown_collection(self):
        with pytest.raises(ConfigurationFault) as exc_info:
            build([descriptor("payments", "get", "GET", "/payments")])
        assert "payments" in exc_info.value.message

    def test_validation_missing_handler(self):
        with pytest.raises(ConfigurationFault) as exc_info:
            build([descriptor("users", "remove", "DELETE", "/users/:id")])
        assert exc_info.value.metadata == {"collection": "users", "handler": "remove"}

    def test_validation_can_be_disabled(self):
        table = build([descriptor("payments", "get", "GET", "/payments")], validate=False)
        assert table.lookup("payments", "get") is not None

    def test_indices_are_read_only(self):
        table = build([descriptor("users", "get", "GET", "/users/:id")])
        with pytest.raises(TypeError):
            table.by_method["post"] = ()
        with pytest.raises(TypeError):
            table.by_collection["users"]["x"] = None


# ============================================================================
# RouteTable lookups
# ============================================================================

class TestRouteTableFind:

    def test_first_declared_match_wins(self):
        table = build([
            descriptor("users", "get", "GET", "/users/:id"),
            descriptor("users", "list", "GET", "/users/me"),
        ])
        route, params = table.find("GET", "/users/me")
        assert route.handler_name == "get"
        assert params == {"id": "me"}

    def test_declaration_order_reversed(self):
        table = build([
            descriptor("users", "list", "GET", "/users/me"),
            descriptor("users", "get", "GET", "/users/:id"),
        ])
        route, params = table.find("GET", "/users/me")
        assert route.handler_name == "list"
        assert params == {}

    def test_method_is_case_insensitive(self):
        table = build([descriptor("users", "get", "GET", "/users/:id")])
        assert table.find("get", "/users/1") is not None
        assert table.find("GET", "/users/1") is not None

    def test_other_method_does_not_match(self):
        table = build([descriptor("users", "get", "GET", "/users/:id")])
        assert table.find("POST", "/users/1") is None

    def test_no_match(self):
        table = build([descriptor("users", "get", "GET", "/users/:id")])
        assert table.find("GET", "/nope") is None

    def test_lookup_unknown(self):
        table = build([descriptor("users", "get", "GET", "/users/:id")])
        assert table.lookup("users", "list") is None
        assert table.lookup("nope", "get") is None
