"""Routing module - path matching, compiled routes and the route table."""

from .matcher import PathMatcher, normalize_path, decode_param, compile_template
from .descriptors import (
    EndpointDescriptor,
    RouteSource,
    StaticRouteSource,
    YamlRouteSource,
    CollectionRouteSource,
)
from .route import Route, RouteResult
from .table import RouteTable

__all__ = [
    "PathMatcher",
    "normalize_path",
    "decode_param",
    "compile_template",
    "EndpointDescriptor",
    "RouteSource",
    "StaticRouteSource",
    "YamlRouteSource",
    "CollectionRouteSource",
    "Route",
    "RouteResult",
    "RouteTable",
]
