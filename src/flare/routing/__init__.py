"""Routing: trie-based route table with O(path-depth) matching.

Routes are registered during setup and frozen into an immutable
lookup structure before the app serves traffic. The same table type
backs the server's handler routes and the client's view routes.
"""

from flare.routing.route import (
    Matched,
    MatchOutcome,
    MethodNotAllowedForPath,
    NoRouteForPath,
    PathSegment,
    RouteEntry,
    RoutePattern,
    SegmentKind,
)
from flare.routing.router import HTTP_METHODS, RouteTable, parse_pattern

__all__ = [
    "HTTP_METHODS",
    "MatchOutcome",
    "Matched",
    "MethodNotAllowedForPath",
    "NoRouteForPath",
    "PathSegment",
    "RouteEntry",
    "RoutePattern",
    "RouteTable",
    "SegmentKind",
    "parse_pattern",
]
