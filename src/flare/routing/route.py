"""Route pattern, route entry, and match outcome frozen dataclasses."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias

from flare.auth.levels import AuthLevel


class SegmentKind(Enum):
    """What a single pattern segment matches."""

    LITERAL = "literal"
    PARAM = "param"
    WILDCARD = "wildcard"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Literal:   ``/users``   (kind=LITERAL, value="users")
    Param:     ``/:id``     (kind=PARAM, value="id")
    Wildcard:  ``/*rest``   (kind=WILDCARD, value="rest"), last segment only
    """

    kind: SegmentKind
    value: str

    @property
    def is_literal(self) -> bool:
        return self.kind is SegmentKind.LITERAL

    @property
    def shape(self) -> tuple[str, str]:
        """Segment identity for ambiguity checks (parameter names ignored)."""
        if self.kind is SegmentKind.LITERAL:
            return ("literal", self.value)
        return (self.kind.value, "")


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A parsed ``/literal/:param/*rest`` route pattern.

    ``segments`` keeps a trailing empty literal for patterns ending in
    ``/``, so ``/items`` and ``/items/`` are different patterns.
    """

    raw: str
    segments: tuple[PathSegment, ...]

    @property
    def param_names(self) -> tuple[str, ...]:
        """Names of parameter and wildcard segments, in path order."""
        return tuple(seg.value for seg in self.segments if not seg.is_literal)

    @property
    def shape(self) -> tuple[tuple[str, str], ...]:
        return tuple(seg.shape for seg in self.segments)

    def build(self, **params: object) -> str:
        """Rebuild a concrete path from parameter values.

        Raises ``ValueError`` if a parameter is missing or empty, or if a
        parameter value would span more than one segment.
        """
        parts: list[str] = []
        for seg in self.segments:
            if seg.is_literal:
                parts.append(seg.value)
                continue
            if seg.value not in params:
                msg = f"Missing parameter {seg.value!r} for route {self.raw!r}"
                raise ValueError(msg)
            value = str(params[seg.value])
            if seg.kind is SegmentKind.PARAM and (not value or "/" in value):
                msg = f"Parameter {seg.value!r} must be a single non-empty segment, got {value!r}"
                raise ValueError(msg)
            if not value:
                msg = f"Wildcard {seg.value!r} must not be empty"
                raise ValueError(msg)
            parts.append(value)
        return "/" + "/".join(parts)

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """A registered route. Immutable once the table accepts it."""

    method: str
    pattern: RoutePattern
    handler_id: str
    required_level: AuthLevel = AuthLevel.ANONYMOUS
    label: str | None = None


# -- Match outcomes --


@dataclass(frozen=True, slots=True)
class Matched:
    """The path and method resolved to a route."""

    entry: RouteEntry
    bound_params: dict[str, str] = field(default_factory=dict)

    @property
    def handler_id(self) -> str:
        return self.entry.handler_id


@dataclass(frozen=True, slots=True)
class NoRouteForPath:
    """No registered pattern matches the path."""

    path: str


@dataclass(frozen=True, slots=True)
class MethodNotAllowedForPath:
    """Some pattern matches the path, but none for the requested method."""

    path: str
    allowed_methods: frozenset[str]


MatchOutcome: TypeAlias = Matched | NoRouteForPath | MethodNotAllowedForPath
