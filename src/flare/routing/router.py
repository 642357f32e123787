"""Route table with trie-based path matching.

Routes are registered during setup and frozen into a read-only lookup
structure before the app serves traffic. Once frozen the table is
shared by every request task without locking.
"""

import logging
from collections.abc import Iterator, Sequence

from flare.auth.levels import AuthLevel
from flare.errors import AmbiguousRoute, DuplicateLabel, InvalidPattern
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

logger = logging.getLogger("flare.routing")

HTTP_METHODS: frozenset[str] = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"}
)


def parse_pattern(path: str) -> RoutePattern:
    """Parse a route pattern string into segments.

    Examples::

        "/"                -> [literal ""]
        "/items"           -> [literal "items"]
        "/items/"          -> [literal "items", literal ""]
        "/items/:id"       -> [literal "items", param "id"]
        "/files/*rest"     -> [literal "files", wildcard "rest"]

    Raises ``InvalidPattern`` for malformed patterns.
    """
    if not path.startswith("/"):
        raise InvalidPattern(path, "must start with '/'")

    parts = path[1:].split("/")
    last = len(parts) - 1
    segments: list[PathSegment] = []
    seen: set[str] = set()

    for index, part in enumerate(parts):
        if not part:
            if index != last:
                raise InvalidPattern(path, "empty segment in the middle of the path")
            segments.append(PathSegment(SegmentKind.LITERAL, ""))
            continue

        if (part.startswith("{") and part.endswith("}")) or (
            part.startswith("<") and part.endswith(">")
        ):
            name = part[1:-1].split(":", 1)[0] or "name"
            raise InvalidPattern(
                path,
                f"{part!r} is not flare syntax; use ':{name}' for a parameter "
                f"or '*{name}' for a wildcard tail",
            )

        if part[0] not in ":*":
            segments.append(PathSegment(SegmentKind.LITERAL, part))
            continue

        kind = SegmentKind.PARAM if part[0] == ":" else SegmentKind.WILDCARD
        name = part[1:]
        if not name.isidentifier():
            raise InvalidPattern(path, f"{part!r} needs an identifier name")
        if name in seen:
            raise InvalidPattern(path, f"parameter {name!r} appears more than once")
        if kind is SegmentKind.WILDCARD and index != last:
            raise InvalidPattern(path, f"wildcard {part!r} must be the last segment")
        seen.add(name)
        segments.append(PathSegment(kind, name))

    return RoutePattern(raw=path, segments=tuple(segments))


class _TrieNode:
    """A node in the route trie. Mutable until the table freezes."""

    __slots__ = ("children", "entries", "param_child", "wildcard")

    def __init__(self) -> None:
        # Literal segment children: "users" -> node ("" for a trailing slash)
        self.children: dict[str, _TrieNode] = {}
        # Parameter child, shared by every parameter name at this depth
        self.param_child: _TrieNode | None = None
        # Wildcard tail entries, keyed by HTTP method
        self.wildcard: dict[str, RouteEntry] = {}
        # Entries ending exactly at this node, keyed by HTTP method
        self.entries: dict[str, RouteEntry] = {}


class RouteTable:
    """Registry mapping (method, pattern) to handler id and auth level.

    Usage::

        table = RouteTable()
        table.add("GET", "/items", "items.list")
        table.add("GET", "/items/:id", "items.show", AuthLevel.AUTHENTICATED)
        table.freeze()
        outcome = table.match("GET", "/items/42")
    """

    __slots__ = ("_entries", "_frozen", "_labels", "_root")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._entries: list[RouteEntry] = []
        self._labels: dict[str, RouteEntry] = {}
        self._frozen = False

    # -- Registration --

    def add(
        self,
        method: str,
        path: str,
        handler_id: str,
        required_level: AuthLevel = AuthLevel.ANONYMOUS,
        *,
        label: str | None = None,
    ) -> RouteEntry:
        """Parse *path* and register it. Returns the new entry."""
        entry = RouteEntry(
            method=method.upper(),
            pattern=parse_pattern(path),
            handler_id=handler_id,
            required_level=required_level,
            label=label,
        )
        self.register(entry)
        return entry

    def register(self, entry: RouteEntry) -> None:
        """Register a route entry. Must be called before freeze().

        Raises ``InvalidPattern`` for an unknown HTTP method,
        ``AmbiguousRoute`` if the method already has a pattern of the
        same shape, and ``DuplicateLabel`` if the label is taken.
        """
        self.register_all((entry,))

    def register_all(self, entries: Sequence[RouteEntry]) -> None:
        """Register several entries together: either all of them or none.

        Every entry is checked against the table and against the rest of
        the batch before any of them is inserted. Raises the same errors
        as ``register()``.
        """
        if self._frozen:
            msg = "Cannot add routes after the route table is frozen."
            raise RuntimeError(msg)

        batch_labels: set[str] = set()
        batch_shapes: dict[tuple[str, tuple[tuple[str, str], ...]], RouteEntry] = {}
        for entry in entries:
            if entry.method not in HTTP_METHODS:
                raise InvalidPattern(entry.pattern.raw, f"unknown HTTP method {entry.method!r}")

            if entry.label is not None:
                if entry.label in self._labels or entry.label in batch_labels:
                    raise DuplicateLabel(entry.label)
                batch_labels.add(entry.label)

            key = (entry.method, entry.pattern.shape)
            existing = batch_shapes.get(key)
            if existing is None:
                existing = (self._find(entry.pattern) or {}).get(entry.method)
            if existing is not None:
                raise AmbiguousRoute(entry.method, entry.pattern.raw, existing.pattern.raw)
            batch_shapes[key] = entry

        for entry in entries:
            self._terminal(entry.pattern)[entry.method] = entry
            self._entries.append(entry)
            if entry.label is not None:
                self._labels[entry.label] = entry
            logger.debug("Registered %s %s -> %s", entry.method, entry.pattern, entry.handler_id)

    def _find(self, pattern: RoutePattern) -> dict[str, RouteEntry] | None:
        """The entry map *pattern* ends in, or ``None`` if it has no node yet."""
        node = self._root
        for seg in pattern.segments:
            if seg.kind is SegmentKind.WILDCARD:
                return node.wildcard
            if seg.kind is SegmentKind.PARAM:
                child = node.param_child
            else:
                child = node.children.get(seg.value)
            if child is None:
                return None
            node = child
        return node.entries

    def _terminal(self, pattern: RoutePattern) -> dict[str, RouteEntry]:
        """The entry map *pattern* ends in, creating trie nodes on the way."""
        node = self._root
        for seg in pattern.segments:
            if seg.kind is SegmentKind.WILDCARD:
                return node.wildcard
            if seg.kind is SegmentKind.PARAM:
                if node.param_child is None:
                    node.param_child = _TrieNode()
                node = node.param_child
            else:
                node = node.children.setdefault(seg.value, _TrieNode())
        return node.entries

    def freeze(self) -> None:
        """Freeze the table. No more routes can be registered."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- Introspection --

    @property
    def entries(self) -> tuple[RouteEntry, ...]:
        """All registered entries, in registration order."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def url_for(self, label: str, **params: object) -> str:
        """Build the concrete path of the route registered under *label*.

        Raises ``KeyError`` for an unknown label and ``ValueError`` for
        missing parameters.
        """
        entry = self._labels.get(label)
        if entry is None:
            msg = f"No route labelled {label!r}"
            raise KeyError(msg)
        return entry.pattern.build(**params)

    # -- Matching --

    def match(self, method: str, path: str) -> MatchOutcome:
        """Match a request method and path against registered routes.

        Literal segments outrank parameters and parameters outrank
        wildcard tails, position by position. The most specific pattern
        serving *method* wins. ``HEAD`` falls back to ``GET``.
        """
        if not path.startswith("/"):
            return NoRouteForPath(path)

        method = method.upper()
        parts = path[1:].split("/")
        allowed: set[str] = set()

        for entries, values in self._candidates(self._root, parts, 0, ()):
            entry = entries.get(method)
            if entry is None and method == "HEAD":
                entry = entries.get("GET")
            if entry is not None:
                bound = dict(zip(entry.pattern.param_names, values, strict=True))
                return Matched(entry=entry, bound_params=bound)
            allowed.update(entries)

        if allowed:
            return MethodNotAllowedForPath(path, frozenset(allowed))
        return NoRouteForPath(path)

    def _candidates(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        values: tuple[str, ...],
    ) -> Iterator[tuple[dict[str, RouteEntry], tuple[str, ...]]]:
        """Yield matching entry maps, most specific first."""
        if index == len(parts):
            if node.entries:
                yield node.entries, values
            return

        part = parts[index]

        # 1. Literal child (exact match, including "" for a trailing slash)
        child = node.children.get(part)
        if child is not None:
            yield from self._candidates(child, parts, index + 1, values)

        # 2. Parameter child, never binds an empty segment
        if part and node.param_child is not None:
            yield from self._candidates(node.param_child, parts, index + 1, (*values, part))

        # 3. Wildcard tail, consumes the rest of the path and never binds ""
        rest = "/".join(parts[index:])
        if node.wildcard and rest:
            yield node.wildcard, (*values, rest)
