"""Tests for flare.routing.router: trie-based route table."""

import pytest

from flare.auth.levels import AuthLevel
from flare.errors import AmbiguousRoute, DuplicateLabel, InvalidPattern, RegistrationError
from flare.routing.route import (
    Matched,
    MethodNotAllowedForPath,
    NoRouteForPath,
    RouteEntry,
    SegmentKind,
)
from flare.routing.router import RouteTable, parse_pattern


def _table(*routes: tuple[str, str, str]) -> RouteTable:
    table = RouteTable()
    for method, path, handler_id in routes:
        table.add(method, path, handler_id)
    table.freeze()
    return table


class TestParsePattern:
    def test_static(self) -> None:
        pattern = parse_pattern("/users")
        assert len(pattern.segments) == 1
        assert pattern.segments[0].kind is SegmentKind.LITERAL
        assert pattern.segments[0].value == "users"

    def test_multi_static(self) -> None:
        pattern = parse_pattern("/api/v2/users")
        assert [s.value for s in pattern.segments] == ["api", "v2", "users"]

    def test_param(self) -> None:
        pattern = parse_pattern("/users/:id")
        assert pattern.segments[1].kind is SegmentKind.PARAM
        assert pattern.segments[1].value == "id"
        assert pattern.param_names == ("id",)

    def test_wildcard(self) -> None:
        pattern = parse_pattern("/files/*rest")
        assert pattern.segments[1].kind is SegmentKind.WILDCARD
        assert pattern.param_names == ("rest",)

    def test_root_is_one_empty_segment(self) -> None:
        pattern = parse_pattern("/")
        assert len(pattern.segments) == 1
        assert pattern.segments[0].value == ""

    def test_trailing_slash_keeps_empty_segment(self) -> None:
        pattern = parse_pattern("/items/")
        assert [s.value for s in pattern.segments] == ["items", ""]

    def test_must_start_with_slash(self) -> None:
        with pytest.raises(InvalidPattern, match="must start with"):
            parse_pattern("items")

    def test_wildcard_must_be_last(self) -> None:
        with pytest.raises(InvalidPattern, match="last segment"):
            parse_pattern("/files/*rest/edit")

    def test_empty_param_name(self) -> None:
        with pytest.raises(InvalidPattern, match="identifier"):
            parse_pattern("/items/:")

    def test_non_identifier_param_name(self) -> None:
        with pytest.raises(InvalidPattern, match="identifier"):
            parse_pattern("/items/:item-id")

    def test_duplicate_param_name(self) -> None:
        with pytest.raises(InvalidPattern, match="more than once"):
            parse_pattern("/a/:id/b/:id")

    def test_interior_empty_segment(self) -> None:
        with pytest.raises(InvalidPattern, match="empty segment"):
            parse_pattern("/a//b")

    def test_rejects_brace_style_param(self) -> None:
        with pytest.raises(InvalidPattern) as exc_info:
            parse_pattern("/users/{id}")
        assert "':id'" in str(exc_info.value)
        assert "/users/{id}" in str(exc_info.value)

    def test_rejects_angle_style_param(self) -> None:
        with pytest.raises(InvalidPattern) as exc_info:
            parse_pattern("/share/<slug>")
        assert "':slug'" in str(exc_info.value)

    def test_invalid_pattern_is_registration_error(self) -> None:
        with pytest.raises(RegistrationError):
            parse_pattern("nope")


class TestStaticMatching:
    def test_root(self) -> None:
        outcome = _table(("GET", "/", "home")).match("GET", "/")
        assert isinstance(outcome, Matched)
        assert outcome.handler_id == "home"
        assert outcome.bound_params == {}

    def test_nested_path(self) -> None:
        outcome = _table(("GET", "/api/v2/users", "users")).match("GET", "/api/v2/users")
        assert isinstance(outcome, Matched)
        assert outcome.handler_id == "users"

    def test_no_route(self) -> None:
        outcome = _table(("GET", "/users", "users")).match("GET", "/posts")
        assert outcome == NoRouteForPath("/posts")

    def test_case_sensitive(self) -> None:
        outcome = _table(("GET", "/Users", "users")).match("GET", "/users")
        assert isinstance(outcome, NoRouteForPath)

    def test_path_without_leading_slash(self) -> None:
        outcome = _table(("GET", "/users", "users")).match("GET", "users")
        assert isinstance(outcome, NoRouteForPath)

    def test_trailing_slash_is_distinct(self) -> None:
        table = _table(("GET", "/items", "list"), ("GET", "/items/", "list_slash"))
        assert table.match("GET", "/items").handler_id == "list"
        assert table.match("GET", "/items/").handler_id == "list_slash"

    def test_trailing_slash_not_implied(self) -> None:
        table = _table(("GET", "/items", "list"))
        assert isinstance(table.match("GET", "/items/"), NoRouteForPath)


class TestParamMatching:
    def test_binds_param(self) -> None:
        outcome = _table(("GET", "/items/:id", "show")).match("GET", "/items/42")
        assert isinstance(outcome, Matched)
        assert outcome.bound_params == {"id": "42"}

    def test_binds_multiple_params(self) -> None:
        table = _table(("GET", "/users/:user_id/posts/:post_id", "post"))
        outcome = table.match("GET", "/users/7/posts/99")
        assert outcome.bound_params == {"user_id": "7", "post_id": "99"}

    def test_param_never_matches_empty_segment(self) -> None:
        table = _table(("GET", "/items/:id", "show"))
        assert isinstance(table.match("GET", "/items/"), NoRouteForPath)

    def test_param_does_not_span_segments(self) -> None:
        table = _table(("GET", "/items/:id", "show"))
        assert isinstance(table.match("GET", "/items/1/2"), NoRouteForPath)

    def test_params_with_different_names_share_a_node(self) -> None:
        table = _table(("GET", "/items/:id", "show"), ("GET", "/items/:slug/edit", "edit"))
        assert table.match("GET", "/items/5").bound_params == {"id": "5"}
        assert table.match("GET", "/items/hat/edit").bound_params == {"slug": "hat"}


class TestWildcardMatching:
    def test_binds_rest_of_path(self) -> None:
        outcome = _table(("GET", "/files/*rest", "files")).match("GET", "/files/a/b/c.txt")
        assert isinstance(outcome, Matched)
        assert outcome.bound_params == {"rest": "a/b/c.txt"}

    def test_single_segment(self) -> None:
        outcome = _table(("GET", "/files/*rest", "files")).match("GET", "/files/x")
        assert outcome.bound_params == {"rest": "x"}

    def test_needs_at_least_one_segment(self) -> None:
        table = _table(("GET", "/files/*rest", "files"))
        assert isinstance(table.match("GET", "/files"), NoRouteForPath)

    def test_trailing_slash_is_an_empty_tail(self) -> None:
        table = _table(("GET", "/files/*rest", "files"))
        assert isinstance(table.match("GET", "/files/"), NoRouteForPath)

    def test_empty_tail_falls_back_to_literal_route(self) -> None:
        table = _table(("GET", "/files/*rest", "files"), ("GET", "/files/", "index"))
        assert table.match("GET", "/files/").handler_id == "index"
        assert table.match("GET", "/files/a/").bound_params == {"rest": "a/"}


class TestPrecedence:
    def test_literal_beats_param(self) -> None:
        table = _table(("GET", "/items/:id", "show"), ("GET", "/items/new", "new"))
        assert table.match("GET", "/items/new").handler_id == "new"
        assert table.match("GET", "/items/3").handler_id == "show"

    def test_literal_beats_param_regardless_of_order(self) -> None:
        table = _table(("GET", "/items/new", "new"), ("GET", "/items/:id", "show"))
        assert table.match("GET", "/items/new").handler_id == "new"

    def test_param_beats_wildcard(self) -> None:
        table = _table(("GET", "/files/*rest", "tail"), ("GET", "/files/:name", "one"))
        assert table.match("GET", "/files/readme").handler_id == "one"
        assert table.match("GET", "/files/docs/readme").handler_id == "tail"

    def test_backtracks_from_dead_literal_branch(self) -> None:
        table = _table(("GET", "/items/new/preview", "preview"), ("GET", "/items/:id/edit", "edit"))
        outcome = table.match("GET", "/items/new/edit")
        assert isinstance(outcome, Matched)
        assert outcome.handler_id == "edit"
        assert outcome.bound_params == {"id": "new"}

    def test_backtracks_to_wildcard(self) -> None:
        table = _table(("GET", "/a/:x/c", "param"), ("GET", "/a/*rest", "tail"))
        outcome = table.match("GET", "/a/b/d")
        assert outcome.handler_id == "tail"
        assert outcome.bound_params == {"rest": "b/d"}

    def test_root_wildcard_is_fallback(self) -> None:
        table = _table(("GET", "/*path", "spa"), ("GET", "/api/items", "items"))
        assert table.match("GET", "/api/items").handler_id == "items"
        assert table.match("GET", "/dashboard/settings").bound_params == {
            "path": "dashboard/settings"
        }


class TestMethods:
    def test_method_not_allowed(self) -> None:
        table = _table(("GET", "/items", "list"), ("POST", "/items", "create"))
        outcome = table.match("DELETE", "/items")
        assert outcome == MethodNotAllowedForPath("/items", frozenset({"GET", "POST"}))

    def test_allowed_methods_union_across_candidates(self) -> None:
        table = _table(("GET", "/items/new", "new"), ("PUT", "/items/:id", "update"))
        outcome = table.match("DELETE", "/items/new")
        assert isinstance(outcome, MethodNotAllowedForPath)
        assert outcome.allowed_methods == frozenset({"GET", "PUT"})

    def test_less_specific_route_serves_other_method(self) -> None:
        table = _table(("GET", "/items/new", "new"), ("PUT", "/items/:id", "update"))
        outcome = table.match("PUT", "/items/new")
        assert isinstance(outcome, Matched)
        assert outcome.handler_id == "update"
        assert outcome.bound_params == {"id": "new"}

    def test_head_falls_back_to_get(self) -> None:
        table = _table(("GET", "/items", "list"))
        outcome = table.match("HEAD", "/items")
        assert isinstance(outcome, Matched)
        assert outcome.handler_id == "list"

    def test_explicit_head_wins(self) -> None:
        table = _table(("GET", "/items", "list"), ("HEAD", "/items", "head"))
        assert table.match("HEAD", "/items").handler_id == "head"

    def test_method_is_upper_cased(self) -> None:
        table = RouteTable()
        entry = table.add("post", "/items", "create")
        assert entry.method == "POST"
        assert table.match("post", "/items").handler_id == "create"

    def test_unknown_method_rejected(self) -> None:
        table = RouteTable()
        with pytest.raises(InvalidPattern, match="unknown HTTP method"):
            table.add("FETCH", "/items", "x")


class TestAmbiguity:
    def test_same_pattern_same_method(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "a")
        with pytest.raises(AmbiguousRoute) as exc_info:
            table.add("GET", "/items/:id", "b")
        assert exc_info.value.existing == "/items/:id"

    def test_param_names_do_not_disambiguate(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "a")
        with pytest.raises(AmbiguousRoute):
            table.add("GET", "/items/:slug", "b")

    def test_detected_in_either_order(self) -> None:
        first = RouteTable()
        first.add("GET", "/files/*a", "x")
        with pytest.raises(AmbiguousRoute):
            first.add("GET", "/files/*b", "y")

        second = RouteTable()
        second.add("GET", "/files/*b", "y")
        with pytest.raises(AmbiguousRoute):
            second.add("GET", "/files/*a", "x")

    def test_different_methods_are_fine(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "show")
        table.add("DELETE", "/items/:id", "destroy")
        assert len(table) == 2

    def test_literal_and_param_are_not_ambiguous(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "show")
        table.add("GET", "/items/new", "new")
        assert len(table) == 2

    def test_failed_registration_leaves_table_unchanged(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "a")
        with pytest.raises(AmbiguousRoute):
            table.add("GET", "/items/:other", "b")
        assert [e.handler_id for e in table.entries] == ["a"]

    def test_batch_is_all_or_nothing(self) -> None:
        table = RouteTable()
        table.add("POST", "/items", "create")
        pattern = parse_pattern("/items")
        batch = [
            RouteEntry("GET", pattern, "both", label="items"),
            RouteEntry("POST", pattern, "both"),
        ]
        with pytest.raises(AmbiguousRoute):
            table.register_all(batch)

        assert [e.handler_id for e in table.entries] == ["create"]
        assert isinstance(table.match("GET", "/items"), MethodNotAllowedForPath)
        with pytest.raises(KeyError):
            table.url_for("items")

    def test_batch_conflicting_with_itself(self) -> None:
        table = RouteTable()
        batch = [
            RouteEntry("GET", parse_pattern("/items/:id"), "a"),
            RouteEntry("GET", parse_pattern("/items/:slug"), "b"),
        ]
        with pytest.raises(AmbiguousRoute):
            table.register_all(batch)
        assert len(table) == 0

    def test_batch_duplicate_label(self) -> None:
        table = RouteTable()
        batch = [
            RouteEntry("GET", parse_pattern("/a"), "a", label="same"),
            RouteEntry("GET", parse_pattern("/b"), "b", label="same"),
        ]
        with pytest.raises(DuplicateLabel):
            table.register_all(batch)
        assert len(table) == 0


class TestLabels:
    def test_url_for(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "show", label="item")
        assert table.url_for("item", id=42) == "/items/42"

    def test_url_for_round_trip(self) -> None:
        table = RouteTable()
        table.add("GET", "/users/:user/files/*path", "file", label="file")
        table.freeze()
        url = table.url_for("file", user="ann", path="docs/a.txt")
        assert url == "/users/ann/files/docs/a.txt"
        outcome = table.match("GET", url)
        assert outcome.bound_params == {"user": "ann", "path": "docs/a.txt"}

    def test_url_for_root_and_trailing_slash(self) -> None:
        table = RouteTable()
        table.add("GET", "/", "home", label="home")
        table.add("GET", "/items/", "items", label="items")
        assert table.url_for("home") == "/"
        assert table.url_for("items") == "/items/"

    def test_unknown_label(self) -> None:
        with pytest.raises(KeyError):
            RouteTable().url_for("missing")

    def test_missing_param(self) -> None:
        table = RouteTable()
        table.add("GET", "/items/:id", "show", label="item")
        with pytest.raises(ValueError, match="Missing parameter 'id'"):
            table.url_for("item")

    def test_duplicate_label(self) -> None:
        table = RouteTable()
        table.add("GET", "/a", "a", label="x")
        with pytest.raises(DuplicateLabel):
            table.add("GET", "/b", "b", label="x")


class TestFreeze:
    def test_register_after_freeze_raises(self) -> None:
        table = RouteTable()
        table.freeze()
        assert table.frozen is True
        with pytest.raises(RuntimeError, match="frozen"):
            table.add("GET", "/", "home")

    def test_entries_in_registration_order(self) -> None:
        table = RouteTable()
        table.add("GET", "/b", "b", AuthLevel.AUTHENTICATED)
        table.add("GET", "/a", "a")
        entries = table.entries
        assert [e.handler_id for e in entries] == ["b", "a"]
        assert entries[0].required_level is AuthLevel.AUTHENTICATED

    def test_register_prebuilt_entry(self) -> None:
        table = RouteTable()
        entry = RouteEntry("GET", parse_pattern("/x"), "x", AuthLevel.ELEVATED)
        table.register(entry)
        assert table.match("GET", "/x").entry is entry
