"""Tests for trellis.routing.route: Route and MatchResult."""

import re

from trellis.routing.route import EMPTY_MATCH, HandlerEntry, MatchResult, Route


def _noop(ctx, next):
    return None


class TestRoute:
    def test_plain_route_has_no_wildcard(self) -> None:
        route = Route("GET", "/users/:id", _noop)
        assert route.wildcard is None
        assert route.base_path == "/"

    def test_wildcard_route_compiles_pattern(self) -> None:
        route = Route("ALL", "/api/*", _noop, base_path="/api")
        assert route.wildcard is not None
        match = route.wildcard.fullmatch("/api/v1/users")
        assert match is not None
        assert match.group("wild") == "v1/users"

    def test_equality_ignores_pattern(self) -> None:
        assert Route("ALL", "/*", _noop) == Route("ALL", "/*", _noop)


class TestMatchResult:
    def test_empty(self) -> None:
        assert len(EMPTY_MATCH) == 0

    def test_values_without_captures(self) -> None:
        result = MatchResult((HandlerEntry("h", {"id": "42"}),))
        assert result.raw_param(0, "id") == "42"
        assert result.raw_param(0, "missing") is None
        assert result.raw_params(0) == {"id": "42"}

    def test_indices_with_captures(self) -> None:
        captures = re.fullmatch(r"/users/([^/]+)/posts/([^/]+)", "/users/7/posts/a%20b")
        result = MatchResult(
            (HandlerEntry("users", {"id": 1}), HandlerEntry("post", {"id": 1, "slug": 2})),
            captures,
        )
        assert result.raw_params(0) == {"id": "7"}
        assert result.raw_params(1) == {"id": "7", "slug": "a%20b"}

    def test_unmatched_optional_group_is_skipped(self) -> None:
        captures = re.fullmatch(r"/a(?:/([^/]+))?", "/a")
        result = MatchResult((HandlerEntry("h", {"opt": 1}),), captures)
        assert result.raw_params(0) == {}
