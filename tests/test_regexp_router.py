"""Tests for trellis.routing.regexp: compiled-regex router."""

import pytest

from trellis.errors import MatcherAlreadyBuiltError, UnsupportedPathError
from trellis.routing.regexp import RegExpRouter
from trellis.routing.route import Ready, UnsupportedPath


def _handlers(result) -> list[str]:
    return [entry.handler for entry in result.handlers]


class TestStatic:
    def test_static_match(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/hello", "hello")
        assert _handlers(router.match("GET", "/hello")) == ["hello"]

    def test_miss_is_empty(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/hello", "hello")
        result = router.match("GET", "/nope")
        assert len(result) == 0

    def test_method_is_respected(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/hello", "get")
        router.add("POST", "/hello", "post")
        assert _handlers(router.match("POST", "/hello")) == ["post"]
        assert _handlers(router.match("PUT", "/hello")) == []


class TestParams:
    def test_param(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/users/:id", "user")
        result = router.match("GET", "/users/42")
        assert _handlers(result) == ["user"]
        assert result.raw_param(0, "id") == "42"
        assert result.raw_params(0) == {"id": "42"}

    def test_constraint(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/posts/:id{[0-9]+}", "post")
        assert _handlers(router.match("GET", "/posts/7")) == ["post"]
        assert _handlers(router.match("GET", "/posts/abc")) == []

    def test_optional_param(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/api/animals/:type?", "animals")
        assert _handlers(router.match("GET", "/api/animals")) == ["animals"]
        result = router.match("GET", "/api/animals/dog")
        assert result.raw_param(0, "type") == "dog"

    def test_raw_value_is_not_decoded(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/files/:name", "file")
        assert router.match("GET", "/files/a%20b").raw_param(0, "name") == "a%20b"


class TestChains:
    def test_middleware_before_handler_in_registration_order(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("ALL", "*", "logger")
        router.add("GET", "/users/:id", "user")
        router.add("ALL", "/users/*", "auth")
        assert _handlers(router.match("GET", "/users/1")) == ["logger", "user", "auth"]

    def test_wildcard_only_path(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("ALL", "*", "logger")
        router.add("GET", "/users/:id", "user")
        assert _handlers(router.match("GET", "/users/1/extra")) == ["logger"]
        assert _handlers(router.match("DELETE", "/users/1")) == ["logger"]

    def test_static_path_collects_wildcards(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("ALL", "/api/*", "cors")
        router.add("GET", "/api/health", "health")
        assert _handlers(router.match("GET", "/api/health")) == ["cors", "health"]
        assert _handlers(router.match("GET", "/api")) == ["cors"]

    def test_static_shadows_param_route(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/users/:id", "show")
        router.add("GET", "/users/new", "new")
        assert _handlers(router.match("GET", "/users/new")) == ["new"]
        assert _handlers(router.match("GET", "/users/7")) == ["show"]

    def test_wildcard_with_param_binds_its_own_name(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("ALL", "/orgs/:org/*", "scope")
        router.add("GET", "/orgs/:slug/members", "members")
        result = router.match("GET", "/orgs/acme/members")
        assert _handlers(result) == ["scope", "members"]
        assert result.raw_param(0, "org") == "acme"
        assert result.raw_param(1, "slug") == "acme"

    def test_slash_star_is_everything(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("ALL", "/*", "all")
        assert _handlers(router.match("GET", "/")) == ["all"]
        assert _handlers(router.match("GET", "/x/y")) == ["all"]


class TestBuild:
    def test_build_is_ready(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/users/:id", "user")
        assert isinstance(router.build(), Ready)
        assert isinstance(router.build(), Ready)

    def test_add_after_build_raises(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/", "index")
        router.match("GET", "/")
        with pytest.raises(MatcherAlreadyBuiltError):
            router.add("GET", "/late", "late")

    def test_ambiguous_routes_are_unsupported(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/users/:id/edit", "edit")
        router.add("GET", "/users/new/:draft", "draft")
        result = router.build()
        assert isinstance(result, UnsupportedPath)
        assert result.path == "/users/new/:draft"

    def test_match_raises_when_unsupported(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/x/:id{(a)(b)}", "x")
        with pytest.raises(UnsupportedPathError):
            router.match("GET", "/x/ab")

    def test_same_pattern_twice_is_fine(self) -> None:
        router: RegExpRouter[str] = RegExpRouter()
        router.add("GET", "/users/:id", "first")
        router.add("GET", "/users/:id", "second")
        assert _handlers(router.match("GET", "/users/1")) == ["first", "second"]
