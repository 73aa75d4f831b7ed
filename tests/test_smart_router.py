"""Tests for trellis.routing.smart: router strategy selection."""

import logging

import pytest

from trellis.errors import ConfigurationError, MatcherAlreadyBuiltError
from trellis.routing.regexp import RegExpRouter
from trellis.routing.route import Ready
from trellis.routing.smart import SmartRouter
from trellis.routing.trie import TrieRouter


def _handlers(result) -> list[str]:
    return [entry.handler for entry in result.handlers]


class TestSelection:
    def test_prefers_regexp_router(self) -> None:
        router: SmartRouter[str] = SmartRouter()
        router.add("GET", "/users/:id", "user")
        assert _handlers(router.match("GET", "/users/1")) == ["user"]
        assert isinstance(router.active_router, RegExpRouter)
        assert router.name == "SmartRouter + RegExpRouter"

    def test_falls_back_to_trie_router(self, caplog: pytest.LogCaptureFixture) -> None:
        router: SmartRouter[str] = SmartRouter()
        router.add("GET", "/users/:id/edit", "edit")
        router.add("GET", "/users/new/:draft", "draft")
        with caplog.at_level(logging.DEBUG, logger="trellis.routing"):
            result = router.match("GET", "/users/new/9")
        assert _handlers(result) == ["draft"]
        assert isinstance(router.active_router, TrieRouter)
        assert router.name == "SmartRouter + TrieRouter"
        assert any("RegExpRouter skipped" in r.getMessage() for r in caplog.records)

    def test_name_before_build(self) -> None:
        assert SmartRouter().name == "SmartRouter"

    def test_no_active_router_before_build(self) -> None:
        with pytest.raises(ConfigurationError):
            SmartRouter().active_router  # noqa: B018

    def test_no_candidate_accepts(self) -> None:
        router: SmartRouter[str] = SmartRouter([RegExpRouter()])
        router.add("GET", "/x/:id{(a)(b)}", "x")
        with pytest.raises(ConfigurationError, match="no router accepts"):
            router.build()

    def test_custom_candidates(self) -> None:
        router: SmartRouter[str] = SmartRouter([TrieRouter()])
        router.add("GET", "/", "index")
        assert isinstance(router.build(), Ready)
        assert router.name == "SmartRouter + TrieRouter"


class TestLifecycle:
    def test_add_after_bind_raises(self) -> None:
        router: SmartRouter[str] = SmartRouter()
        router.add("GET", "/", "index")
        router.build()
        with pytest.raises(MatcherAlreadyBuiltError):
            router.add("GET", "/late", "late")

    def test_build_is_idempotent(self) -> None:
        router: SmartRouter[str] = SmartRouter()
        router.add("GET", "/", "index")
        router.build()
        first = router.active_router
        router.build()
        assert router.active_router is first

    def test_registration_order_is_replayed(self) -> None:
        router: SmartRouter[str] = SmartRouter()
        router.add("ALL", "*", "a")
        router.add("GET", "/x", "b")
        router.add("ALL", "*", "c")
        assert _handlers(router.match("GET", "/x")) == ["a", "b", "c"]
