"""Both routers must answer every path the same way for a route set they both accept."""

import pytest

from trellis.routing.regexp import RegExpRouter
from trellis.routing.route import MatchResult, Ready
from trellis.routing.trie import TrieRouter

ROUTES = [
    ("ALL", "*", "logger"),
    ("GET", "/", "index"),
    ("GET", "/users", "list_users"),
    ("POST", "/users", "create_user"),
    ("GET", "/users/:id", "show_user"),
    ("GET", "/users/new", "new_user"),
    ("GET", "/users/:id/posts/:post_id", "show_post"),
    ("ALL", "/api/*", "cors"),
    ("GET", "/api/health", "health"),
    ("GET", "/api/items/:id{[0-9]+}", "item"),
    ("ALL", "/orgs/:org/*", "org_scope"),
    ("GET", "/orgs/:slug/members", "members"),
    ("GET", "/files/:name{[a-z]+\\.txt}", "file"),
    ("DELETE", "/clients/:id", "delete_client"),
    ("GET", "/animals/:kind?", "animals"),
    ("GET", "/shop/:id{[0-9]+}", "product"),
    ("ALL", "/shop/:id{[0-9]+}/*", "product_scope"),
]

REQUESTS = [
    ("GET", "/"),
    ("GET", "/users"),
    ("POST", "/users"),
    ("PUT", "/users"),
    ("GET", "/users/new"),
    ("GET", "/users/42"),
    ("POST", "/users/42"),
    ("GET", "/users/42/posts"),
    ("GET", "/users/42/posts/7"),
    ("GET", "/api"),
    ("GET", "/api/health"),
    ("POST", "/api/health"),
    ("GET", "/api/items/12"),
    ("GET", "/api/items/abc"),
    ("GET", "/api/x/y/z"),
    ("GET", "/orgs/acme/members"),
    ("GET", "/orgs/acme"),
    ("GET", "/orgs/acme/billing/2024"),
    ("GET", "/files/notes.txt"),
    ("GET", "/files/Notes.txt"),
    ("DELETE", "/clients/9"),
    ("GET", "/clients/9"),
    ("GET", "/animals"),
    ("GET", "/animals/cat"),
    ("GET", "/shop/12"),
    ("POST", "/shop/12"),
    ("GET", "/shop/12/reviews"),
    ("GET", "/shop/ab"),
    ("GET", "/nothing/here"),
]


def _summary(result: MatchResult[str]) -> list[tuple[str, dict[str, str]]]:
    return [(entry.handler, result.raw_params(i)) for i, entry in enumerate(result.handlers)]


@pytest.fixture(scope="module")
def routers() -> tuple[RegExpRouter[str], TrieRouter[str]]:
    regexp: RegExpRouter[str] = RegExpRouter()
    trie: TrieRouter[str] = TrieRouter()
    for method, path, handler in ROUTES:
        regexp.add(method, path, handler)
        trie.add(method, path, handler)
    assert isinstance(regexp.build(), Ready)
    return regexp, trie


@pytest.mark.parametrize(("method", "path"), REQUESTS)
def test_same_chain_and_params(routers, method: str, path: str) -> None:
    regexp, trie = routers
    assert _summary(regexp.match(method, path)) == _summary(trie.match(method, path))


def test_spot_checks(routers) -> None:
    regexp, _ = routers
    assert _summary(regexp.match("GET", "/users/42/posts/7")) == [
        ("logger", {}),
        ("show_post", {"id": "42", "post_id": "7"}),
    ]
    assert _summary(regexp.match("GET", "/users/new")) == [("logger", {}), ("new_user", {})]
    assert _summary(regexp.match("GET", "/orgs/acme/members")) == [
        ("logger", {}),
        ("org_scope", {"org": "acme"}),
        ("members", {"slug": "acme"}),
    ]


def test_tail_wildcard_under_constrained_param(routers) -> None:
    regexp, trie = routers
    expected = [
        ("logger", {}),
        ("product", {"id": "12"}),
        ("product_scope", {"id": "12"}),
    ]
    assert _summary(regexp.match("GET", "/shop/12")) == expected
    assert _summary(trie.match("GET", "/shop/12")) == expected
