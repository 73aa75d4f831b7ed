"""Tests for trellis.http.query: lenient query string parsing."""

from trellis.http.query import QueryParams, parse_query


class TestParseQuery:
    def test_blank_and_missing_values(self) -> None:
        assert parse_query("a=1&b=&c") == {"a": ["1"], "b": [""], "c": [""]}

    def test_plus_and_escapes(self) -> None:
        assert parse_query("q=caf%C3%A9+au+lait") == {"q": ["café au lait"]}

    def test_empty_pairs_skipped(self) -> None:
        assert parse_query("&&a=1&") == {"a": ["1"]}


class TestQueryParams:
    def test_mapping(self) -> None:
        q = QueryParams(b"a=1&a=2&b=x")
        assert q["a"] == "1"
        assert q.get_list("a") == ["1", "2"]
        assert dict(q) == {"a": "1", "b": "x"}
        assert len(q) == 2
        assert "b" in q

    def test_get_int(self) -> None:
        q = QueryParams(b"page=3&limit=ten")
        assert q.get_int("page") == 3
        assert q.get_int("limit", 50) == 50
        assert q.get_int("missing") is None
