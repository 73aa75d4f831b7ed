"""Tests for trellis.http.cookies: parsing and Set-Cookie serialization."""

from datetime import UTC, datetime

import pytest

from trellis.http.cookies import MAX_COOKIE_AGE, SetCookie, parse_cookies


class TestParseCookies:
    def test_empty(self) -> None:
        assert parse_cookies("") == {}

    def test_pairs(self) -> None:
        assert parse_cookies("a=1; b=2") == {"a": "1", "b": "2"}

    def test_first_occurrence_wins(self) -> None:
        assert parse_cookies("a=1; a=2") == {"a": "1"}

    def test_quotes_and_escapes(self) -> None:
        assert parse_cookies('name="J%C3%BCrgen"') == {"name": "Jürgen"}

    def test_pairs_without_value_are_skipped(self) -> None:
        assert parse_cookies("flag; a=1; =x") == {"a": "1"}


class TestSetCookie:
    def test_defaults(self) -> None:
        assert SetCookie("sid", "abc").to_header_value() == "sid=abc; Path=/; HttpOnly; SameSite=Lax"

    def test_all_attributes(self) -> None:
        cookie = SetCookie(
            "sid",
            "abc",
            max_age=3600,
            path="/api",
            domain="example.com",
            secure=True,
            samesite="Strict",
        )
        assert cookie.to_header_value() == (
            "sid=abc; Max-Age=3600; Path=/api; Domain=example.com; Secure; HttpOnly; SameSite=Strict"
        )

    def test_value_is_percent_encoded(self) -> None:
        assert SetCookie("name", "Jürgen; x", samesite=None).to_header_value() == (
            "name=J%C3%BCrgen%3B%20x; Path=/; HttpOnly"
        )

    def test_expires_and_partitioned(self) -> None:
        cookie = SetCookie(
            "sid",
            "abc",
            expires=datetime(2030, 1, 2, 3, 4, 5, tzinfo=UTC),
            secure=True,
            httponly=False,
            partitioned=True,
            samesite="none",
        )
        assert cookie.to_header_value() == (
            "sid=abc; Expires=Wed, 02 Jan 2030 03:04:05 GMT; Path=/; Secure; Partitioned; SameSite=None"
        )

    def test_max_age_cap(self) -> None:
        SetCookie("sid", "abc", max_age=MAX_COOKIE_AGE)
        with pytest.raises(ValueError, match="400 days"):
            SetCookie("sid", "abc", max_age=MAX_COOKIE_AGE + 1)

    def test_secure_prefix_requires_secure(self) -> None:
        with pytest.raises(ValueError, match="secure=True"):
            SetCookie("__Secure-sid", "abc")
        SetCookie("__Secure-sid", "abc", secure=True, path="/api")

    def test_host_prefix_requires_root_path(self) -> None:
        with pytest.raises(ValueError, match="path='/'"):
            SetCookie("__Host-sid", "abc", secure=True, path="/api")
        with pytest.raises(ValueError, match="no domain"):
            SetCookie("__Host-sid", "abc", secure=True, domain="example.com")

    def test_partitioned_requires_secure(self) -> None:
        with pytest.raises(ValueError, match="Partitioned"):
            SetCookie("sid", "abc", partitioned=True)
