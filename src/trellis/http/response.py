"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. ``Context`` builds and merges
responses through these methods only, so a Response is never mutated
after a handler returns it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from trellis.http.cookies import SetCookie

TEXT_PLAIN = "text/plain; charset=UTF-8"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    ``content_type=None`` sends no Content-Type header at all (empty
    responses, redirects). ``headers`` holds every other header in order,
    duplicates included.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str | None = TEXT_PLAIN
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        if name.lower() == "content-type":
            return replace(self, content_type=value)
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        result = self
        for name, value in headers.items():
            result = result.with_header(name, value)
        return result

    def replace_header(self, name: str, value: str) -> Response:
        """Return a new Response where *value* is the only value for *name*."""
        if name.lower() == "content-type":
            return replace(self, content_type=value)
        rest = self.without_header(name)
        return replace(rest, headers=(*rest.headers, (name, value)))

    def without_header(self, name: str) -> Response:
        """Return a new Response with every *name* header removed."""
        lower = name.lower()
        if lower == "content-type":
            return replace(self, content_type=None)
        return replace(self, headers=tuple((k, v) for k, v in self.headers if k.lower() != lower))

    def with_content_type(self, content_type: str | None) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        expires: datetime | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str | None = "Lax",
        partitioned: bool = False,
    ) -> Response:
        """Return a new Response with an additional Set-Cookie."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            expires=expires,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
            partitioned=partitioned,
        )
        return replace(self, cookies=(*self.cookies, cookie))

    def without_cookie(self, name: str, path: str = "/") -> Response:
        """Return a new Response that deletes a cookie (Max-Age=0)."""
        prefixed = name.startswith(("__Secure-", "__Host-"))
        cookie = SetCookie(name=name, value="", max_age=0, path=path, secure=prefixed)
        return replace(self, cookies=(*self.cookies, cookie))

    # -- Inspection --

    def header(self, name: str) -> str | None:
        """First value of header *name*, or None."""
        lower = name.lower()
        if lower == "content-type":
            return self.content_type
        for key, value in self.headers:
            if key.lower() == lower:
                return value
        return None

    def header_list(self, name: str) -> list[str]:
        """Every value of header *name*, Set-Cookie directives included."""
        lower = name.lower()
        values = [v for k, v in self.headers if k.lower() == lower]
        if lower == "set-cookie":
            values.extend(cookie.to_header_value() for cookie in self.cookies)
        return values

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    @property
    def json(self) -> Any:
        """Body parsed as JSON."""
        return json_module.loads(self.body_bytes)
