"""HTTP request.

Metadata is fixed at creation. Path parameters are resolved lazily from
the router's match result for whichever handler is currently running,
and the body is read once and cached so every view of it agrees.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from trellis._internal.asgi import Receive, Scope, raw_path
from trellis.errors import BodyConsumedError, PayloadTooLarge
from trellis.http.cookies import parse_cookies
from trellis.http.forms import FORM_CONTENT_TYPES, fold_form, media_type, parse_form_data
from trellis.http.headers import Headers
from trellis.http.query import QueryParams
from trellis.routing.paths import decode_uri_component, get_path
from trellis.routing.route import EMPTY_MATCH, MatchResult

if TYPE_CHECKING:
    from trellis.http.forms import FormData
    from trellis.routing.route import Route

_BODY = "_body"
_STREAMED = "_streamed"
_FORM = "_form"


async def _no_body() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(slots=True)
class Request:
    """An HTTP request.

    ``path`` is the routing path (see ``get_path``). ``route_index`` is
    moved along by the composer so ``param()`` answers for the handler
    that is running.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    cookies: Mapping[str, str] = field(default_factory=dict)

    # Private: ASGI receive callable for body streaming
    _receive: Receive = field(default=_no_body, repr=False, compare=False)

    # Index of the running handler within the match result
    route_index: int = field(default=0, compare=False)

    max_body: int | None = field(default=None, repr=False, compare=False)

    _match: MatchResult[Route] = field(default=EMPTY_MATCH, repr=False, compare=False)

    # Private: body bytes, parsed form and decoded parameters
    _cache: dict[Any, Any] = field(default_factory=dict, repr=False, compare=False)

    def bind(self, match: MatchResult[Route]) -> None:
        """Attach the router's match result; parameters resolve against it."""
        self._match = match
        self.route_index = 0

    # -- Routing --

    @property
    def matched_routes(self) -> tuple[Route, ...]:
        """Every route in the matched chain, in execution order."""
        return tuple(entry.handler for entry in self._match.handlers)

    @property
    def route_path(self) -> str:
        """Pattern of the route whose handler is running."""
        if not self._match.handlers:
            return ""
        return self._match.handlers[self.route_index].handler.path

    def param(self, key: str) -> str | None:
        """Decoded path parameter *key* for the running handler.

        ``param("*")`` is the text consumed by a trailing wildcard.
        """
        cache_key = (self.route_index, key)
        if cache_key in self._cache:
            return self._cache[cache_key]
        if key == "*":
            raw = self._wildcard()
        elif self._match.handlers:
            raw = self._match.raw_param(self.route_index, key)
        else:
            raw = None
        value = decode_uri_component(raw) if raw is not None else None
        self._cache[cache_key] = value
        return value

    @property
    def params(self) -> dict[str, str]:
        """Every decoded path parameter for the running handler."""
        if not self._match.handlers:
            return {}
        values: dict[str, str] = {}
        for key in self._match.raw_params(self.route_index):
            value = self.param(key)
            if value is not None:
                values[key] = value
        wild = self.param("*")
        if wild is not None:
            values["*"] = wild
        return values

    def _wildcard(self) -> str | None:
        if not self._match.handlers:
            return None
        route = self._match.handlers[self.route_index].handler
        if route.wildcard is None:
            return None
        m = route.wildcard.fullmatch(self.path)
        if m is None:
            return None
        return m.group("wild") or ""

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Routing path plus query string."""
        qs = self.query._raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Cached: the ASGI receive is consumed once and every later call
        (and ``text``, ``json``, ``form``) reuses the same bytes.

        Raises:
            BodyConsumedError: if ``stream()`` already drained the body.
            PayloadTooLarge: if the body exceeds ``max_body``.
        """
        if _BODY in self._cache:
            return self._cache[_BODY]
        if self._cache.get(_STREAMED):
            raise BodyConsumedError()
        self._check_declared_length()
        chunks: list[bytes] = []
        size = 0
        async for chunk in self._receive_chunks():
            size += len(chunk)
            if self.max_body is not None and size > self.max_body:
                raise PayloadTooLarge(self.max_body)
            chunks.append(chunk)
        result = b"".join(chunks)
        self._cache[_BODY] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks without caching it.

        Yields the cached bytes instead when the body was already read.
        """
        if _BODY in self._cache:
            yield self._cache[_BODY]
            return
        if self._cache.get(_STREAMED):
            raise BodyConsumedError()
        self._cache[_STREAMED] = True
        self._check_declared_length()
        size = 0
        async for chunk in self._receive_chunks():
            size += len(chunk)
            if self.max_body is not None and size > self.max_body:
                raise PayloadTooLarge(self.max_body)
            yield chunk

    async def _receive_chunks(self) -> AsyncGenerator[bytes]:
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    def _check_declared_length(self) -> None:
        length = self.content_length
        if self.max_body is not None and length is not None and length > self.max_body:
            raise PayloadTooLarge(self.max_body)

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Raises:
            ValueError: If Content-Type is not a form encoding.
        """
        if _FORM in self._cache:
            return self._cache[_FORM]
        ct = self.content_type or "application/x-www-form-urlencoded"
        result = await parse_form_data(await self.body(), ct)
        self._cache[_FORM] = result
        return result

    async def parse_body(self, *, all: bool = False, dot: bool = False) -> dict[str, Any]:  # noqa: A002
        """Form fields as a plain dict; ``{}`` for non-form bodies.

        ``all=True`` keeps every value of a repeated key as a list,
        ``dot=True`` nests ``a.b`` keys. Keys ending in ``[]`` are
        always lists.
        """
        if media_type(self.content_type) not in FORM_CONTENT_TYPES:
            return {}
        return fold_form(await self.form(), all=all, dot=dot)

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        strict: bool = True,
        max_body: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=get_path(raw_path(scope), strict=strict),
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
            max_body=max_body,
        )
