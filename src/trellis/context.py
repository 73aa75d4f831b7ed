"""Per-request context handed to every handler and middleware.

A ``Context`` carries the request, the response being built and a small
variable store. It is created by the app for one request and dropped when
the response is sent; nothing on it is shared between requests.

``context_var`` holds the context of the request being dispatched, for
code that has no ``ctx`` in hand::

    from trellis.context import get_context

    def current_user():
        return get_context().get("user")
"""

from __future__ import annotations

import json as json_module
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from dataclasses import replace
from typing import Any
from urllib.parse import quote

from trellis._internal.invoke import invoke
from trellis.http.request import Request
from trellis.http.response import TEXT_PLAIN, Response

JSON = "application/json"
HTML = "text/html; charset=UTF-8"

# Characters encodeURI leaves alone
_URI_SAFE = ";/?:@&=+$,-_.!~*'()#"

type HeaderValues = Mapping[str, str | list[str]]

context_var: ContextVar[Context] = ContextVar("trellis_context")
"""The context of the request being dispatched. Set by ``App.dispatch``."""


def get_context() -> Context:
    """Return the current context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()


def _merge(new: Response, old: Response) -> Response:
    """Carry headers set on *old* over to *new*.

    Headers from *old* replace same-named headers on *new*, except
    Content-Type, where *new* wins. Cookies from both are kept.
    """
    merged = new
    seen: set[str] = set()
    for name, _ in old.headers:
        lower = name.lower()
        if lower in seen:
            continue
        seen.add(lower)
        values = [v for k, v in old.headers if k.lower() == lower]
        if lower != "set-cookie":
            merged = merged.without_header(name)
        for value in values:
            merged = merged.with_header(name, value)
    return replace(merged, cookies=(*merged.cookies, *old.cookies))


class Context:
    """Request/response context.

    Handlers return a ``Response`` (usually built with ``ctx.text``,
    ``ctx.json`` and friends); the composer assigns it to ``ctx.res``.
    Headers set with ``ctx.header`` before a response exists are applied
    to whatever response is built later.
    """

    __slots__ = (
        "_not_found_handler",
        "_prepared",
        "_res",
        "_status",
        "_vars",
        "env",
        "error",
        "finalized",
        "req",
    )

    def __init__(
        self,
        req: Request,
        env: Any = None,
        *,
        not_found_handler: Callable[[Context], Any] | None = None,
    ) -> None:
        self.req = req
        self.env = env if env is not None else {}
        self.error: Exception | None = None
        self.finalized = False
        self._res: Response | None = None
        self._prepared = Response(content_type=None)
        self._status: int | None = None
        self._vars: dict[str, Any] | None = None
        self._not_found_handler = not_found_handler

    # -- Response --

    @property
    def res(self) -> Response:
        """The current response. An empty 200 until a handler sets one."""
        if self._res is None:
            self._res = replace(self._prepared, body=b"")
        return self._res

    @res.setter
    def res(self, response: Response) -> None:
        if self._res is not None:
            response = _merge(response, self._res)
        self._res = response
        self.finalized = True

    def header(self, name: str, value: str | None = None, *, append: bool = False) -> None:
        """Set, append or (with no value) delete a response header."""
        target = self._res if self._res is not None else self._prepared
        if value is None:
            target = target.without_header(name)
        elif append:
            target = target.with_header(name, value)
        else:
            target = target.replace_header(name, value)
        if self._res is not None:
            self._res = target
        else:
            self._prepared = target

    def status(self, status: int) -> None:
        """Default status for responses built after this call."""
        self._status = status

    # -- Variables --

    def set(self, key: str, value: Any) -> None:
        if self._vars is None:
            self._vars = {}
        self._vars[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        if self._vars is None:
            return default
        return self._vars.get(key, default)

    @property
    def var(self) -> dict[str, Any]:
        """A copy of every variable set on this context."""
        return dict(self._vars) if self._vars else {}

    # -- Builders --

    def new_response(
        self,
        data: str | bytes | None,
        status: int | None = None,
        headers: HeaderValues | None = None,
    ) -> Response:
        """Build a response carrying every header set so far on this context."""
        base = self._res if self._res is not None else self._prepared
        body = data if data is not None else b""
        content_type = base.content_type
        if content_type is None and isinstance(data, str):
            content_type = TEXT_PLAIN
        response = Response(
            body=body,
            status=status or self._status or 200,
            content_type=content_type,
            headers=base.headers,
            cookies=base.cookies,
        )
        for name, value in (headers or {}).items():
            if isinstance(value, str):
                response = response.replace_header(name, value)
            else:
                response = response.without_header(name)
                for item in value:
                    response = response.with_header(name, item)
        return response

    def body(
        self,
        data: str | bytes | None,
        status: int | None = None,
        headers: HeaderValues | None = None,
    ) -> Response:
        return self.new_response(data, status, headers)

    def text(self, text: str, status: int | None = None, headers: HeaderValues | None = None) -> Response:
        return self.new_response(text, status, {"Content-Type": TEXT_PLAIN, **(headers or {})})

    def json(self, obj: Any, status: int | None = None, headers: HeaderValues | None = None) -> Response:
        payload = json_module.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str)
        return self.new_response(payload, status, {"Content-Type": JSON, **(headers or {})})

    def html(self, html: str, status: int | None = None, headers: HeaderValues | None = None) -> Response:
        return self.new_response(html, status, {"Content-Type": HTML, **(headers or {})})

    def redirect(self, location: str, status: int = 302) -> Response:
        """Redirect to *location*. Non-Latin-1 locations are percent-encoded."""
        try:
            location.encode("latin-1")
        except UnicodeEncodeError:
            location = quote(location, safe=_URI_SAFE)
        self.header("Location", location)
        return self.new_response(None, status)

    async def not_found(self) -> Response:
        """The app's not-found response for this request."""
        if self._not_found_handler is None:
            return Response("404 Not Found", status=404)
        return await invoke(self._not_found_handler, self)
