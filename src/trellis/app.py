"""Trellis application class.

Mutable during setup (route registration, sub-app mounting, hooks).
The router is built on the first request, or at ASGI lifespan startup,
after which registering another route raises ``MatcherAlreadyBuiltError``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

from trellis._internal.asgi import Receive, Scope, Send
from trellis._internal.invoke import invoke
from trellis._internal.types import ErrorHandler, Handler, NotFoundHandler
from trellis.compose import compose
from trellis.config import AppConfig
from trellis.context import Context, context_var
from trellis.errors import ContextNotFinalizedError, NextCalledTwiceError, UnsupportedPathError
from trellis.http.request import Request
from trellis.http.response import Response
from trellis.routing.paths import merge_path
from trellis.routing.route import METHOD_ALL, Route, Router, UnsupportedPath
from trellis.routing.smart import SmartRouter
from trellis.server.sender import send_response

logger = logging.getLogger("trellis.server")


def default_not_found(ctx: Context) -> Response:
    return ctx.text("404 Not Found", 404)


def _header_values(response: Response) -> dict[str, str | list[str]]:
    values: dict[str, str | list[str]] = {}
    if response.content_type is not None:
        values["Content-Type"] = response.content_type
    for name, value in response.headers:
        existing = values.setdefault(name, [])
        if isinstance(existing, list):
            existing.append(value)
    return values


class App:
    """The trellis application.

    Usage::

        app = App()

        @app.get("/users/:id")
        async def show_user(ctx, next):
            return ctx.json({"id": ctx.req.param("id")})

        app.use("/api/*", cors())

    Thread safety:
        Registration is single-threaded (module import time). The router
        build uses a Lock + double-check so exactly one thread builds it,
        even when several workers take their first request at once.
    """

    __slots__ = (
        "_base_path",
        "_build_lock",
        "_built",
        "_error_handler",
        "_not_found_handler",
        "_router",
        "_routes",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        router: Router[Route] | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router: Router[Route] = router if router is not None else SmartRouter()
        self._routes: list[Route] = []
        self._base_path = "/"
        self._error_handler: ErrorHandler | None = None
        self._not_found_handler: NotFoundHandler = default_not_found
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._built = False
        self._build_lock = threading.Lock()

    # -- Route registration --

    def get(self, path: str, *handlers: Handler) -> Any:
        return self._register("GET", path, handlers)

    def post(self, path: str, *handlers: Handler) -> Any:
        return self._register("POST", path, handlers)

    def put(self, path: str, *handlers: Handler) -> Any:
        return self._register("PUT", path, handlers)

    def delete(self, path: str, *handlers: Handler) -> Any:
        return self._register("DELETE", path, handlers)

    def options(self, path: str, *handlers: Handler) -> Any:
        return self._register("OPTIONS", path, handlers)

    def patch(self, path: str, *handlers: Handler) -> Any:
        return self._register("PATCH", path, handlers)

    def all(self, path: str, *handlers: Handler) -> Any:
        return self._register(METHOD_ALL, path, handlers)

    def on(self, methods: str | Sequence[str], paths: str | Sequence[str], *handlers: Handler) -> App:
        """Register *handlers* for every method and path combination."""
        for path in [paths] if isinstance(paths, str) else paths:
            for method in [methods] if isinstance(methods, str) else methods:
                for handler in handlers:
                    self._add_route(method, path, handler)
        return self

    def use(self, *args: Any) -> App:
        """Register middleware for every method.

        ``app.use(mw)`` covers every path; ``app.use("/api/*", mw)`` only
        paths under ``/api``.
        """
        path = "*"
        handlers = list(args)
        if handlers and isinstance(handlers[0], str):
            path = handlers.pop(0)
        for handler in handlers:
            self._add_route(METHOD_ALL, path, handler)
        return self

    def _register(self, method: str, path: str, handlers: tuple[Handler, ...]) -> Any:
        """Register now, or return a decorator when no handler was given."""
        if not handlers:

            def decorator(func: Handler) -> Handler:
                self._add_route(method, path, func)
                return func

            return decorator
        for handler in handlers:
            self._add_route(method, path, handler)
        return self

    def _add_route(self, method: str, path: str, handler: Handler) -> None:
        method = method.upper()
        full_path = merge_path(self._base_path, path)
        route = Route(method, full_path, handler, base_path=self._base_path)
        self._router.add(method, full_path, route)
        self._routes.append(route)

    @property
    def routes(self) -> tuple[Route, ...]:
        """Every registered route, in registration order."""
        return tuple(self._routes)

    @property
    def router(self) -> Router[Route]:
        return self._router

    # -- Composition --

    def base_path(self, path: str) -> App:
        """A view of this app whose registrations are prefixed with *path*.

        The view shares the router, routes and hooks with this app.
        """
        clone = App.__new__(App)
        for slot in App.__slots__:
            object.__setattr__(clone, slot, getattr(self, slot))
        clone._base_path = merge_path(self._base_path, path)
        return clone

    def route(self, path: str, app: App) -> App:
        """Mount every route of *app* under *path*.

        When *app* has its own error handler, errors raised by its
        handlers are answered by that handler, not this app's.
        """
        mounted = self.base_path(path)
        sub_error = app._error_handler
        for r in app._routes:
            handler = r.handler if sub_error is None else _guard(r.handler, sub_error)
            mounted._add_route(r.method, r.path, handler)
        return self

    def not_found(self, handler: NotFoundHandler) -> NotFoundHandler:
        self._not_found_handler = handler
        return handler

    def on_error(self, handler: ErrorHandler) -> ErrorHandler:
        self._error_handler = handler
        return handler

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook run at ASGI lifespan startup, in order."""
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook run at ASGI lifespan shutdown, in order."""
        self._shutdown_hooks.append(func)
        return func

    # -- Errors --

    def _default_error(self, err: Exception, ctx: Context) -> Response:
        get_response = getattr(err, "get_response", None)
        if callable(get_response):
            res = get_response()
            built = ctx.new_response(res.body, res.status, _header_values(res))
            return replace(built, cookies=(*built.cookies, *res.cookies))
        logger.error(
            "Unhandled error on %s %s",
            ctx.req.method,
            ctx.req.path,
            exc_info=err,
        )
        body = "Internal Server Error"
        if self.config.debug:
            body = f"{body}\n\n{type(err).__name__}: {err}"
        return ctx.text(body, 500)

    async def _handle_error(self, err: Exception, ctx: Context) -> Response:
        if self._error_handler is None:
            return self._default_error(err, ctx)
        try:
            return await invoke(self._error_handler, err, ctx)
        except Exception as handler_err:
            logger.exception("Error handler failed while handling %r", err)
            return self._default_error(handler_err, ctx)

    # -- Dispatch --

    async def dispatch(self, request: Request, env: Any = None) -> Response:
        """Route *request* through the matched handler chain.

        Always returns a response: errors go through the error handler
        and an empty match through the not-found handler.
        """
        self._ensure_built()
        if request.method == "HEAD":
            response = await self._dispatch(request, env, "GET")
            length = response.header("content-length") or str(len(response.body_bytes))
            return replace(response.replace_header("Content-Length", length), body=b"")
        return await self._dispatch(request, env, request.method)

    async def _dispatch(self, request: Request, env: Any, method: str) -> Response:
        match = self._router.match(method, request.path)
        request.bind(match)
        ctx = Context(request, env, not_found_handler=self._not_found_handler)
        token = context_var.set(ctx)
        try:
            if len(match.handlers) == 1:
                return await self._dispatch_one(ctx, match.handlers[0].handler.handler)

            composed = compose(match.handlers, self._handle_error, self._not_found_handler)
            try:
                await composed(ctx)
                if not ctx.finalized:
                    raise ContextNotFinalizedError()
            except Exception as err:
                return await self._handle_error(err, ctx)
            return ctx.res
        finally:
            context_var.reset(token)

    async def _dispatch_one(self, ctx: Context, handler: Handler) -> Response:
        called = False

        async def fall_through() -> Context:
            nonlocal called
            if called:
                raise NextCalledTwiceError()
            called = True
            ctx.res = await invoke(self._not_found_handler, ctx)
            return ctx

        try:
            res = await invoke(handler, ctx, fall_through)
        except Exception as err:
            return await self._handle_error(err, ctx)
        if isinstance(res, Response):
            return res
        if ctx.finalized:
            return ctx.res
        return await invoke(self._not_found_handler, ctx)

    def _ensure_built(self) -> None:
        """Thread-safe router build with double-check locking."""
        if self._built:
            return
        with self._build_lock:
            if self._built:
                return
            result = self._router.build()
            if isinstance(result, UnsupportedPath):
                raise UnsupportedPathError(result.path, result.reason)
            logger.debug("%d routes served by %s", len(self._routes), self._router.name)
            self._built = True

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point for HTTP and lifespan scopes."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        if scope["type"] != "http":
            logger.debug("Ignoring unsupported scope type %r", scope["type"])
            return

        request = Request.from_asgi(
            scope,
            receive,
            strict=self.config.strict,
            max_body=self.config.max_content_length,
        )
        response = await self.dispatch(request, env=scope.get("state"))
        await send_response(response, send)

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Builds the router at startup so an unroutable route set fails the
        deployment instead of the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_built()
                    for hook in self._startup_hooks:
                        await invoke(hook)
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await send({"type": "lifespan.shutdown.complete"})
                return


def _guard(handler: Handler, on_error: ErrorHandler) -> Handler:
    """Wrap a mounted handler so *on_error* answers what it raises."""
    guarded = compose((), on_error)

    async def mounted(ctx: Context, next: Any) -> Response | None:  # noqa: A002
        async def run(c: Context, _next: Any) -> Any:
            return await invoke(handler, c, next)

        await guarded(ctx, run)
        return ctx.res if ctx.finalized else None

    return mounted
