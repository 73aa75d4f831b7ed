"""Trellis: an ASGI routing and middleware engine.

Routes map ``(method, path pattern)`` to ordered handler chains; the
chain for a request runs as an onion of ``(ctx, next)`` handlers.

Basic usage::

    from trellis import App

    app = App()

    @app.get("/users/:id")
    async def show_user(ctx, next):
        return ctx.json({"id": ctx.req.param("id")})

Serve ``app`` with any ASGI 3.0 server.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "Forbidden",
    "HTTPError",
    "NotFound",
    "Request",
    "Response",
    "TrellisError",
    "Unauthorized",
    "compose",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import trellis`` fast while providing a clean top-level API.
    """
    if name == "App":
        from trellis.app import App

        return App

    if name == "AppConfig":
        from trellis.config import AppConfig

        return AppConfig

    if name == "Request":
        from trellis.http.request import Request

        return Request

    if name == "Response":
        from trellis.http.response import Response

        return Response

    if name in ("Context", "get_context"):
        from trellis import context as _ctx

        return getattr(_ctx, name)

    if name == "compose":
        from trellis.compose import compose

        return compose

    if name in (
        "ConfigurationError",
        "Forbidden",
        "HTTPError",
        "NotFound",
        "TrellisError",
        "Unauthorized",
    ):
        from trellis import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
