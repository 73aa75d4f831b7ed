"""CORS middleware.

Answers ``OPTIONS`` preflight requests with 204 and adds the CORS headers
to every other response on the covered paths.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from trellis.context import Context
from trellis.http.response import Response

type OriginRule = str | Sequence[str] | Callable[[str, Context], str | None]


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    ``origin`` is ``"*"``, one allowed origin, a list of allowed origins,
    or a callable ``(origin, ctx) -> allowed origin | None``.
    """

    origin: OriginRule = "*"
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "PUT", "POST", "DELETE", "PATCH")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    credentials: bool = False
    max_age: int | None = None

    def allowed_origin(self, origin: str, ctx: Context) -> str | None:
        rule = self.origin
        if isinstance(rule, str):
            if rule == "*":
                return rule
            return origin if origin == rule else None
        if callable(rule):
            return rule(origin, ctx)
        return origin if origin in rule else None


def cors(config: CORSConfig | None = None, **options: Any) -> Callable[..., Any]:
    """Build CORS middleware.

    Usage::

        app.use("/*", cors(
            origin="*",
            allow_methods=("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"),
            allow_headers=("Content-Type", "Authorization"),
        ))
    """
    cfg = config or CORSConfig(**options)
    wildcard = cfg.origin == "*"

    async def cors_middleware(ctx: Context, next: Any) -> Response | None:  # noqa: A002
        # Headers go on ctx.res so they survive whatever response comes next
        ctx.res  # noqa: B018
        allow_origin = cfg.allowed_origin(ctx.req.headers.get("origin") or "", ctx)
        if allow_origin:
            ctx.header("Access-Control-Allow-Origin", allow_origin)
        if cfg.credentials:
            ctx.header("Access-Control-Allow-Credentials", "true")
        if cfg.expose_headers:
            ctx.header("Access-Control-Expose-Headers", ",".join(cfg.expose_headers))

        if ctx.req.method == "OPTIONS":
            if not wildcard:
                ctx.header("Vary", "Origin")
            if cfg.max_age is not None:
                ctx.header("Access-Control-Max-Age", str(cfg.max_age))
            if cfg.allow_methods:
                ctx.header("Access-Control-Allow-Methods", ",".join(cfg.allow_methods))
            headers: Sequence[str] = cfg.allow_headers
            if not headers:
                requested = ctx.req.headers.get("access-control-request-headers")
                if requested:
                    headers = [h.strip() for h in requested.split(",")]
            if headers:
                ctx.header("Access-Control-Allow-Headers", ",".join(headers))
                ctx.header("Vary", "Access-Control-Request-Headers", append=True)
            ctx.header("Content-Length")
            ctx.header("Content-Type")
            return Response(b"", status=204, content_type=None, headers=ctx.res.headers)

        await next()
        if not wildcard:
            ctx.header("Vary", "Origin", append=True)
        return None

    return cors_middleware
