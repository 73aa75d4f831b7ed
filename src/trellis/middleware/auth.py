"""Bearer token authentication and role checks.

``bearer_auth`` verifies ``Authorization: Bearer <token>`` and stores the
token's identity payload on the context as ``ctx.get("user")``.
``require_role`` then restricts a route to one role. Both answer with a
JSON ``{"error": ...}`` body so API clients get the same shape for every
auth failure::

    signer = TokenSigner(config.secret_key)
    app.use("/api/clients/*", bearer_auth(signer))
    app.get("/api/users", bearer_auth(signer), require_role("admin"), list_users)
"""

import logging
from collections.abc import Callable
from typing import Any

from trellis.context import Context
from trellis.http.response import Response
from trellis.security.tokens import TokenSigner, extract_token

logger = logging.getLogger("trellis.security")

USER_KEY = "user"


def bearer_auth(signer: TokenSigner, *, key: str = USER_KEY) -> Callable[..., Any]:
    """Middleware that rejects requests without a valid bearer token."""

    async def authenticate(ctx: Context, next: Any) -> Response | None:  # noqa: A002
        token = extract_token(ctx.req.headers)
        if token is None:
            logger.info("No bearer token on %s %s", ctx.req.method, ctx.req.path)
            return ctx.json({"error": "Unauthorized - No token provided"}, 401)

        payload = signer.verify(token)
        if payload is None:
            logger.info("Invalid bearer token on %s %s", ctx.req.method, ctx.req.path)
            return ctx.json({"error": "Unauthorized - Invalid or expired token"}, 401)

        ctx.set(key, payload)
        await next()
        return None

    return authenticate


def require_role(role: str, *, key: str = USER_KEY) -> Callable[..., Any]:
    """Middleware that lets through only identities with *role*.

    Must run after ``bearer_auth``.
    """

    async def check_role(ctx: Context, next: Any) -> Response | None:  # noqa: A002
        user = ctx.get(key)
        if user is None:
            return ctx.json({"error": "Unauthorized"}, 401)
        if user.get("role") != role:
            logger.info("Role %r required, got %r", role, user.get("role"))
            return ctx.json({"error": f"Forbidden - {role.capitalize()} access required"}, 403)
        await next()
        return None

    return check_role
