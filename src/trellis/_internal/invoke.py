"""Invoke helpers: call sync or async handlers uniformly.

Trellis handlers and middleware can be ``def`` or ``async def``. Any code
that calls a user-provided callable goes through this helper so the
sync/async check lives in exactly one place.

Usage::

    from trellis._internal.invoke import invoke

    result = await invoke(handler, ctx, next)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable.

    Works with both sync and async callables::

        def health(ctx, next):
            return ctx.json({"status": "ok"})

        async def me(ctx, next):
            user = await load_user(ctx.get("user"))
            return ctx.json(user)
    """
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
