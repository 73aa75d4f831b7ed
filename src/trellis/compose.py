"""Middleware composer.

``compose`` folds an ordered handler chain into one callable. Each handler
receives ``(ctx, next)``; awaiting ``next()`` runs the rest of the chain and
gives back the context, so code after the ``await`` sees the downstream
response on ``ctx.res``::

    async def timing(ctx, next):
        start = time.perf_counter()
        await next()
        ctx.header("X-Response-Time", f"{time.perf_counter() - start:.3f}")
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from trellis._internal.invoke import invoke
from trellis._internal.types import ErrorHandler, NotFoundHandler
from trellis.context import Context
from trellis.errors import NextCalledTwiceError
from trellis.http.response import Response
from trellis.routing.route import HandlerEntry, Route

type Composed = Callable[..., Awaitable[Context]]


def compose(
    middleware: Sequence[HandlerEntry[Route]],
    on_error: ErrorHandler | None = None,
    on_not_found: NotFoundHandler | None = None,
) -> Composed:
    """Compose *middleware* into ``async (ctx, next=None) -> ctx``.

    - A ``Response`` returned by a handler becomes ``ctx.res`` unless the context was
      already finalized.
    - An exception from any handler goes to *on_error* (its response
      replaces ``ctx.res`` unconditionally); without *on_error* it
      propagates.
    - Running off the end of the chain calls the outer *next*, or
      *on_not_found* when there is none and nothing has responded.
      A chain that stops early without responding also gets
      *on_not_found*; later handlers do not run.
    - Calling ``next()`` twice from one handler raises
      ``NextCalledTwiceError``.
    """

    async def composed(ctx: Context, next: Any = None) -> Context:  # noqa: A002
        index = -1

        async def dispatch(i: int) -> Context:
            nonlocal index
            if i <= index:
                raise NextCalledTwiceError()
            index = i

            handler: Any
            if i < len(middleware):
                handler = middleware[i].handler.handler
                ctx.req.route_index = i
            else:
                handler = next if i == len(middleware) else None

            res = None
            is_error = False
            if handler is not None:
                try:
                    res = await invoke(handler, ctx, lambda: dispatch(i + 1))
                except Exception as err:
                    if on_error is None:
                        raise
                    ctx.error = err
                    res = await invoke(on_error, err, ctx)
                    is_error = True
            elif not ctx.finalized and on_not_found is not None:
                res = await invoke(on_not_found, ctx)

            if isinstance(res, Response) and (not ctx.finalized or is_error):
                ctx.res = res
            return ctx

        await dispatch(0)
        if next is None and not ctx.finalized and on_not_found is not None:
            # A handler stopped the chain without responding
            res = await invoke(on_not_found, ctx)
            if isinstance(res, Response):
                ctx.res = res
        return ctx

    return composed
