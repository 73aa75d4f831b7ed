"""Shared type aliases used across trellis modules."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trellis.context import Context
    from trellis.http.response import Response

# The continuation handed to every handler: runs the rest of the chain
type Next = Callable[[], Awaitable[Any]]

# Route handler or middleware: (ctx, next) -> Response | None, sync or async
type Handler = Callable[[Context, Next], Any]

# Error handler: (error, ctx) -> Response
type ErrorHandler = Callable[[Exception, Context], Response | Awaitable[Response]]

# Not-found handler: (ctx) -> Response
type NotFoundHandler = Callable[[Context], Response | Awaitable[Response]]
