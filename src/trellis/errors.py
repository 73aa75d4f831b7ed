"""Trellis exception hierarchy.

Shared across the routers, the composer, the context and the app so
every module raises and catches the same types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trellis.http.response import Response


class TrellisError(Exception):
    """Base for all trellis-specific errors."""


class ConfigurationError(TrellisError):
    """Raised when the app or router configuration is invalid.

    Fatal: raised at startup or on the first request, never recovered.
    """


class UnsupportedPathError(TrellisError):
    """A route pattern cannot be represented by a router strategy.

    Raised by ``RegExpRouter.match`` when used on its own. ``SmartRouter``
    consumes the equivalent ``UnsupportedPath`` build result instead and
    moves on to the next strategy.
    """

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        detail = f"Unsupported path: {path!r}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)


class MatcherAlreadyBuiltError(ConfigurationError):
    """A route was registered after the matcher was built."""

    def __init__(self) -> None:
        super().__init__("Can not add a route since the matcher is already built.")


class NextCalledTwiceError(TrellisError):
    """A handler invoked its ``next`` continuation more than once."""

    def __init__(self) -> None:
        super().__init__("next() called multiple times")


class ContextNotFinalizedError(TrellisError):
    """The handler chain completed without producing a response."""

    def __init__(self) -> None:
        super().__init__(
            "Context is not finalized. Did you forget to return a Response "
            "or 'await next()'?"
        )


class BodyConsumedError(TrellisError):
    """The request body was streamed and cannot be read again."""

    def __init__(self) -> None:
        super().__init__(
            "Request body was already consumed via stream() and was not cached."
        )


@dataclass(frozen=True, slots=True)
class HTTPError(TrellisError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers and middleware. The default error handler turns it
    into a response through ``get_response()``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)

    def get_response(self) -> Response:
        """The response the router emits for this error."""
        from trellis.http.response import Response

        return Response(
            body=self.detail or f"Error {self.status}",
            status=self.status,
            headers=self.headers,
        )


class NotFound(HTTPError):  # noqa: N818
    """404: nothing handled the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818
    """401: missing or invalid credentials."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status=401, detail=detail, headers=(("WWW-Authenticate", "Bearer"),))


class Forbidden(HTTPError):  # noqa: N818
    """403: authenticated but not allowed."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818
    """413: request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, limit: int) -> None:
        super().__init__(status=413, detail=f"Request body exceeds {limit} bytes")
