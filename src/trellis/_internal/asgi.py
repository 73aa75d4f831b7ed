"""ASGI type aliases and scope helpers.

Internal only: users interact with ``Request`` and ``Context``.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# Raw ASGI types (matching the spec)
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


def raw_path(scope: Scope) -> str:
    """The undecoded request path, falling back to the decoded ``path``.

    Routing needs the escaped form so that ``%2F`` inside a parameter is
    not mistaken for a segment separator.
    """
    raw = scope.get("raw_path")
    if raw:
        path = raw.decode("latin-1")
        # Some servers leave the query string on raw_path
        return path.partition("?")[0]
    return scope["path"]
