"""Route, handler entry and match result types shared by the routers."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from trellis.routing.paths import is_wildcard, wildcard_pattern

METHOD_ALL = "ALL"
METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH")


@dataclass(frozen=True, slots=True)
class Route:
    """A registered ``(method, path, handler)``.

    ``path`` already includes ``base_path``. Wildcard routes keep a compiled
    pattern so the text consumed by ``*`` can be read back as a parameter.
    """

    method: str
    path: str
    handler: Callable[..., Any]
    base_path: str = "/"
    wildcard: re.Pattern[str] | None = field(init=False, default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if is_wildcard(self.path):
            object.__setattr__(self, "wildcard", wildcard_pattern(self.path))


@dataclass(frozen=True, slots=True)
class HandlerEntry[T]:
    """One matched handler and where its parameters come from.

    ``params`` maps a parameter name to a capture group index when the
    owning ``MatchResult`` carries ``captures``, and to the raw value
    otherwise.
    """

    handler: T
    params: Mapping[str, int | str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MatchResult[T]:
    """Ordered handler chain plus the source of parameter values."""

    handlers: tuple[HandlerEntry[T], ...] = ()
    captures: re.Match[str] | None = None

    def __len__(self) -> int:
        return len(self.handlers)

    def raw_param(self, index: int, key: str) -> str | None:
        """The undecoded value of *key* for the handler at *index*."""
        source = self.handlers[index].params.get(key)
        if source is None:
            return None
        if self.captures is not None and isinstance(source, int):
            return self.captures.group(source)
        return str(source)

    def raw_params(self, index: int) -> dict[str, str]:
        """All undecoded parameters for the handler at *index*."""
        values: dict[str, str] = {}
        for key in self.handlers[index].params:
            value = self.raw_param(index, key)
            if value is not None:
                values[key] = value
        return values


EMPTY_MATCH: MatchResult[Any] = MatchResult()


@dataclass(frozen=True, slots=True)
class Ready:
    """Build succeeded; the router can serve ``match``."""


@dataclass(frozen=True, slots=True)
class UnsupportedPath:
    """Build failed: *path* cannot be represented by this router."""

    path: str
    reason: str = ""


type BuildResult = Ready | UnsupportedPath

READY = Ready()


class Router[T](Protocol):
    """What the app needs from a router: register, build once, match."""

    name: str

    def add(self, method: str, path: str, handler: T) -> None: ...

    def build(self) -> BuildResult: ...

    def match(self, method: str, path: str) -> MatchResult[T]: ...
