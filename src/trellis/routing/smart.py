"""Strategy selector: pick the first router that accepts the route set.

Routes are buffered until the first ``match``. Then, under a lock, the
buffer is replayed into each candidate router in order and the first one
whose ``build`` returns ``Ready`` is bound for the rest of the process.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from trellis.errors import ConfigurationError, MatcherAlreadyBuiltError
from trellis.routing.regexp import RegExpRouter
from trellis.routing.route import READY, BuildResult, MatchResult, Router, UnsupportedPath
from trellis.routing.trie import TrieRouter

logger = logging.getLogger("trellis.routing")


@dataclass(slots=True)
class Buffering:
    routes: list[tuple[str, str, Any]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Bound:
    router: Router[Any]


class SmartRouter[T]:
    """Router that delegates to the first candidate able to serve every route.

    Defaults to ``RegExpRouter`` with ``TrieRouter`` as fallback::

        router = SmartRouter()
        router.add("GET", "/users/:id", show_user)
        router.match("GET", "/users/42")
        router.name  # "SmartRouter + RegExpRouter"
    """

    __slots__ = ("_candidates", "_lock", "_state", "name")

    def __init__(self, routers: list[Router[T]] | None = None) -> None:
        self._candidates: list[Router[T]] = (
            routers if routers is not None else [RegExpRouter(), TrieRouter()]
        )
        self._state: Buffering | Bound = Buffering()
        self._lock = threading.Lock()
        self.name = "SmartRouter"

    def add(self, method: str, path: str, handler: T) -> None:
        state = self._state
        if isinstance(state, Bound):
            raise MatcherAlreadyBuiltError()
        state.routes.append((method, path, handler))

    @property
    def active_router(self) -> Router[T]:
        state = self._state
        if not isinstance(state, Bound):
            raise ConfigurationError("No active router has been determined yet.")
        return state.router

    def build(self) -> BuildResult:
        """Select and bind a candidate now. Fatal if none accepts the routes."""
        if isinstance(self._state, Bound):
            return READY
        with self._lock:
            state = self._state
            if isinstance(state, Bound):
                return READY
            for candidate in self._candidates:
                for method, path, handler in state.routes:
                    candidate.add(method, path, handler)
                result = candidate.build()
                if isinstance(result, UnsupportedPath):
                    logger.debug(
                        "%s skipped: %s %s",
                        candidate.name,
                        result.path,
                        result.reason,
                    )
                    continue
                self._state = Bound(candidate)
                self.name = f"SmartRouter + {candidate.name}"
                logger.debug("Routing %d routes with %s", len(state.routes), candidate.name)
                return READY
        raise ConfigurationError("Fatal error: no router accepts the registered routes")

    def match(self, method: str, path: str) -> MatchResult[T]:
        state = self._state
        if not isinstance(state, Bound):
            self.build()
            state = self._state
            assert isinstance(state, Bound)
        return state.router.match(method, path)
