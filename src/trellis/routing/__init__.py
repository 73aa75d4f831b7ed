"""Routing: path patterns to ordered handler chains.

Three routers share one interface (``add``, ``build``, ``match``):
``RegExpRouter`` compiles each method's routes into a single regular
expression, ``TrieRouter`` walks a segment trie and accepts any pattern,
and ``SmartRouter`` (the default) uses the first of them that accepts the
registered route set.
"""

from trellis.routing.regexp import RegExpRouter
from trellis.routing.route import (
    METHOD_ALL,
    METHODS,
    HandlerEntry,
    MatchResult,
    Ready,
    Route,
    Router,
    UnsupportedPath,
)
from trellis.routing.smart import SmartRouter
from trellis.routing.trie import TrieRouter

__all__ = [
    "METHODS",
    "METHOD_ALL",
    "HandlerEntry",
    "MatchResult",
    "Ready",
    "RegExpRouter",
    "Route",
    "Router",
    "SmartRouter",
    "TrieRouter",
    "UnsupportedPath",
]
