"""Segment-trie router.

Accepts every path shape, including the ones the compiled-regex router
rejects (ambiguous siblings, capturing constraints, duplicate patterns).
Matching walks the trie one segment at a time and collects every route
that matches, ordered by registration.
"""

import re
from dataclasses import dataclass

from trellis.routing.paths import (
    check_optional_parameter,
    is_static,
    is_wildcard,
    parse_param,
    split_path,
    split_routing_path,
)
from trellis.routing.route import (
    EMPTY_MATCH,
    METHOD_ALL,
    READY,
    BuildResult,
    HandlerEntry,
    MatchResult,
)

# (child key, parameter name, True for any segment or a compiled constraint)
type ParamPattern = tuple[str, str, bool | re.Pattern[str]]
type Pattern = str | ParamPattern


@dataclass(frozen=True, slots=True)
class _HandlerSet[T]:
    handler: T
    possible_keys: tuple[str, ...]
    score: int
    path: str


class _Node[T]:
    __slots__ = ("children", "methods", "patterns")

    def __init__(self) -> None:
        self.children: dict[str, _Node[T]] = {}
        # One {method: handler set} per route that ends here
        self.methods: list[dict[str, _HandlerSet[T]]] = []
        self.patterns: list[Pattern] = []

    def handler_sets(
        self, method: str, params: dict[str, str], out: list[tuple[_HandlerSet[T], dict[str, str]]]
    ) -> None:
        for by_method in self.methods:
            handler_set = by_method.get(method) or by_method.get(METHOD_ALL)
            if handler_set is None:
                continue
            values = {k: params[k] for k in handler_set.possible_keys if k in params}
            out.append((handler_set, values))


class TrieRouter[T]:
    """Router backed by a segment trie. Never refuses a path.

    Routes may be added at any time; there is nothing to build.
    """

    name = "TrieRouter"

    __slots__ = ("_order", "_pattern_cache", "_root")

    def __init__(self) -> None:
        self._root: _Node[T] = _Node()
        self._order = 0
        self._pattern_cache: dict[str, Pattern] = {}

    def add(self, method: str, path: str, handler: T) -> None:
        for expanded in check_optional_parameter(path) or [path]:
            self._insert(method, expanded, handler)

    def build(self) -> BuildResult:
        return READY

    def _pattern(self, label: str, following: str | None) -> Pattern | None:
        """How segment *label* matches, given the segment after it.

        A constrained parameter followed by a literal segment compiles to a
        lookahead on that literal, so the constraint may span ``/``.
        """
        if label == "*":
            return "*"
        parsed = parse_param(label)
        if parsed is None:
            return None
        cache_key = f"{label}#{following}"
        cached = self._pattern_cache.get(cache_key)
        if cached is not None:
            return cached
        name, constraint = parsed
        pattern: Pattern
        if constraint is None:
            pattern = (label, name, True)
        elif following and following[0] not in ":*":
            lookahead = re.compile(f"(?:{constraint})(?=/{re.escape(following)})", re.DOTALL)
            pattern = (cache_key, name, lookahead)
        else:
            pattern = (label, name, re.compile(f"(?:{constraint})\\Z", re.DOTALL))
        self._pattern_cache[cache_key] = pattern
        return pattern

    def _insert(self, method: str, path: str, handler: T) -> None:
        self._order += 1
        node = self._root
        parts = split_routing_path(path)
        possible_keys: list[str] = []
        for i, part in enumerate(parts):
            following = parts[i + 1] if i + 1 < len(parts) else None
            pattern = self._pattern(part, following)
            key = pattern[0] if isinstance(pattern, tuple) else part
            child = node.children.get(key)
            if child is None:
                child = node.children[key] = _Node()
                if pattern is not None:
                    node.patterns.append(pattern)
            if isinstance(pattern, tuple) and pattern[1] not in possible_keys:
                possible_keys.append(pattern[1])
            node = child
        node.methods.append(
            {method: _HandlerSet(handler, tuple(possible_keys), self._order, path)}
        )

    def match(self, method: str, path: str) -> MatchResult[T]:
        found: list[tuple[_HandlerSet[T], dict[str, str]]] = []
        current: list[tuple[_Node[T], dict[str, str]]] = [(self._root, {})]
        # Nodes reached by a constraint that spanned several segments
        queue: list[list[tuple[_Node[T], dict[str, str]]]] = []
        parts = split_path(path)

        for i, part in enumerate(parts):
            is_last = i == len(parts) - 1
            upcoming: list[tuple[_Node[T], dict[str, str]]] = []
            for node, node_params in current:
                next_node = node.children.get(part)
                if next_node is not None:
                    if is_last:
                        star = next_node.children.get("*")
                        if star is not None:
                            star.handler_sets(method, node_params, found)
                        next_node.handler_sets(method, node_params, found)
                    else:
                        upcoming.append((next_node, node_params))

                for pattern in node.patterns:
                    if pattern == "*":
                        star = node.children["*"]
                        star.handler_sets(method, node_params, found)
                        upcoming.append((star, node_params))
                        continue
                    key, name, matcher = pattern
                    if not part and matcher is True:
                        continue
                    child = node.children[key]
                    if matcher is not True:
                        rest = "/".join(parts[i:])
                        m = matcher.match(rest)
                        if m is not None:
                            params = {**node_params, name: m.group(0)}
                            child.handler_sets(method, params, found)
                            if m.end() == len(rest):
                                # A trailing wildcard also matches the bare path
                                star = child.children.get("*")
                                if star is not None:
                                    star.handler_sets(method, params, found)
                            if child.children:
                                depth = m.group(0).count("/")
                                while len(queue) <= depth:
                                    queue.append([])
                                queue[depth].append((child, params))
                            continue
                        if not matcher.match(part):
                            continue
                    params = {**node_params, name: part}
                    if is_last:
                        child.handler_sets(method, params, found)
                        star = child.children.get("*")
                        if star is not None:
                            star.handler_sets(method, params, found)
                    else:
                        upcoming.append((child, params))
            current = upcoming + (queue.pop(0) if queue else [])

        if not found:
            return EMPTY_MATCH
        return MatchResult(_finish(found))


def _finish[T](found: list[tuple[_HandlerSet[T], dict[str, str]]]) -> tuple[HandlerEntry[T], ...]:
    seen: set[int] = set()
    unique: list[tuple[_HandlerSet[T], dict[str, str]]] = []
    for handler_set, params in found:
        if id(handler_set) not in seen:
            seen.add(id(handler_set))
            unique.append((handler_set, params))
    unique.sort(key=lambda pair: pair[0].score)

    # An exact static route shadows parameterized routes on the same path
    if any(is_static(hs.path) for hs, _ in unique):
        unique = [(hs, p) for hs, p in unique if is_static(hs.path) or is_wildcard(hs.path)]
    return tuple(HandlerEntry(hs.handler, params) for hs, params in unique)
