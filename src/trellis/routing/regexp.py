"""Compiled-regex router.

Routes are only recorded by ``add``. The first ``match`` (or an explicit
``build``) compiles one matcher per HTTP method seen, plus one for the
``ALL`` pseudo-method, and the router stays built from then on:

- static paths go into a dict, answered in O(1);
- every other path is inserted into a ``Trie`` and compiled into one
  regular expression per method;
- wildcard routes (``*``, ``/api/*``) are attached, in registration order,
  to the chain of every path they cover.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from trellis.errors import MatcherAlreadyBuiltError, UnsupportedPathError
from trellis.routing.compiler import Compiled, Trie
from trellis.routing.paths import (
    check_optional_parameter,
    is_static,
    is_wildcard,
    param_names,
    wildcard_pattern,
)
from trellis.routing.route import (
    EMPTY_MATCH,
    METHOD_ALL,
    READY,
    BuildResult,
    HandlerEntry,
    MatchResult,
    UnsupportedPath,
)


class BuildState(Enum):
    UNBUILT = "unbuilt"
    BUILT = "built"


@dataclass(frozen=True, slots=True)
class _Registration[T]:
    seq: int
    method: str
    path: str
    handler: T
    names: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class _Matcher[T]:
    """The compiled artifact for one method. Immutable once built."""

    static: dict[str, tuple[HandlerEntry[T], ...]]
    compiled: Compiled | None
    chains: dict[int, tuple[HandlerEntry[T], ...]]

    def match(self, path: str) -> MatchResult[T]:
        chain = self.static.get(path)
        if chain is not None:
            return MatchResult(chain)
        if self.compiled is None:
            return EMPTY_MATCH
        m = self.compiled.regex.fullmatch(path)
        if m is None:
            return EMPTY_MATCH
        # The terminal marker is always the last group to close
        chain = self.chains.get(m.lastindex or 0)
        if chain is None:
            marker = next(g for g in self.chains if m.group(g) is not None)
            chain = self.chains[marker]
        return MatchResult(chain, m)


class RegExpRouter[T]:
    """Router that resolves each request with one dict lookup or one regex.

    Usage::

        router = RegExpRouter()
        router.add("GET", "/users/:id", show_user)
        result = router.match("GET", "/users/42")
        result.raw_param(0, "id")  # "42"
    """

    name = "RegExpRouter"

    __slots__ = ("_lock", "_matchers", "_registrations", "_state")

    def __init__(self) -> None:
        self._registrations: list[_Registration[T]] = []
        self._matchers: dict[str, _Matcher[T]] = {}
        self._state = BuildState.UNBUILT
        self._lock = threading.Lock()

    def add(self, method: str, path: str, handler: T) -> None:
        if self._state is BuildState.BUILT:
            raise MatcherAlreadyBuiltError()
        if path == "/*":
            path = "*"
        seq = len(self._registrations)
        for expanded in check_optional_parameter(path) or [path]:
            self._registrations.append(
                _Registration(seq, method, expanded, handler, param_names(expanded))
            )

    def build(self) -> BuildResult:
        """Compile every method's matcher. Idempotent once it succeeds."""
        with self._lock:
            if self._state is BuildState.BUILT:
                return READY
            methods = {METHOD_ALL} | {r.method for r in self._registrations}
            matchers: dict[str, _Matcher[T]] = {}
            for method in methods:
                registrations = [r for r in self._registrations if r.method in (method, METHOD_ALL)]
                result = _build_matcher(registrations)
                if isinstance(result, UnsupportedPath):
                    return result
                matchers[method] = result
            self._matchers = matchers
            self._state = BuildState.BUILT
            return READY

    def match(self, method: str, path: str) -> MatchResult[T]:
        if self._state is BuildState.UNBUILT:
            result = self.build()
            if isinstance(result, UnsupportedPath):
                raise UnsupportedPathError(result.path, result.reason)
        matcher = self._matchers.get(method) or self._matchers[METHOD_ALL]
        return matcher.match(path)


def _build_matcher[T](registrations: list[_Registration[T]]) -> _Matcher[T] | UnsupportedPath:
    own: dict[str, list[_Registration[T]]] = {}
    wildcards: list[tuple[_Registration[T], Any, Any]] = []
    for reg in registrations:
        if is_wildcard(reg.path):
            wildcards.append(
                (reg, wildcard_pattern(reg.path), wildcard_pattern(reg.path, constrained=False))
            )
        own.setdefault(reg.path, []).append(reg)

    static: dict[str, tuple[HandlerEntry[T], ...]] = {}
    trie = Trie()
    chains: dict[int, tuple[HandlerEntry[T], ...]] = {}
    dynamic: list[tuple[str, list[tuple[str, int]]]] = []

    for path, regs in own.items():
        if is_static(path):
            static[path] = _static_chain(path, regs, wildcards)
            continue
        assoc = trie.insert(path, len(dynamic))
        if isinstance(assoc, UnsupportedPath):
            return assoc
        dynamic.append((path, assoc))

    if not dynamic:
        return _Matcher(static, None, {})

    compiled = trie.build()
    for marker, index in compiled.terminals.items():
        path, assoc = dynamic[index]
        groups = [compiled.params[slot] for _, slot in assoc]
        by_name = {name: compiled.params[slot] for name, slot in assoc}
        entries: list[tuple[int, HandlerEntry[T]]] = [
            (reg.seq, HandlerEntry(reg.handler, by_name)) for reg in own[path] if not is_wildcard(reg.path)
        ]
        for reg, _, relaxed in wildcards:
            if reg.path == path or relaxed.fullmatch(path):
                # A covering wildcard shares this route's leading parameter slots
                entries.append((reg.seq, HandlerEntry(reg.handler, dict(zip(reg.names, groups)))))
        entries.sort(key=lambda pair: pair[0])
        chains[marker] = tuple(entry for _, entry in entries)

    return _Matcher(static, compiled, chains)


def _static_chain[T](
    path: str,
    regs: list[_Registration[T]],
    wildcards: list[tuple[_Registration[T], Any, Any]],
) -> tuple[HandlerEntry[T], ...]:
    entries: list[tuple[int, HandlerEntry[T]]] = [
        (reg.seq, HandlerEntry(reg.handler)) for reg in regs
    ]
    for reg, strict, _ in wildcards:
        m = strict.fullmatch(path)
        if m is None:
            continue
        params = {name: m.group(f"p{i}") for i, name in enumerate(reg.names)}
        entries.append((reg.seq, HandlerEntry(reg.handler, params)))
    entries.sort(key=lambda pair: pair[0])
    return tuple(entry for _, entry in entries)
