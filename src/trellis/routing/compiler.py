"""Pattern compiler: a prefix trie of route tokens emitted as one regex.

Every dynamic route of a method is inserted into a shared trie keyed by
literal segment or parameter regex. ``Trie.build`` walks it once and emits
a single expression: sibling branches become one alternation, each
parameter becomes a capture group, and each route terminal becomes an
empty marker group ``()``. After one ``fullmatch`` the marker that took
part identifies the route and the other groups hold parameter text.

Structural conflicts are reported as ``UnsupportedPath`` values, never
raised, so a caller can fall back to another router.
"""

import re
from dataclasses import dataclass, field
from enum import IntEnum

from trellis.errors import UnsupportedPathError
from trellis.routing.route import UnsupportedPath
from trellis.routing.tokens import (
    ONLY_WILDCARD,
    Literal,
    Param,
    Token,
    Wildcard,
    tokenize,
)


class KeyKind(IntEnum):
    """Child key kinds, in the order alternatives are tried."""

    LITERAL = 0
    PARAM = 1
    WILDCARD = 2


type Key = tuple[KeyKind, str]


def specificity(key: Key) -> tuple[int, int, int, str]:
    """Sort key for sibling branches: most specific first.

    Literals before parameters, longer literals before shorter ones,
    constrained parameters before plain ``[^/]+`` labels, and wildcard
    branches last (tail wildcard before match-everything).
    """
    kind, text = key
    if kind is KeyKind.LITERAL:
        return (0, 0, -len(text), text)
    if kind is KeyKind.PARAM:
        return (1, 1 if text == "[^/]+" else 0, -len(text), text)
    return (2, 1 if text == ONLY_WILDCARD else 0, 0, text)


def _key(token: Token) -> Key:
    match token:
        case Literal(text=text):
            return (KeyKind.LITERAL, text)
        case Param() | Wildcard(greedy=False):
            return (KeyKind.PARAM, token.regex)
        case _:
            return (KeyKind.WILDCARD, token.regex)


class Node:
    """A trie node. Mutable while routes are inserted, read once by ``build``."""

    __slots__ = ("children", "index", "var_index")

    def __init__(self) -> None:
        self.children: dict[Key, Node] = {}
        # Route terminal index, when a route ends here
        self.index: int | None = None
        # Parameter slot, when a named parameter passes through here
        self.var_index: int | None = None

    def conflicts(self, key: Key) -> bool:
        """Would adding a new child under *key* make the alternation ambiguous?"""
        kind = key[0]
        if kind is KeyKind.WILDCARD:
            return False
        if kind is KeyKind.PARAM:
            return any(k[0] is not KeyKind.WILDCARD for k in self.children)
        return any(k[0] is KeyKind.PARAM for k in self.children)


@dataclass(slots=True)
class _Emitter:
    groups: int = 0
    terminals: dict[int, int] = field(default_factory=dict)
    params: dict[int, int] = field(default_factory=dict)

    def emit(self, node: Node) -> str:
        alternatives: list[str] = []
        if node.index is not None:
            self.groups += 1
            self.terminals[self.groups] = node.index
            alternatives.append("()")

        for key in sorted(node.children, key=specificity):
            child = node.children[key]
            kind, text = key
            if kind is KeyKind.LITERAL:
                head = "/" + re.escape(text)
            elif kind is KeyKind.PARAM:
                if child.var_index is not None:
                    self.groups += 1
                    self.params[child.var_index] = self.groups
                    head = f"/({text})"
                else:
                    head = f"/(?:{text})"
            else:
                head = text
            alternatives.append(head + self.emit(child))

        if len(alternatives) == 1:
            return alternatives[0]
        return "(?:" + "|".join(alternatives) + ")"


@dataclass(frozen=True, slots=True)
class Compiled:
    """Output of ``Trie.build``."""

    regex: re.Pattern[str]
    # marker group -> route index
    terminals: dict[int, int]
    # parameter slot -> capture group
    params: dict[int, int]


class Trie:
    """Shared prefix trie for the dynamic routes of one method."""

    __slots__ = ("_root", "_var_count")

    def __init__(self) -> None:
        self._root = Node()
        self._var_count = 0

    def insert(self, path: str, index: int) -> list[tuple[str, int]] | UnsupportedPath:
        """Insert *path* as route *index*.

        Returns ``(param name, slot)`` pairs in path order, or
        ``UnsupportedPath`` on a structural conflict.
        """
        try:
            tokens = tokenize(path)
        except UnsupportedPathError as exc:
            return UnsupportedPath(path, exc.reason)

        param_assoc: list[tuple[str, int]] = []
        node = self._root
        for token in tokens:
            key = _key(token)
            child = node.children.get(key)
            if child is None:
                if node.conflicts(key):
                    return UnsupportedPath(path, "ambiguous sibling branches")
                child = node.children[key] = Node()
            if isinstance(token, Param):
                if child.var_index is None:
                    child.var_index = self._var_count
                    self._var_count += 1
                param_assoc.append((token.name, child.var_index))
            node = child

        if node.index is not None:
            return UnsupportedPath(path, "duplicate route")
        node.index = index
        return param_assoc

    def build(self) -> Compiled:
        emitter = _Emitter()
        source = emitter.emit(self._root) if self._root.children else "(?!)"
        return Compiled(
            regex=re.compile(source, re.DOTALL),
            terminals=emitter.terminals,
            params=emitter.params,
        )

