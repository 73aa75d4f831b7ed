"""Path tokenizer for the compiled-regex router.

A route pattern decomposes, left to right, into ``Literal``, ``Param``,
``Wildcard`` and ``TailWildcard`` tokens. ``{...}`` constraint groups are
masked while splitting so a constraint may contain ``/``.
"""

import re
from dataclasses import dataclass

from trellis.errors import UnsupportedPathError
from trellis.routing.paths import LABEL, parse_param, split_routing_path

ONLY_WILDCARD = ".*"
TAIL_WILDCARD = "(?:|/.*)"

# A constraint wrapped in one capturing group: "(a|b)" -> "(?:a|b)"
_WRAPPED_GROUP = re.compile(r"^\((?!\?)(?=[^)]+\)$)")
# Any capturing group left over: "(" not escaped and not "(?:", "(?=", "(?!", "(?<=", "(?<!"
_CAPTURING_GROUP = re.compile(r"(?<!\\)\((?!\?(?:[:=!]|<[=!]))")


@dataclass(frozen=True, slots=True)
class Literal:
    """A literal segment, matched exactly."""

    text: str


@dataclass(frozen=True, slots=True)
class Param:
    """A named parameter segment, optionally constrained by a regex."""

    name: str
    constraint: str | None = None

    @property
    def regex(self) -> str:
        return self.constraint or LABEL


@dataclass(frozen=True, slots=True)
class Wildcard:
    """``*``: one segment mid-pattern, or everything when the pattern is ``*``."""

    greedy: bool = False

    @property
    def regex(self) -> str:
        return ONLY_WILDCARD if self.greedy else LABEL


@dataclass(frozen=True, slots=True)
class TailWildcard:
    """``path/*``: matches ``path`` itself or ``path/`` plus anything."""

    regex = TAIL_WILDCARD


type Token = Literal | Param | Wildcard | TailWildcard


def _check_constraint(pattern: str, constraint: str) -> str:
    if constraint == ONLY_WILDCARD:
        raise UnsupportedPathError(pattern, "unbounded parameter constraint")
    constraint = _WRAPPED_GROUP.sub("(?:", constraint, count=1)
    if _CAPTURING_GROUP.search(constraint):
        raise UnsupportedPathError(pattern, "capturing group in parameter constraint")
    return constraint


def tokenize(pattern: str) -> list[Token]:
    """Split *pattern* into tokens.

    Raises ``UnsupportedPathError`` when a parameter constraint cannot be
    embedded in a single combined expression.

    >>> tokenize("/users/:id{[0-9]+}/*")
    [Literal(text='users'), Param(name='id', constraint='[0-9]+'), TailWildcard()]
    """
    if pattern in ("*", "/*"):
        return [Wildcard(greedy=True)]

    parts = split_routing_path(pattern)
    tokens: list[Token] = []
    last = len(parts) - 1
    for i, part in enumerate(parts):
        if part == "*":
            tokens.append(TailWildcard() if i == last else Wildcard())
            continue
        parsed = parse_param(part)
        if parsed is None:
            tokens.append(Literal(part))
            continue
        name, constraint = parsed
        if constraint is not None:
            constraint = _check_constraint(pattern, constraint)
        tokens.append(Param(name, constraint))
    return tokens
