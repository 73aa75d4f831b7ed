"""Path helpers shared by every router.

Splitting route patterns into segments, joining base paths, expanding
optional parameters, building wildcard patterns, and percent-decoding
request paths and parameter values.
"""

import re

# {...} groups may contain "/" and must survive segment splitting
_GROUP = re.compile(r"\{[^}]+\}")
_PERCENT_RUN = re.compile(r"(?:%[0-9A-Fa-f]{2})+")
_PARAM = re.compile(r"^:([^{}]+)(?:\{(.+)\})?$")

# Escapes decodeURI leaves alone, plus "%" so parameters decode exactly once
_URI_RESERVED = frozenset(";/?:@&=+$,#%")

LABEL = "[^/]+"


def extract_groups(path: str) -> tuple[str, list[tuple[str, str]]]:
    """Replace every ``{...}`` group with an opaque ``@N`` marker."""
    groups: list[tuple[str, str]] = []

    def mark(match: re.Match[str]) -> str:
        marker = f"@{len(groups)}"
        groups.append((marker, match.group(0)))
        return marker

    return _GROUP.sub(mark, path), groups


def restore_groups(parts: list[str], groups: list[tuple[str, str]]) -> list[str]:
    """Put extracted groups back, last marker first so ``@1`` never eats ``@10``."""
    for marker, group in reversed(groups):
        for i, part in enumerate(parts):
            if marker in part:
                parts[i] = part.replace(marker, group)
                break
    return parts


def split_path(path: str) -> list[str]:
    """Split on ``/``, dropping the leading empty segment.

    ``"/"`` becomes ``[""]`` and ``"/users/"`` becomes ``["users", ""]``.
    """
    parts = path.split("/")
    if parts[0] == "":
        parts.pop(0)
    return parts


def split_routing_path(pattern: str) -> list[str]:
    """Split a route pattern without breaking ``{...}`` constraints."""
    stripped, groups = extract_groups(pattern)
    return restore_groups(split_path(stripped), groups)


def parse_param(segment: str) -> tuple[str, str | None] | None:
    """``":id{[0-9]+}"`` -> ``("id", "[0-9]+")``; ``None`` for non-params."""
    match = _PARAM.match(segment)
    if match is None:
        return None
    return match.group(1), match.group(2)


def is_static(path: str) -> bool:
    """True when the pattern has no parameters and no wildcards."""
    return "*" not in path and "/:" not in path


def is_wildcard(path: str) -> bool:
    """True when the pattern ends in a wildcard segment (``*`` or ``.../*``)."""
    return path == "*" or path.endswith("/*")


def param_names(path: str) -> tuple[str, ...]:
    """Named parameters of a pattern, left to right."""
    names: list[str] = []
    for segment in split_routing_path(path):
        parsed = parse_param(segment)
        if parsed is not None:
            names.append(parsed[0])
    return tuple(names)


def merge_path(base: str, sub: str) -> str:
    """Join a base path and a sub path with exactly one ``/`` between them.

    ``merge_path("/api", "/users") == "/api/users"``,
    ``merge_path("/api", "/") == "/api"``, ``merge_path("/", "*") == "/*"``.
    """
    prefix = "" if base.startswith("/") else "/"
    if sub == "/":
        return f"{prefix}{base}"
    separator = "" if base.endswith("/") else "/"
    tail = sub[1:] if sub.startswith("/") else sub
    return f"{prefix}{base}{separator}{tail}"


def check_optional_parameter(path: str) -> list[str] | None:
    """Expand a pattern ending in an optional parameter.

    ``"/api/animals/:type?"`` -> ``["/api/animals", "/api/animals/:type"]``.
    Returns ``None`` when the pattern has no trailing optional parameter.
    """
    if not path.endswith("?") or ":" not in path:
        return None

    results: list[str] = []
    base = ""
    for segment in path.split("/"):
        if segment and ":" not in segment:
            base += "/" + segment
        elif ":" in segment:
            if "?" in segment:
                results.append("/" if not results and base == "" else base)
                base += "/" + segment.replace("?", "", 1)
                results.append(base)
            else:
                base += "/" + segment

    return list(dict.fromkeys(results))


def wildcard_pattern(path: str, *, constrained: bool = True) -> re.Pattern[str]:
    """Compile a wildcard route into a full-match pattern.

    Parameters are captured as groups ``p0``, ``p1``, ... in order and the
    text consumed by the trailing wildcard as group ``wild``. With
    ``constrained=False`` every parameter matches any single segment, which
    is how route patterns are compared with each other rather than with
    concrete paths.
    """
    if path in ("*", "/*"):
        return re.compile(r"/?(?P<wild>.*)", re.DOTALL)

    parts = split_routing_path(path)
    out: list[str] = []
    position = 0
    for i, part in enumerate(parts):
        if part == "*":
            if i == len(parts) - 1:
                out.append("(?:|/(?P<wild>.*))")
            else:
                out.append("/" + LABEL)
            continue
        parsed = parse_param(part)
        if parsed is None:
            out.append("/" + re.escape(part))
            continue
        _, constraint = parsed
        regex = constraint if constraint and constrained else LABEL
        out.append(f"/(?P<p{position}>{regex})")
        position += 1
    return re.compile("".join(out), re.DOTALL)


def _decode_run(run: str, reserved: frozenset[str]) -> str:
    text = bytes.fromhex(run.replace("%", "")).decode("utf-8")
    if not reserved or not any(ch in reserved for ch in text):
        return text
    out: list[str] = []
    pos = 0
    for ch in text:
        width = 3 * len(ch.encode("utf-8"))
        out.append(run[pos : pos + width] if ch in reserved else ch)
        pos += width
    return "".join(out)


def try_decode(value: str, reserved: frozenset[str] = frozenset()) -> str:
    """Percent-decode *value* run by run.

    A run of escapes that is not valid UTF-8 is left exactly as it was, so
    one malformed sequence never fails the whole value. Characters in
    *reserved* keep their escaped form.
    """

    def decode(match: re.Match[str]) -> str:
        run = match.group(0)
        try:
            return _decode_run(run, reserved)
        except UnicodeDecodeError:
            return run

    return _PERCENT_RUN.sub(decode, value)


def decode_uri_component(value: str) -> str:
    """Decode a parameter value; untouched unless it contains ``%``."""
    if "%" not in value:
        return value
    return try_decode(value)


def decode_uri(value: str) -> str:
    """Decode a whole path, keeping reserved characters (and ``%25``) escaped."""
    if "%" not in value:
        return value
    return try_decode(value, _URI_RESERVED)


def get_path(raw_path: str, *, strict: bool = True) -> str:
    """The routing path for a raw request path.

    With ``strict=False`` a single trailing slash is ignored, so ``/users/``
    routes like ``/users``.
    """
    path = decode_uri(raw_path)
    if not strict and len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path
