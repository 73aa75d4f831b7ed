"""Cookie parsing and SetCookie serialization.

``parse_cookies`` is the read side used by ``Request``; ``SetCookie`` is
the write side carried on ``Response``.
"""

from dataclasses import dataclass
from datetime import datetime
from email.utils import format_datetime
from urllib.parse import quote

from trellis.routing.paths import decode_uri_component


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Values are percent-decoded and surrounding double quotes removed.
    The first occurrence of a name wins. Returns an empty dict for an
    empty header.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        key, sep, value = pair.strip().partition("=")
        key = key.strip()
        if not sep or not key or key in cookies:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[key] = decode_uri_component(value)
    return cookies


# Browsers cap cookie lifetimes at 400 days (RFC 6265bis)
MAX_COOKIE_AGE = 400 * 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response.

    Values are percent-encoded on the wire. ``__Secure-`` and ``__Host-``
    prefixed names are checked against the attributes browsers require for
    them.
    """

    name: str
    value: str
    max_age: int | None = None
    expires: datetime | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str | None = "Lax"
    partitioned: bool = False

    def __post_init__(self) -> None:
        if self.max_age is not None and self.max_age > MAX_COOKIE_AGE:
            msg = f"Cookie {self.name!r}: Max-Age must not exceed 400 days."
            raise ValueError(msg)
        if self.name.startswith(("__Secure-", "__Host-")) and not self.secure:
            msg = f"Cookie {self.name!r} must be set with secure=True."
            raise ValueError(msg)
        if self.name.startswith("__Host-") and (self.path != "/" or self.domain):
            msg = f"Cookie {self.name!r} must use path='/' and no domain."
            raise ValueError(msg)
        if self.partitioned and not self.secure:
            msg = f"Partitioned cookie {self.name!r} must be set with secure=True."
            raise ValueError(msg)

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        attrs: list[str] = [f"{self.name}={quote(self.value, safe='')}"]
        if self.max_age is not None:
            attrs.append(f"Max-Age={self.max_age}")
        if self.expires is not None:
            attrs.append(f"Expires={format_datetime(self.expires, usegmt=True)}")
        attrs.extend(
            f"{label}={value}"
            for label, value in (("Path", self.path), ("Domain", self.domain))
            if value
        )
        attrs.extend(
            flag
            for flag, enabled in (
                ("Secure", self.secure),
                ("HttpOnly", self.httponly),
                ("Partitioned", self.partitioned),
            )
            if enabled
        )
        if self.samesite:
            attrs.append(f"SameSite={self.samesite.capitalize()}")
        return "; ".join(attrs)
