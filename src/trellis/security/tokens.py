"""Signed, expiring bearer tokens.

A token is a JSON identity payload signed and timestamped with
``itsdangerous``. Verification checks the signature and the age in one
step, so an expired or tampered token is simply rejected.
"""

import logging
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from trellis.errors import ConfigurationError
from trellis.http.headers import Headers

logger = logging.getLogger("trellis.security")

_SALT = "trellis.bearer"


class TokenSigner:
    """Issues and verifies bearer tokens for one secret.

    Args:
        secret_key: Signing secret. Must not be empty.
        max_age: Token lifetime in seconds.
    """

    __slots__ = ("_serializer", "max_age")

    def __init__(self, secret_key: str, max_age: int = 7 * 24 * 60 * 60) -> None:
        if not secret_key:
            msg = "TokenSigner secret_key must not be empty."
            raise ConfigurationError(msg)
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt=_SALT)

    def issue(self, payload: dict[str, Any]) -> str:
        """Sign *payload*; the token carries its own issue time."""
        return self._serializer.dumps(payload)

    def verify(self, token: str) -> dict[str, Any] | None:
        """The payload of a valid, unexpired token, else ``None``."""
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            logger.info("Rejected expired token")
            return None
        except BadSignature:
            logger.info("Rejected token with a bad signature")
            return None
        if not isinstance(data, dict):
            return None
        return data


def extract_token(headers: Headers, scheme: str = "Bearer") -> str | None:
    """The token from ``Authorization: <scheme> <token>``, or ``None``."""
    header = headers.get("authorization")
    if header is None:
        return None
    prefix = f"{scheme} "
    if not header.startswith(prefix):
        return None
    token = header[len(prefix) :].strip()
    return token or None
