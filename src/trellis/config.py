"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, secret_key="s3cr3t")
    """

    debug: bool = False

    # Routing: strict=False treats "/users/" like "/users"
    strict: bool = True

    # Security
    secret_key: str = ""
    token_max_age: int = 7 * 24 * 60 * 60  # 7 days

    # CORS
    cors_origins: tuple[str, ...] = ("*",)

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    @classmethod
    def from_env(
        cls,
        prefix: str = "TRELLIS_",
        environ: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """Build a config from environment variables.

        ``TRELLIS_DEBUG=1``, ``TRELLIS_SECRET_KEY=...``,
        ``TRELLIS_CORS_ORIGINS=https://a.example,https://b.example``.
        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            default = f.default
            if isinstance(default, bool):
                values[f.name] = raw.strip().lower() in _TRUTHY
            elif isinstance(default, int):
                values[f.name] = int(raw)
            elif isinstance(default, tuple):
                values[f.name] = tuple(part.strip() for part in raw.split(",") if part.strip())
            else:
                values[f.name] = raw
        return cls(**values)
