"""Tests for AppConfig."""

from dataclasses import FrozenInstanceError

import pytest

from trellis.config import AppConfig


class TestDefaults:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.debug is False
        assert config.strict is True
        assert config.secret_key == ""
        assert config.token_max_age == 7 * 24 * 60 * 60
        assert config.cors_origins == ("*",)
        assert config.max_content_length == 16 * 1024 * 1024

    def test_frozen(self) -> None:
        config = AppConfig()
        with pytest.raises(FrozenInstanceError):
            config.debug = True  # type: ignore[misc]


class TestFromEnv:
    def test_unset_keeps_defaults(self) -> None:
        assert AppConfig.from_env(environ={}) == AppConfig()

    def test_parses_by_field_type(self) -> None:
        config = AppConfig.from_env(
            environ={
                "TRELLIS_DEBUG": "true",
                "TRELLIS_STRICT": "0",
                "TRELLIS_SECRET_KEY": "s3cr3t",
                "TRELLIS_TOKEN_MAX_AGE": "60",
                "TRELLIS_CORS_ORIGINS": "https://a.example, https://b.example,",
                "TRELLIS_MAX_CONTENT_LENGTH": "1024",
            }
        )
        assert config.debug is True
        assert config.strict is False
        assert config.secret_key == "s3cr3t"
        assert config.token_max_age == 60
        assert config.cors_origins == ("https://a.example", "https://b.example")
        assert config.max_content_length == 1024

    def test_custom_prefix(self) -> None:
        config = AppConfig.from_env(prefix="LOYALTY_", environ={"LOYALTY_DEBUG": "yes"})
        assert config.debug is True

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRELLIS_SECRET_KEY", "from-env")
        assert AppConfig.from_env().secret_key == "from-env"

    def test_bad_int(self) -> None:
        with pytest.raises(ValueError):
            AppConfig.from_env(environ={"TRELLIS_TOKEN_MAX_AGE": "soon"})
