"""Tests for argon2id password hashing."""

import pytest

from trellis.security.passwords import hash_password, needs_rehash, verify_password


class TestHashPassword:
    def test_phc_format(self) -> None:
        hashed = hash_password("hunter22")
        assert hashed.startswith("$argon2id$")
        assert "hunter22" not in hashed

    def test_salted(self) -> None:
        assert hash_password("same") != hash_password("same")

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            hash_password("")


class TestVerifyPassword:
    def test_correct(self) -> None:
        assert verify_password("hunter22", hash_password("hunter22")) is True

    def test_wrong(self) -> None:
        assert verify_password("hunter23", hash_password("hunter22")) is False

    def test_empty_inputs(self) -> None:
        hashed = hash_password("hunter22")
        assert verify_password("", hashed) is False
        assert verify_password("hunter22", "") is False

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unknown hash format"):
            verify_password("hunter22", "pbkdf2:sha256:abc")


def test_fresh_hash_needs_no_rehash() -> None:
    assert needs_rehash(hash_password("hunter22")) is False
