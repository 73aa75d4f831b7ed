"""Password hashing with argon2id.

Hashes are PHC-format strings (``$argon2id$v=19$...``) that carry their
own parameters, so hashes made with older settings still verify.

Usage::

    from trellis.security.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password with argon2id.

    Raises:
        ValueError: If *password* is empty.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    return _hasher.hash(password)


def verify_password(password: str, phc_hash: str) -> bool:
    """Check *password* against a hash from ``hash_password``.

    Returns ``False`` for a wrong password or an empty input.

    Raises:
        ValueError: If *phc_hash* is not an argon2 hash.
    """
    if not password or not phc_hash:
        return False
    try:
        return _hasher.verify(phc_hash, password)
    except VerificationError:
        return False
    except InvalidHashError:
        msg = f"Unknown hash format: {phc_hash[:20]}..."
        raise ValueError(msg) from None


def needs_rehash(phc_hash: str) -> bool:
    """Whether *phc_hash* was made with weaker parameters than the current ones."""
    return _hasher.check_needs_rehash(phc_hash)
