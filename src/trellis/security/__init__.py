"""Security utilities: signed bearer tokens and password hashing.

Bearer tokens::

    from trellis.security import TokenSigner

    signer = TokenSigner("secret", max_age=3600)
    token = signer.issue({"userId": 1, "role": "admin"})
    payload = signer.verify(token)  # dict, or None if invalid or expired

Password hashing::

    from trellis.security import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from trellis.security.passwords import hash_password, verify_password
from trellis.security.tokens import TokenSigner, extract_token

__all__ = [
    "TokenSigner",
    "extract_token",
    "hash_password",
    "verify_password",
]
