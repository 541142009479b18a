"""Password digest expected by the user session service.

The service never receives the plain password, only the lowercase hex
SHA-256 digest of the salted password.

Example:
-------
    from natpunch.crypto.password import hash_password

    digest = hash_password("hunter2")
"""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes

from natpunch.core.constants import PASSWORD_SALT

__all__ = ["hash_password"]


def hash_password(password: str, salt: str = PASSWORD_SALT) -> str:
    """Return the salted SHA-256 password digest as lowercase hex.

    Args:
    ----
        password: Plain-text password.
        salt: Prefix mixed into the digest.

    Returns:
    -------
        64-character hex string.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update((salt + password).encode("utf-8"))
    return digest.finalize().hex()
