"""Credential helpers."""

from natpunch.crypto.password import hash_password

__all__ = ["hash_password"]
