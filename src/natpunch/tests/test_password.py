"""Tests for the service password digest."""

import hashlib

from natpunch.crypto.password import hash_password


def test_hash_password_matches_salted_sha256():
    expected = hashlib.sha256(b"HiveMPv1hunter2").hexdigest()
    assert hash_password("hunter2") == expected


def test_hash_password_is_lowercase_hex():
    digest = hash_password("Secret!")
    assert len(digest) == 64
    assert digest == digest.lower()
    int(digest, 16)


def test_hash_password_custom_salt():
    assert hash_password("pw", salt="") == hashlib.sha256(b"pw").hexdigest()
    assert hash_password("pw") != hash_password("pw", salt="")
