"""tests/test_passwords.py -- bcrypt hashing helpers."""

from __future__ import annotations

from auth.passwords import BCRYPT_ROUNDS, hash_password, verify_password


def test_hash_uses_fixed_cost_factor() -> None:
    hashed = hash_password("secret1")
    assert hashed.startswith(f"$2b${BCRYPT_ROUNDS:02d}$")


def test_hash_is_salted() -> None:
    assert hash_password("secret1") != hash_password("secret1")


def test_verify_correct_password() -> None:
    assert verify_password("secret1", hash_password("secret1")) is True


def test_verify_wrong_password() -> None:
    assert verify_password("secret2", hash_password("secret1")) is False


def test_verify_malformed_hash_is_false() -> None:
    assert verify_password("secret1", "not-a-bcrypt-hash") is False
