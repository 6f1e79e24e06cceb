"""Unit tests for auth/passwords.py -- CredentialHasher."""

from __future__ import annotations

import pytest

from auth.errors import CorruptCredential


def test_hash_is_not_plaintext_and_is_salted(hasher):
    first = hasher.hash("s3cret-pass")
    second = hasher.hash("s3cret-pass")
    assert first != "s3cret-pass"
    assert first != second
    assert hasher.verify("s3cret-pass", first)
    assert hasher.verify("s3cret-pass", second)


def test_wrong_password_returns_false(hasher):
    hashed = hasher.hash("s3cret-pass")
    assert hasher.verify("s3cret-pas", hashed) is False
    assert hasher.verify("", hashed) is False


def test_cost_factor_is_applied(hasher):
    assert hasher.hash("s3cret-pass").startswith("$2b$04$")


def test_password_at_byte_limit_round_trips(hasher):
    password = "x" * 72
    assert hasher.verify(password, hasher.hash(password))


def test_over_long_password_is_refused(hasher):
    with pytest.raises(ValueError):
        hasher.hash("x" * 73)


def test_shared_72_byte_prefix_does_not_match(hasher):
    prefix = "a" * 72
    hashed = hasher.hash(prefix)
    assert hasher.verify(prefix + "secret-one", hashed) is False
    assert hasher.verify(prefix + "totally-different", hashed) is False


def test_multibyte_characters_count_as_bytes(hasher):
    # 24 three-byte characters fill the limit exactly; one more overflows it.
    assert hasher.verify("\u20ac" * 24, hasher.hash("\u20ac" * 24))
    with pytest.raises(ValueError):
        hasher.hash("\u20ac" * 25)


@pytest.mark.parametrize("stored", ["", "plaintext", "$2b$04$tooshort"])
def test_malformed_stored_hash_raises(hasher, stored):
    with pytest.raises(CorruptCredential):
        hasher.verify("s3cret-pass", stored)
