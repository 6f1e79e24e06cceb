"""Unit tests for auth/tokens.py -- TokenSigner and OTPGenerator.

Covers:
- Issued tokens verify and carry iat/exp derived from the injected clock
- Expiry boundary: valid one second before exp, expired at exp
- Tampered, foreign-key and malformed tokens raise InvalidToken
- OTP codes are fixed-length digit strings and vary between calls
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import TEST_SECRET, T0
from jose import jwt

from auth.errors import ExpiredToken, InvalidToken
from auth.tokens import OTPGenerator, TokenSigner


class TestTokenSigner:
    def test_round_trip_keeps_claims(self, signer):
        token = signer.issue({"sub": "abc123", "purpose": "session"}, timedelta(minutes=5))
        claims = signer.verify(token)
        assert claims["sub"] == "abc123"
        assert claims["purpose"] == "session"
        assert claims["iat"] == int(T0.timestamp())
        assert claims["exp"] == int(T0.timestamp()) + 300

    def test_issue_does_not_mutate_input(self, signer):
        claims = {"sub": "abc123"}
        signer.issue(claims, timedelta(minutes=5))
        assert claims == {"sub": "abc123"}

    def test_valid_until_the_last_second(self, signer, clock):
        token = signer.issue({"sub": "abc123"}, timedelta(minutes=15))
        clock.advance(minutes=14, seconds=59)
        assert signer.verify(token)["sub"] == "abc123"

    def test_expired_at_exp(self, signer, clock):
        token = signer.issue({"sub": "abc123"}, timedelta(minutes=15))
        clock.advance(minutes=15)
        with pytest.raises(ExpiredToken):
            signer.verify(token)

    def test_signed_with_another_secret(self, signer, clock):
        other = TokenSigner("another-secret-key-that-is-32-chars-long", clock=clock)
        token = other.issue({"sub": "abc123"}, timedelta(minutes=5))
        with pytest.raises(InvalidToken):
            signer.verify(token)

    def test_tampered_payload(self, signer):
        token = signer.issue({"sub": "abc123"}, timedelta(minutes=5))
        header, _payload, signature = token.split(".")
        forged_payload = jwt.encode({"sub": "admin"}, "whatever-key", algorithm="HS256").split(".")[1]
        with pytest.raises(InvalidToken):
            signer.verify(f"{header}.{forged_payload}.{signature}")

    def test_bad_signature_wins_over_expiry(self, signer, clock):
        other = TokenSigner("another-secret-key-that-is-32-chars-long", clock=clock)
        token = other.issue({"sub": "abc123"}, timedelta(minutes=5))
        clock.advance(hours=1)
        with pytest.raises(InvalidToken):
            signer.verify(token)

    def test_token_without_exp(self, signer):
        token = jwt.encode({"sub": "abc123"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            signer.verify(token)

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_malformed(self, signer, token):
        with pytest.raises(InvalidToken):
            signer.verify(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenSigner("")


class TestOTPGenerator:
    @pytest.mark.parametrize("length", [4, 6, 8])
    def test_fixed_length_digits(self, length):
        gen = OTPGenerator(length)
        for _ in range(50):
            code = gen.generate()
            assert len(code) == length
            assert code.isdigit()

    def test_codes_vary(self):
        gen = OTPGenerator(6)
        assert len({gen.generate() for _ in range(50)}) > 1
