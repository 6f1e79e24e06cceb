"""
auth/passwords.py -- One-way credential hashing (bcrypt).

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug probe
trips bcrypt 4.x's explicit 72-byte error, and direct usage needs no shim.

hash() salts every call, so the same password hashes differently each time;
verify() still accepts any of those values. A mismatch is a plain False. Only
a stored value bcrypt cannot parse raises, as CorruptCredential, because that
is a data problem rather than a wrong password.

bcrypt reads at most 72 bytes. Longer passwords are refused by signup
validation and hash(); verify() always answers False for them, so two inputs
that share a 72-byte prefix never match the same hash.
"""

from __future__ import annotations

import bcrypt

from auth.errors import CorruptCredential

MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


class CredentialHasher:
    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt hash of the plaintext password."""
        if password_too_long(plain):
            raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        encoded = plain.encode("utf-8")
        try:
            # Over-long input still pays for one check so timing does not reveal the length rule.
            matched = bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
        except ValueError as exc:
            raise CorruptCredential() from exc
        return matched and len(encoded) <= MAX_PASSWORD_BYTES
