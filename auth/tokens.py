"""
auth/tokens.py -- Signed bearer tokens and one-time passcodes.

Security design decisions:
  JWT: python-jose with HS256, keyed by the process-wide SECRET_KEY handed in
       at construction. Every token carries iat/exp as integer seconds plus a
       purpose claim so a reset token cannot be replayed as a magic link.

       Verification is stateless: signature first, then expiry. A token stays
       valid for its full ttl regardless of later account changes. There is no
       revocation list; a leaked token is good until it expires.

       Expiry is checked here rather than inside jose so that the comparison
       uses the injected clock. jose's own exp check reads time.time().

  OTP: secrets.randbelow() over the full 10**length range, zero-padded, so
       every code of the configured length is equally likely. The generator
       keeps no state; AuthService owns storage and expiry of issued codes.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from auth.errors import ExpiredToken, InvalidToken

_ALGORITHM = "HS256"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Token purposes and lifetimes
# ---------------------------------------------------------------------------

PURPOSE_SESSION = "session"
PURPOSE_MAGIC_LINK = "magic_link"
PURPOSE_RESET = "reset"

MAGIC_LINK_TTL = timedelta(minutes=15)
MAGIC_SESSION_TTL = timedelta(days=7)
RESET_TTL = timedelta(hours=1)


# ---------------------------------------------------------------------------
# JWT issue / verify
# ---------------------------------------------------------------------------


class TokenSigner:
    """Issue and verify HS256 tokens carrying a small claim set.

    Usage:
        signer = TokenSigner(settings.secret_key)
        token = signer.issue({"sub": user.id, "purpose": "session"}, timedelta(hours=1))
        claims = signer.verify(token)   # raises InvalidToken / ExpiredToken
    """

    def __init__(self, secret_key: str, clock: Clock = utcnow) -> None:
        if not secret_key:
            raise ValueError("TokenSigner requires a non-empty secret key")
        self._secret_key = secret_key
        self._clock = clock

    def issue(self, claims: Mapping[str, Any], ttl: timedelta) -> str:
        issued_at = int(self._clock().timestamp())
        payload = dict(claims)
        payload["iat"] = issued_at
        payload["exp"] = issued_at + int(ttl.total_seconds())
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> dict[str, Any]:
        """Return the token's claims, or raise InvalidToken / ExpiredToken."""
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        exp = claims.get("exp")
        if not isinstance(exp, int):
            raise InvalidToken("Token has no expiry.")
        if int(self._clock().timestamp()) >= exp:
            raise ExpiredToken()
        return claims


# ---------------------------------------------------------------------------
# One-time passcodes
# ---------------------------------------------------------------------------


class OTPGenerator:
    def __init__(self, length: int = 6) -> None:
        self.length = length

    def generate(self) -> str:
        """Return a fresh numeric code of exactly `length` digits."""
        return f"{secrets.randbelow(10**self.length):0{self.length}d}"
