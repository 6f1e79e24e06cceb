"""
auth/service.py -- Signup, login, and identity verification flows.

AuthService is the only place that combines the store, the hasher, the token
signer, the OTP generator and the notifier. Routes call one method per request
and translate AuthError subclasses into HTTP responses.

Verification state machine (per user):
    pending --(OTP verified)--> active
    pending --(resend)--------> pending   new code replaces the old one

Two verification strategies share this service:
  OTP        -- a 6-digit code stored on the user row, valid for 15 minutes,
                cleared on first successful use.
  Magic link -- a 15-minute signed token mailed as a URL; exchanging it yields
                a 7-day session token. Stateless, so it can be exchanged more
                than once until it expires.

Known gaps, kept on purpose:
  - If the OTP email fails after signup, the user row stays. The caller gets
    OTPDeliveryFailed (400) and recovers through resend_otp().
  - forgot_password() returns the reset token to the caller instead of mailing it.
  - No token is revocable before expiry.

Concurrent resend_otp() calls race; the last write wins and a verify against
the overwritten code fails as a mismatch.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlencode

from auth.errors import (
    InvalidCredentials,
    InvalidToken,
    MissingCredentials,
    NotifierFailure,
    OTPExpired,
    OTPDeliveryFailed,
    OTPMismatch,
    PasswordMismatch,
    UserNotFound,
    ValidationError,
)
from auth.models import NewUser, PendingOTP, User, UserStatus
from auth.notifier import Notifier
from auth.passwords import CredentialHasher
from auth.store import UserStore
from auth.tokens import (
    MAGIC_LINK_TTL,
    MAGIC_SESSION_TTL,
    PURPOSE_MAGIC_LINK,
    PURPOSE_RESET,
    PURPOSE_SESSION,
    RESET_TTL,
    Clock,
    OTPGenerator,
    TokenSigner,
    utcnow,
)
from auth.validation import validate_email
from core.config import Settings

logger = logging.getLogger("authgate.auth")

OTP_TTL = timedelta(minutes=15)

# Statuses that can never log in. Reported as InvalidCredentials like any other failure.
_LOCKED_STATUSES = frozenset({UserStatus.banned, UserStatus.deleted})


@dataclass(frozen=True)
class AuthConfig:
    """The slice of Settings the service needs, injected at construction."""

    session_ttl: timedelta = timedelta(hours=1)
    magic_link_base_url: str = "http://localhost:8000/api/auth/verify"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            session_ttl=timedelta(seconds=settings.token_expire_seconds),
            magic_link_base_url=settings.magic_link_base_url,
        )


@dataclass
class AuthResult:
    user: User
    token: str


class AuthService:
    def __init__(
        self,
        *,
        store: UserStore,
        hasher: CredentialHasher,
        signer: TokenSigner,
        otp_generator: OTPGenerator,
        notifier: Notifier,
        config: AuthConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._signer = signer
        self._otp = otp_generator
        self._notifier = notifier
        self._config = config or AuthConfig()
        self._clock = clock
        # Verified against when the email is unknown so that path costs one bcrypt check too.
        self._dummy_hash = hasher.hash("authgate_timing_dummy")

    # ------------------------------------------------------------------
    # Signup and OTP verification
    # ------------------------------------------------------------------

    def signup(
        self,
        full_name: str,
        email: str,
        password: str,
        confirm_password: str,
        is_individual: bool = True,
    ) -> AuthResult:
        """Create a pending user, email an OTP, and return a session token.

        Raises PasswordMismatch before anything is written. ValidationError and
        DuplicateEmail come from the store. OTPDeliveryFailed (400) is raised
        after the user already exists.
        """
        if password != confirm_password:
            raise PasswordMismatch()

        now = self._clock()
        code = self._otp.generate()
        user = self._store.create(
            NewUser(
                full_name=full_name,
                email=email,
                password=password,
                is_individual=is_individual,
                pending_otp=PendingOTP(code=code, expires_at=now + OTP_TTL),
            ),
            now=now,
        )
        logger.info("User %s signed up (pending verification)", user.id)

        try:
            self._notifier.send_otp(user.email, code)
        except NotifierFailure as exc:
            logger.warning("User %s created but OTP email failed; resend required", user.id)
            raise OTPDeliveryFailed() from exc

        return AuthResult(user=user, token=self._session_token(user))

    def verify_otp(self, email: str, code: str) -> User:
        if not email or not code:
            raise ValidationError("Email and OTP are required.", details=_missing(email=email, code=code))

        user = self._require_user(email)
        pending = user.pending_otp
        if pending is None or pending.is_expired(self._clock()):
            raise OTPExpired()
        if not hmac.compare_digest(code.encode("utf-8"), pending.code.encode("utf-8")):
            raise OTPMismatch()

        user.pending_otp = None
        user.is_verified = True
        if user.status == UserStatus.pending:
            user.status = UserStatus.active
        self._store.update(user)
        logger.info("User %s verified email via OTP", user.id)
        return user

    def resend_otp(self, email: str) -> None:
        """Replace any outstanding OTP with a fresh one and email it."""
        user = self._require_user(email)
        code = self._otp.generate()
        user.pending_otp = PendingOTP(code=code, expires_at=self._clock() + OTP_TTL)
        self._store.update(user)
        try:
            self._notifier.send_otp(user.email, code)
        except NotifierFailure as exc:
            logger.warning("OTP resend email failed for user %s", user.id)
            raise OTPDeliveryFailed() from exc
        logger.info("OTP resent for user %s", user.id)

    # ------------------------------------------------------------------
    # Password login and reset
    # ------------------------------------------------------------------

    def login(self, email: str | None, password: str | None) -> AuthResult:
        """Authenticate by email and password.

        Unknown email, wrong password and locked account all raise the same
        InvalidCredentials, and every path runs exactly one bcrypt check.
        """
        if not email or not password:
            raise MissingCredentials()

        user = self._store.find_by_email(email)
        if user is None:
            self._hasher.verify(password, self._dummy_hash)
            logger.warning("Failed login attempt")
            raise InvalidCredentials()
        if not self._hasher.verify(password, user.credential_hash) or user.status in _LOCKED_STATUSES:
            logger.warning("Failed login attempt for user %s", user.id)
            raise InvalidCredentials()

        user.last_login_at = self._clock()
        self._store.update(user)
        logger.info("User %s logged in", user.id)
        return AuthResult(user=user, token=self._session_token(user))

    def forgot_password(self, email: str) -> str:
        """Return a 1-hour reset token bound to the user's id."""
        user = self._require_user(email)
        logger.info("Password reset token issued for user %s", user.id)
        return self._signer.issue({"sub": user.id, "purpose": PURPOSE_RESET}, RESET_TTL)

    # ------------------------------------------------------------------
    # Magic link
    # ------------------------------------------------------------------

    def send_magic_link(self, email: str) -> None:
        """Mail a 15-minute sign-in link for email.

        No account lookup: the response is the same whether or not the address
        is registered.
        """
        normalized = validate_email(email)
        token = self._signer.issue({"email": normalized, "purpose": PURPOSE_MAGIC_LINK}, MAGIC_LINK_TTL)
        link = f"{self._config.magic_link_base_url}?{urlencode({'token': token})}"
        self._notifier.send_magic_link(normalized, link)
        logger.info("Magic link issued")

    def verify_magic_link(self, token: str | None) -> str:
        """Exchange a magic-link token for a 7-day session token bound to the same email."""
        if not token:
            raise InvalidToken("Token is required.")
        claims = self._signer.verify(token)
        email = claims.get("email")
        if claims.get("purpose") != PURPOSE_MAGIC_LINK or not email:
            raise InvalidToken()
        return self._signer.issue({"email": email, "purpose": PURPOSE_SESSION}, MAGIC_SESSION_TTL)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self, email: str | None) -> User:
        user = self._store.find_by_email(email) if email else None
        if user is None:
            raise UserNotFound()
        return user

    def _session_token(self, user: User) -> str:
        return self._signer.issue({"sub": user.id, "purpose": PURPOSE_SESSION}, self._config.session_ttl)


def _missing(**fields: str | None) -> dict[str, str]:
    return {name: "This field is required." for name, value in fields.items() if not value}
