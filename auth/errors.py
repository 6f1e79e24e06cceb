"""
auth/errors.py -- Error taxonomy for the auth domain.

Every failure the service can report is an AuthError subclass. Each carries a
stable machine-readable code and the HTTP status the API layer maps it to, so
api/main.py needs a single exception handler for the whole family.

These are expected outcomes, not crashes: callers catch AuthError and turn it
into a structured response.
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    code: str = "auth_error"
    status_code: int = 400
    default_message: str = "Authentication request failed."

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AuthError):
    """Input failed field validation. details maps field name -> problem."""

    code = "validation_error"
    default_message = "One or more fields are invalid."


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    default_message = "An account with this email already exists."


class PasswordMismatch(AuthError):
    code = "password_mismatch"
    default_message = "Passwords do not match."


class MissingCredentials(AuthError):
    code = "missing_credentials"
    default_message = "Please provide email and password."


class UserNotFound(AuthError):
    code = "user_not_found"
    status_code = 404
    default_message = "User not found."


class InvalidCredentials(AuthError):
    """Raised for both unknown email and wrong password; the two must look identical."""

    code = "invalid_credentials"
    status_code = 401
    default_message = "Incorrect email or password."


class OTPExpired(AuthError):
    code = "otp_expired"
    default_message = "OTP has expired. Please request a new one."


class OTPMismatch(AuthError):
    code = "otp_mismatch"
    default_message = "Invalid OTP."


class InvalidToken(AuthError):
    code = "invalid_token"
    default_message = "Invalid token."


class ExpiredToken(AuthError):
    code = "expired_token"
    default_message = "Token has expired."


class NotifierFailure(AuthError):
    code = "notifier_failure"
    status_code = 500
    default_message = "Could not deliver the email. Please try again."


class CorruptCredential(AuthError):
    code = "corrupt_credential"
    status_code = 500
    default_message = "Stored credential is unreadable."


class OTPDeliveryFailed(NotifierFailure):
    """The verification code could not be mailed during signup or resend.

    Reported as a client-recoverable 400: the account and the stored code are
    already in place, so the caller retries with resend-otp.
    """

    code = "otp_delivery_failed"
    status_code = 400
    default_message = "Could not send the verification email. Please request a new OTP."
