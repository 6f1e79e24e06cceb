"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Wire names are camelCase (fullName, confirmPassword, isIndividual). Request
fields are optional at this layer on purpose: missing or malformed values are
reported by auth/validation.py with field-level detail and the domain's error
codes, not by a generic schema failure.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SignupRequest(_Request):
    full_name: Optional[str] = Field(default=None, alias="fullName", max_length=255)
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=255)
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword", max_length=255)
    is_individual: bool = Field(default=True, alias="isIndividual")


class LoginRequest(_Request):
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=255)


class VerifyOTPRequest(_Request):
    email: Optional[str] = Field(default=None, max_length=320)
    code: Optional[str] = Field(default=None, max_length=16)


class EmailRequest(_Request):
    """Body for resend-otp, forgot-password and send-magic-link."""

    email: Optional[str] = Field(default=None, max_length=320)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """The externally visible view of a user. Never includes the credential hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    full_name: str = Field(serialization_alias="fullName")
    email: str
    is_individual: bool = Field(serialization_alias="isIndividual")
    is_verified: bool = Field(serialization_alias="isVerified")
    status: str

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            is_individual=user.is_individual,
            is_verified=user.is_verified,
            status=user.status.value,
        )


class StatusResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: Optional[str] = None


class AuthResponse(StatusResponse):
    """Response for signup and login."""

    token: str
    user: UserPublic


class ResetTokenResponse(StatusResponse):
    reset_token: str = Field(serialization_alias="resetToken")


class SessionTokenResponse(StatusResponse):
    session_token: str = Field(serialization_alias="sessionToken")


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    status: str = "fail"
    error: ErrorDetail


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str
