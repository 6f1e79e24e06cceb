"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). The store maps
rows into these; the service mutates them and hands them back to the store.

credential_hash is carried on User because login needs it, but nothing in
the API layer reads it: responses are built from api.models.UserPublic,
which has no such field.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class UserStatus(str, Enum):
    pending = "pending"
    active = "active"
    inactive = "inactive"
    banned = "banned"
    deleted = "deleted"


@dataclass
class PendingOTP:
    """The single outstanding verification code for a user."""

    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        # Still valid at exactly expires_at.
        return now > self.expires_at


@dataclass
class NewUser:
    """Signup input as accepted by UserStore.create(). password is plaintext."""

    full_name: str
    email: str
    password: str
    is_individual: bool = True
    pending_otp: PendingOTP | None = None


@dataclass
class User:
    """A registered identity.

    status starts at pending and moves to active when the emailed OTP is
    verified. is_verified flips to True at the same moment and is never
    reset by this service.
    """

    id: str
    full_name: str
    email: str
    credential_hash: str
    created_at: datetime
    is_individual: bool = True
    status: UserStatus = UserStatus.pending
    is_verified: bool = False
    pending_otp: PendingOTP | None = None
    last_login_at: datetime | None = None
