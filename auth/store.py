"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint on the normalized (trimmed,
  lower-cased) address, so two concurrent signups for the same email cannot
  both succeed. The loser's IntegrityError surfaces as DuplicateEmail.

  Plaintext passwords enter create() and leave as a bcrypt hash. The store
  never writes or returns the plaintext.

Timestamps are stored as ISO 8601 UTC strings and mapped back to aware
datetimes, matching the SQLite-first default while staying portable.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Boolean, Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail
from auth.models import NewUser, PendingOTP, User, UserStatus
from auth.passwords import CredentialHasher
from auth.validation import normalize_email, validate_signup

logger = logging.getLogger("authgate.auth.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'authgate_users.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex, opaque to callers
    Column("full_name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),  # normalized
    Column("credential_hash", Text, nullable=False),
    Column("is_individual", Boolean, nullable=False, server_default="1"),
    Column("status", String(16), nullable=False, server_default=UserStatus.pending.value),
    Column("is_verified", Boolean, nullable=False, server_default="0"),
    Column("otp_code", String(16)),  # NULL when no verification is pending
    Column("otp_expires_at", String(32)),
    Column("last_login_at", String(32)),
    Column("created_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime | None) -> str | None:
    return value.astimezone(timezone.utc).isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///authgate.db", CredentialHasher())
        user = store.create(NewUser(full_name="Ada", email="ada@example.com", password="s3cret!"))
        user = store.find_by_email("ADA@example.com")
        store.update(user)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, hasher: CredentialHasher | None = None) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self._hasher = hasher or CredentialHasher()

    def create(self, new_user: NewUser, now: datetime | None = None) -> User:
        """Validate, hash the password, and insert a pending user.

        Raises ValidationError for bad fields and DuplicateEmail if the
        normalized address is already registered.
        """
        validate_signup(new_user.full_name, new_user.email, new_user.password)
        user = User(
            id=uuid.uuid4().hex,
            full_name=new_user.full_name.strip(),
            email=normalize_email(new_user.email),
            credential_hash=self._hasher.hash(new_user.password),
            created_at=now or datetime.now(timezone.utc),
            is_individual=new_user.is_individual,
            pending_otp=new_user.pending_otp,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(_users.insert().values(id=user.id, created_at=_to_iso(user.created_at), **_columns(user)))
                conn.commit()
        except IntegrityError as exc:
            logger.info("Signup rejected: email already registered")
            raise DuplicateEmail() from exc
        return user

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def update(self, user: User) -> None:
        """Persist every mutable field of user. Last write wins."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user.id).values(**_columns(user)))
            conn.commit()

    def has_users(self) -> bool:
        """Cheap liveness probe used by the health endpoint."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _columns(user: User) -> dict:
    """Mutable columns for insert/update. id and created_at are written once."""
    otp = user.pending_otp
    return {
        "full_name": user.full_name,
        "email": user.email,
        "credential_hash": user.credential_hash,
        "is_individual": user.is_individual,
        "status": user.status.value,
        "is_verified": user.is_verified,
        "otp_code": otp.code if otp else None,
        "otp_expires_at": _to_iso(otp.expires_at) if otp else None,
        "last_login_at": _to_iso(user.last_login_at),
    }


def _row_to_user(row) -> User:
    pending_otp = None
    if row.otp_code and row.otp_expires_at:
        pending_otp = PendingOTP(code=row.otp_code, expires_at=_from_iso(row.otp_expires_at))
    return User(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        credential_hash=row.credential_hash,
        created_at=_from_iso(row.created_at),
        is_individual=bool(row.is_individual),
        status=UserStatus(row.status),
        is_verified=bool(row.is_verified),
        pending_otp=pending_otp,
        last_login_at=_from_iso(row.last_login_at),
    )
