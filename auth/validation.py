"""
auth/validation.py -- Field validation run before a User value is built.

All problems found in one call are collected and raised together as a single
ValidationError whose details map field name -> message, so a signup form can
highlight every bad field at once.
"""

from __future__ import annotations

import re

from auth.errors import ValidationError
from auth.passwords import MAX_PASSWORD_BYTES, password_too_long

MIN_PASSWORD_LENGTH = 6

# Deliberately loose: one @, no whitespace, a dot in the domain part.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively; this is the canonical stored form."""
    return email.strip().lower()


def _email_problem(email: str | None) -> str | None:
    if not email or not email.strip():
        return "Email is required."
    if not _EMAIL_RE.match(email.strip()):
        return "Email address is malformed."
    return None


def validate_email(email: str | None) -> str:
    """Return the normalized email or raise ValidationError."""
    problem = _email_problem(email)
    if problem:
        raise ValidationError(details={"email": problem})
    return normalize_email(email)


def validate_signup(full_name: str | None, email: str | None, password: str | None) -> None:
    errors: dict[str, str] = {}
    if not full_name or not full_name.strip():
        errors["fullName"] = "Full name is required."
    problem = _email_problem(email)
    if problem:
        errors["email"] = problem
    if not password:
        errors["password"] = "Password is required."
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    elif password_too_long(password):
        errors["password"] = f"Password must be at most {MAX_PASSWORD_BYTES} bytes."
    if errors:
        raise ValidationError(details=errors)
