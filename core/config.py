"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

The settings object is consumed once, in the API lifespan, which builds the
auth components (signer, hasher, notifier, store) from it and injects them.
Business logic in auth/ never calls get_settings() itself.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. Every token this
  service issues (session, magic link, password reset) is signed with it.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a
  hard startup failure. In debug mode a random key is generated, so tokens
  issued before a restart stop verifying after it.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'authgate.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. Field names map to upper-cased
    environment variables (smtp_host -> SMTP_HOST).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens and credentials
    # ------------------------------------------------------------------

    # Lifetime of the session token returned by signup and login.
    token_expire_seconds: int = 3600
    otp_length: int = 6
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Notifier (empty smtp_host selects the logging notifier)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    mail_from: str = ""
    magic_link_base_url: str = "http://localhost:8000/api/auth/verify"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_allow_origins: list[str] = ["http://localhost:3000"]

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Generate a dev key in debug mode, refuse to start without one otherwise."""
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Issued tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.otp_length < 4:
            raise ValueError("OTP_LENGTH must be at least 4 digits.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
