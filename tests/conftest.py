"""
tests/conftest.py -- Shared test fixtures for AuthGate.

This module provides:
  - FakeClock: a settable clock injected into the service and signer so OTP
    and token expiry can be tested at exact offsets
  - RecordingNotifier: captures outgoing codes and links; can be told to fail
  - StubOTPGenerator: hands out predictable codes so "old vs new" is never ambiguous
  - service / store fixtures over a private in-memory SQLite database
  - api_client: TestClient over the real app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any api/core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.errors import NotifierFailure
from auth.notifier import Notifier
from auth.passwords import CredentialHasher
from auth.service import AuthConfig, AuthService
from auth.store import UserStore
from auth.tokens import OTPGenerator, TokenSigner

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
T0 = datetime(2026, 1, 5, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class RecordingNotifier(Notifier):
    """Keeps every message instead of sending it. Set fail=True to simulate an SMTP outage."""

    def __init__(self) -> None:
        self.otps: list[tuple[str, str]] = []
        self.links: list[tuple[str, str]] = []
        self.messages: list[tuple[str, str]] = []
        self.fail = False

    def send_otp(self, to_email: str, code: str) -> None:
        if self.fail:
            raise NotifierFailure()
        self.otps.append((to_email, code))
        super().send_otp(to_email, code)

    def send_magic_link(self, to_email: str, link: str) -> None:
        if self.fail:
            raise NotifierFailure()
        self.links.append((to_email, link))
        super().send_magic_link(to_email, link)

    def deliver(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        self.messages.append((to_email, subject))

    def last_code_for(self, email: str) -> str:
        return [code for to, code in self.otps if to == email][-1]


class StubOTPGenerator(OTPGenerator):
    """Returns 100001, 100002, ... so consecutive codes always differ."""

    def __init__(self) -> None:
        super().__init__(length=6)
        self._counter = 100000

    def generate(self) -> str:
        self._counter += 1
        return str(self._counter)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> CredentialHasher:
    # Minimum bcrypt cost keeps the suite fast; production uses 12.
    return CredentialHasher(rounds=4)


@pytest.fixture
def store(hasher: CredentialHasher) -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:", hasher=hasher)
    yield s
    s.close()


@pytest.fixture
def signer(clock: FakeClock) -> TokenSigner:
    return TokenSigner(TEST_SECRET, clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(store, hasher, signer, notifier, clock) -> AuthService:
    return AuthService(
        store=store,
        hasher=hasher,
        signer=signer,
        otp_generator=StubOTPGenerator(),
        notifier=notifier,
        config=AuthConfig(session_ttl=timedelta(hours=1), magic_link_base_url="https://app.test/api/auth/verify"),
        clock=clock,
    )


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, auth_service: AuthService):
    """Return a lifespan that wires test components into app.state instead of building real ones."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, RecordingNotifier], None, None]:
    """Yield (client, notifier) for API integration tests.

    The TestClient uses the real FastAPI app and routes; only the component
    assembly is replaced so the suite never touches a real DB or SMTP relay.
    """
    hasher = CredentialHasher(rounds=4)
    # One named DB per test module so modules never see each other's users.
    db_name = f"test_auth_{request.module.__name__.rsplit('.', 1)[-1]}"
    user_store = UserStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true", hasher=hasher)
    notifier = RecordingNotifier()
    auth_service = AuthService(
        store=user_store,
        hasher=hasher,
        signer=TokenSigner(TEST_SECRET),
        otp_generator=StubOTPGenerator(),
        notifier=notifier,
    )

    app.router.lifespan_context = _patch_lifespan(user_store, auth_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, notifier

    user_store.close()
