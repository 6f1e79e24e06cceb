"""
api/main.py -- FastAPI application entry point for AuthGate.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware      -- adds CORS headers for configured browser origins
  2. request logging     -- method, path, status, latency, client per request

Lifespan builds every auth component from Settings exactly once and wires
them into app.state.auth_service. Nothing below the lifespan reads
configuration on its own.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.errors import AuthError
from auth.notifier import LogNotifier, Notifier, SMTPNotifier
from auth.passwords import CredentialHasher
from auth.service import AuthConfig, AuthService
from auth.store import UserStore
from auth.tokens import OTPGenerator, TokenSigner
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")


# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


def build_notifier(settings: Settings) -> Notifier:
    if not settings.smtp_host:
        logger.warning("SMTP_HOST not set -- emails will be written to the log instead of sent")
        return LogNotifier()
    return SMTPNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        from_email=settings.mail_from,
    )


def build_auth_service(settings: Settings, store: UserStore, hasher: CredentialHasher) -> AuthService:
    return AuthService(
        store=store,
        hasher=hasher,
        signer=TokenSigner(settings.secret_key),
        otp_generator=OTPGenerator(settings.otp_length),
        notifier=build_notifier(settings),
        config=AuthConfig.from_settings(settings),
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store and service on startup; dispose the engine on shutdown."""
    settings = get_settings()
    logger.info("AuthGate API starting up")
    hasher = CredentialHasher(rounds=settings.bcrypt_rounds)
    app.state.user_store = UserStore(db_url=settings.database_url, hasher=hasher)
    app.state.auth_service = build_auth_service(settings, app.state.user_store, hasher)
    logger.info("Auth initialized")

    yield

    app.state.user_store.close()
    logger.info("AuthGate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AuthGate API",
    description="Account signup, login, and email verification by one-time code or magic link.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.include_router(auth_router, prefix="/api", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, details=details)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are a 400 like every other input problem on this API."""
    details = {".".join(str(p) for p in err["loc"] if p != "body") or "body": err["msg"] for err in exc.errors()}
    return _error(400, "validation_error", "Request validation failed.", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and whether the user table is reachable."""
    try:
        request.app.state.user_store.has_users()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check database probe failed")
        database = "error"
    return HealthResponse(version=__version__, database=database)
