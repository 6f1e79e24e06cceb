"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/auth/signup           -- create pending account, email OTP; 201 + session token
  POST /api/auth/login            -- email/password login; session token
  POST /api/auth/verify-otp       -- confirm emailed code; activates the account
  POST /api/auth/resend-otp       -- replace the outstanding code and email it again
  POST /api/auth/forgot-password  -- issue a 1-hour reset token
  POST /api/auth/send-magic-link  -- email a 15-minute sign-in link
  GET  /api/auth/verify?token=    -- exchange a magic-link token for a 7-day session token

Handlers are thin: one AuthService call each. Failures propagate as AuthError
and are rendered by the exception handler in api/main.py.

Handlers are plain `def` so FastAPI runs them in its thread pool; bcrypt,
the database and SMTP all block.

Security:
  Responses that carry a token set Cache-Control: no-store.
  Login failure is the same 401 for unknown email and wrong password.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.models import (
    AuthResponse,
    EmailRequest,
    LoginRequest,
    ResetTokenResponse,
    SessionTokenResponse,
    SignupRequest,
    StatusResponse,
    UserPublic,
    VerifyOTPRequest,
)
from auth.service import AuthService

router = APIRouter(prefix="/auth")


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _respond(body: BaseModel, status_code: int = 200, *, no_store: bool = False) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))
    if no_store:
        resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Signup and OTP
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(body: SignupRequest, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Create a pending account and email a verification code.

    The account exists even if the email then fails to send; the client
    should offer resend-otp in that case.
    """
    result = svc.signup(
        full_name=body.full_name,
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
        is_individual=body.is_individual,
    )
    return _respond(
        AuthResponse(
            message="OTP sent to your email for verification.",
            token=result.token,
            user=UserPublic.from_user(result.user),
        ),
        201,
        no_store=True,
    )


@router.post("/verify-otp", response_model=StatusResponse)
def verify_otp(body: VerifyOTPRequest, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    svc.verify_otp(body.email, body.code)
    return _respond(StatusResponse(message="Email verified successfully."))


@router.post("/resend-otp", response_model=StatusResponse)
def resend_otp(body: EmailRequest, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    svc.resend_otp(body.email)
    return _respond(StatusResponse(message="New OTP sent to your email."))


# ---------------------------------------------------------------------------
# Password login and reset
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    result = svc.login(body.email, body.password)
    return _respond(AuthResponse(token=result.token, user=UserPublic.from_user(result.user)), no_store=True)


@router.post("/forgot-password", response_model=ResetTokenResponse)
def forgot_password(body: EmailRequest, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Issue a reset token.

    The token is returned in the body rather than emailed. Clients must treat
    it as a secret.
    """
    reset_token = svc.forgot_password(body.email)
    return _respond(ResetTokenResponse(message="Reset token issued.", reset_token=reset_token), no_store=True)


# ---------------------------------------------------------------------------
# Magic link
# ---------------------------------------------------------------------------


@router.post("/send-magic-link", response_model=StatusResponse)
def send_magic_link(body: EmailRequest, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    svc.send_magic_link(body.email)
    return _respond(StatusResponse(message="Magic link sent to your email."))


@router.get("/verify", response_model=SessionTokenResponse)
def verify_magic_link(token: Optional[str] = None, svc: AuthService = Depends(get_auth_service)) -> JSONResponse:
    session_token = svc.verify_magic_link(token)
    return _respond(
        SessionTokenResponse(message="Authentication successful.", session_token=session_token),
        no_store=True,
    )
