"""
Auth router: phone OTP login, token refresh, logout.

Flow:
  1. POST /auth/send-otp    → code sent by SMS (logged in development mode)
  2. POST /auth/verify-otp  → code checked → account found or created → tokens
  3. POST /auth/refresh     → refresh token rotated → new token pair
  4. POST /auth/logout      → refresh token revoked
     POST /auth/logout-all  → every refresh token of the caller revoked
     GET  /auth/me          → current user (Bearer access token)

The access token always travels in the JSON body / Authorization header.
The refresh token travels by body or by HttpOnly cookie, per the transport
strategy selected at startup (app.core.token_transport).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.core.dependencies import get_current_user
from app.core.phone import normalize_phone
from app.core.rate_limiter import limiter
from app.core.token_transport import RefreshTokenTransport, get_token_transport
from app.models.user import User
from app.schemas.auth import (
    AuthUserOut, MessageResponse, RefreshTokenRequest, SendOTPRequest,
    SendOTPResponse, TokensOut, UserProfileOut, VerifyOTPRequest, VerifyOTPResponse,
)
from app.services import auth_service
from app.services.sms_service import SMSGateway, get_sms_gateway
from app.services.token_service import TokenPair

router = APIRouter()


def _tokens_payload(response: Response, tokens: TokenPair, transport: RefreshTokenTransport) -> dict:
    payload = {"accessToken": tokens.access_token, "expiresIn": tokens.expires_in}
    return transport.write(response, payload, tokens.refresh_token)


# ── OTP ───────────────────────────────────────────────────────────────────────

@router.post("/send-otp", response_model=SendOTPResponse, response_model_exclude_none=True)
@limiter.limit("3/minute")
def send_otp(
    request: Request,
    body: SendOTPRequest,
    db: Session = Depends(get_db),
    gateway: SMSGateway = Depends(get_sms_gateway),
):
    """
    Send a one-time code to the phone.
    Always the same response shape: never reveals whether the phone has an account.
    """
    phone = normalize_phone(body.phone, body.country_code)
    expires_at = auth_service.send_otp(db, phone, gateway)

    result = {"message": "OTP sent successfully", "phone": phone, "expiresAt": expires_at}
    if settings.is_otp_dev_mode:
        result["devHint"] = f"Use code {settings.otp_bypass_code} for testing"
    return result


@router.post(
    "/verify-otp",
    response_model=VerifyOTPResponse,
    response_model_exclude_none=True,
    status_code=201,
)
@limiter.limit("10/minute")
def verify_otp(
    request: Request,
    response: Response,
    body: VerifyOTPRequest,
    db: Session = Depends(get_db),
    transport: RefreshTokenTransport = Depends(get_token_transport),
):
    """Verify the code and receive tokens. Creates the account on first login."""
    phone = normalize_phone(body.phone, body.country_code)
    user, tokens, is_new_user = auth_service.verify_otp(db, phone, body.code)

    return {
        "message": "Account created successfully" if is_new_user else "Login successful",
        "user": AuthUserOut.model_validate(user),
        "tokens": _tokens_payload(response, tokens, transport),
        "isNewUser": is_new_user,
    }


# ── Tokens ────────────────────────────────────────────────────────────────────

@router.post("/refresh", response_model=TokensOut, response_model_exclude_none=True)
@limiter.limit("20/minute")
def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db),
    transport: RefreshTokenTransport = Depends(get_token_transport),
):
    """
    Exchange a refresh token for a new access + refresh token pair.
    The presented refresh token is consumed: presenting it again fails and
    the client must log in with a new OTP.
    """
    presented = transport.read(request, body.refresh_token if body else None)
    tokens = auth_service.refresh(db, presented)
    return _tokens_payload(response, tokens, transport)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db),
    transport: RefreshTokenTransport = Depends(get_token_transport),
):
    """Revoke the refresh token. Succeeds even if it was already revoked."""
    presented = transport.read(request, body.refresh_token if body else None)
    auth_service.logout(db, presented)
    transport.clear(response)
    return {"message": "Logged out successfully"}


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transport: RefreshTokenTransport = Depends(get_token_transport),
):
    """Revoke every refresh token of the current user (all devices)."""
    auth_service.logout_all(db, current_user)
    transport.clear(response)
    return {"message": "Logged out from all devices"}


# ── Current user ──────────────────────────────────────────────────────────────

@router.get("/me", response_model=UserProfileOut)
def me(current_user: User = Depends(get_current_user)):
    """
    Return the authenticated user's profile.
    No DB call needed: get_current_user already fetched the user.
    """
    return current_user
