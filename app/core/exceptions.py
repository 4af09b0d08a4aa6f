"""
Centralised custom exceptions.
Every exception carries a stable machine-readable `code` next to the human
message; the handlers in app.core.responses render both into the error envelope.
"""
from typing import Any, Optional
from fastapi import HTTPException, status

class AppException(HTTPException):
    code: str = "ERROR"

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        if code is not None:
            self.code = code
        self.details = details

class CredentialsException(AppException):
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"},
        )

# ── OTP ───────────────────────────────────────────────────────────────────────

class OTPDeliveryException(AppException):
    """Store or SMS gateway failed while sending. Details stay in the server log."""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send OTP",
            code="SEND_OTP_FAILED",
        )

class OTPExpiredException(AppException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="OTP expired or not found. Please request a new one.",
            code="OTP_EXPIRED",
        )

class TooManyOTPAttemptsException(AppException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Please request a new OTP.",
            code="OTP_TOO_MANY_ATTEMPTS",
        )

class InvalidOTPException(AppException):
    def __init__(self, remaining_attempts: int):
        if remaining_attempts > 0:
            detail = f"Invalid OTP. {remaining_attempts} attempts remaining."
        else:
            detail = "Invalid OTP. Please request a new one."
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            code="OTP_INVALID",
            details={"remainingAttempts": remaining_attempts},
        )
        self.remaining_attempts = remaining_attempts

# ── Tokens ────────────────────────────────────────────────────────────────────

class InvalidRefreshTokenException(AppException):
    """Expired, unknown, malformed, revoked or already-rotated refresh token."""
    def __init__(self, detail: str = "Invalid refresh token. Please log in again."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            code="INVALID_REFRESH_TOKEN",
        )
