"""
Auth service: the send-code / verify-code / refresh / logout cycle.
Keeps routers thin: routers only handle HTTP and token transport,
services handle logic.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.user import User
from app.services import otp_service, token_service, user_service
from app.services.sms_service import SMSGateway
from app.services.token_service import TokenPair

logger = logging.getLogger(__name__)


def send_otp(db: Session, phone: str, gateway: SMSGateway) -> datetime:
    """Issues a new code. Same response whether or not the phone has an account."""
    return otp_service.send_code(db, phone, gateway)


def verify_otp(db: Session, phone: str, code: str) -> tuple[User, TokenPair, bool]:
    """
    Verifies the code, then finds or creates the account for this phone.
    Returns (user, tokens, is_new_user). The first verification for a phone
    provisions the account with the placeholder name.
    """
    otp_service.verify_code(db, phone, code)

    user, is_new_user = user_service.find_or_create(db, phone)
    if is_new_user:
        logger.info("Provisioned user %s on first verification", user.id)

    tokens = token_service.generate_tokens(db, user.id, user.phone)
    return user, tokens, is_new_user


def refresh(db: Session, refresh_token: str | None) -> TokenPair:
    return token_service.refresh_access_token(db, refresh_token)


def logout(db: Session, refresh_token: str | None) -> None:
    token_service.revoke_refresh_token(db, refresh_token)


def logout_all(db: Session, user: User) -> int:
    revoked = token_service.revoke_all_user_tokens(db, user.id)
    logger.info("Revoked %d refresh tokens for user %s", revoked, user.id)
    return revoked


def cleanup_auth_records(db: Session) -> dict[str, int]:
    """Storage sweep for codes and refresh tokens that can no longer be used."""
    return {
        "otp_records": otp_service.cleanup_expired(db),
        "refresh_tokens": token_service.cleanup_expired_tokens(db),
    }
