"""
Token service: access/refresh pair issuance, rotation and revocation.

  - Access tokens are stateless JWTs (sub = user id, phone) that live
    ACCESS_TOKEN_EXPIRE_MINUTES. They can never mint a new pair.
  - Refresh tokens are opaque random strings; only their SHA-256 digest is
    kept in refresh_tokens, which acts as an allow-list.
  - Every refresh consumes its token with a single DELETE. If two requests
    present the same token, only the one whose DELETE removed the row gets a
    new pair; the other is rejected and the replay is logged.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from jwt.exceptions import InvalidTokenError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import CredentialsException, InvalidRefreshTokenException
from app.core.security import (
    access_token_lifetime_seconds,
    create_access_token,
    decode_access_token,
    generate_refresh_token,
    hash_refresh_token,
)
from app.core.timezone import utcnow, as_utc
from app.models.refresh_token import RefreshToken
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime, seconds


def generate_tokens(db: Session, user_id: uuid.UUID, phone: str) -> TokenPair:
    refresh_token = generate_refresh_token()
    db.add(RefreshToken(
        user_id=user_id,
        token_hash=hash_refresh_token(refresh_token),
        expires_at=utcnow() + timedelta(days=settings.refresh_token_expire_days),
    ))
    db.commit()

    return TokenPair(
        access_token=create_access_token(str(user_id), phone),
        refresh_token=refresh_token,
        expires_in=access_token_lifetime_seconds(),
    )


def verify_access_token(token: str) -> dict:
    """Return the {sub, phone, ...} payload or raise CredentialsException."""
    try:
        return decode_access_token(token)
    except InvalidTokenError:
        raise CredentialsException()


def refresh_access_token(db: Session, refresh_token: Optional[str]) -> TokenPair:
    """
    Trade a live refresh token for a brand-new pair. The presented token is
    deleted in the same step, so it can be used at most once.
    """
    if not refresh_token:
        raise InvalidRefreshTokenException()

    token_hash = hash_refresh_token(refresh_token)
    stored = db.query(RefreshToken).filter(RefreshToken.token_hash == token_hash).first()
    if stored is None:
        logger.warning("Unknown or already-rotated refresh token presented")
        raise InvalidRefreshTokenException()

    user_id = stored.user_id
    expired = as_utc(stored.expires_at) <= utcnow()

    consumed = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == token_hash)
        .delete(synchronize_session=False)
    )
    db.commit()

    if expired:
        raise InvalidRefreshTokenException("Refresh token expired. Please log in again.")
    if not consumed:
        logger.warning("Refresh token for user %s replayed concurrently", user_id)
        raise InvalidRefreshTokenException()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise InvalidRefreshTokenException()

    return generate_tokens(db, user.id, user.phone)


def revoke_refresh_token(db: Session, refresh_token: Optional[str]) -> None:
    """Idempotent: unknown or already-revoked tokens are ignored."""
    if not refresh_token:
        return
    db.query(RefreshToken).filter(
        RefreshToken.token_hash == hash_refresh_token(refresh_token)
    ).delete(synchronize_session=False)
    db.commit()


def revoke_all_user_tokens(db: Session, user_id: uuid.UUID) -> int:
    revoked = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return revoked


def cleanup_expired_tokens(db: Session) -> int:
    removed = (
        db.query(RefreshToken)
        .filter(RefreshToken.expires_at < utcnow())
        .delete(synchronize_session=False)
    )
    db.commit()
    return removed
