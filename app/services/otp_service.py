"""
OTP service: generation, storage (hashed), and verification of phone codes.

Security design decisions:
  1. Raw OTP is NEVER stored: only a salted bcrypt hash.
  2. A new send deletes every unverified record for the phone, so only the
     latest code can ever verify.
  3. Codes expire after OTP_EXPIRY_MINUTES; expiry is checked lazily on verify.
  4. secrets.randbelow() is cryptographically secure and uniform over
     100000–999999.
  5. Each record allows OTP_MAX_ATTEMPTS guesses. The attempt is counted with
     an atomic UPDATE and committed before the hash is compared.

Record states (OTPVerification.status):
  PENDING  ──correct code──────────────▶ VERIFIED
  PENDING  ──wrong code, attempts left─▶ PENDING (attempts + 1)
  PENDING  ──wrong code, ceiling hit───▶ EXHAUSTED
  PENDING  ──TTL elapsed───────────────▶ EXPIRED
The call that strikes the ceiling still reports "invalid code, 0 remaining";
only a later call reports "too many attempts".
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

import httpx
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    InvalidOTPException,
    OTPDeliveryException,
    OTPExpiredException,
    TooManyOTPAttemptsException,
)
from app.core.security import hash_otp, verify_otp_hash
from app.core.timezone import utcnow
from app.models.otp import OTPStatus, OTPVerification
from app.services.sms_service import SMSGateway

logger = logging.getLogger(__name__)

# Statuses a verify call can still find. VERIFIED is terminal and invisible.
OPEN_STATUSES = (OTPStatus.PENDING, OTPStatus.EXHAUSTED)


def generate_otp() -> str:
    """
    Generate a cryptographically secure 6-digit OTP.
    secrets.randbelow(900000) gives 0–899999, +100000 gives 100000–999999.
    """
    return str(secrets.randbelow(900000) + 100000)


def send_code(db: Session, phone: str, gateway: SMSGateway) -> datetime:
    """
    Issue a fresh code for `phone` and hand it to the SMS gateway.

    Returns the expiry timestamp. Any store or gateway failure is logged here
    and surfaces to the caller only as OTPDeliveryException.
    """
    try:
        db.query(OTPVerification).filter(
            OTPVerification.phone == phone,
            OTPVerification.status != OTPStatus.VERIFIED,
        ).delete(synchronize_session=False)

        raw_otp = generate_otp()
        expires_at = utcnow() + timedelta(minutes=settings.otp_expiry_minutes)
        db.add(OTPVerification(
            phone=phone,
            code_hash=hash_otp(raw_otp),
            status=OTPStatus.PENDING,
            attempts=0,
            expires_at=expires_at,
        ))
        db.commit()

        delivered = gateway.send_otp(phone, raw_otp)
    except (SQLAlchemyError, httpx.HTTPError, RuntimeError) as exc:
        db.rollback()
        logger.exception("OTP delivery to %s failed: %s", phone, exc)
        raise OTPDeliveryException() from exc

    if not delivered:
        logger.error("SMS gateway %s rejected OTP for %s", type(gateway).__name__, phone)
        raise OTPDeliveryException()

    return expires_at


def _is_bypass_code(code: str) -> bool:
    return (
        settings.is_otp_dev_mode
        and bool(settings.otp_bypass_code)
        and secrets.compare_digest(code, settings.otp_bypass_code)
    )


def _latest_open_record(db: Session, phone: str) -> Optional[OTPVerification]:
    return (
        db.query(OTPVerification)
        .filter(
            OTPVerification.phone == phone,
            OTPVerification.status.in_(OPEN_STATUSES),
        )
        .order_by(OTPVerification.created_at.desc())
        .first()
    )


def verify_code(db: Session, phone: str, code: str) -> None:
    """
    Verify `code` for `phone`. Returns None on success, raises otherwise:
      OTPExpiredException          no open record, or it has expired
      TooManyOTPAttemptsException  the ceiling was reached by an earlier call
      InvalidOTPException          wrong code; carries remaining_attempts
    """
    max_attempts = settings.otp_max_attempts

    if _is_bypass_code(code):
        # Mark any outstanding record verified so the sweep can reclaim it.
        db.query(OTPVerification).filter(
            OTPVerification.phone == phone,
            OTPVerification.status.in_(OPEN_STATUSES),
        ).update({"status": OTPStatus.VERIFIED}, synchronize_session=False)
        db.commit()
        logger.warning("Development bypass code accepted for %s", phone)
        return

    now = utcnow()
    record = _latest_open_record(db, phone)

    if record is None:
        raise OTPExpiredException()

    if record.is_expired(now):
        if record.current_status(now) == OTPStatus.EXPIRED:
            record.status = OTPStatus.EXPIRED
            db.commit()
        raise OTPExpiredException()

    if record.status == OTPStatus.EXHAUSTED or record.attempts >= max_attempts:
        raise TooManyOTPAttemptsException()

    # Count the attempt before comparing. The guard on attempts/status makes a
    # concurrent verify that already took the last attempt win outright.
    claimed = (
        db.query(OTPVerification)
        .filter(
            OTPVerification.id == record.id,
            OTPVerification.status == OTPStatus.PENDING,
            OTPVerification.attempts < max_attempts,
        )
        .update({"attempts": OTPVerification.attempts + 1}, synchronize_session=False)
    )
    db.commit()
    if not claimed:
        raise TooManyOTPAttemptsException()

    db.refresh(record)

    if not verify_otp_hash(code, record.code_hash):
        remaining = max(max_attempts - record.attempts, 0)
        if remaining == 0:
            record.status = OTPStatus.EXHAUSTED
            db.commit()
        logger.info("Invalid OTP for %s, %d attempts remaining", phone, remaining)
        raise InvalidOTPException(remaining)

    verified = (
        db.query(OTPVerification)
        .filter(
            OTPVerification.id == record.id,
            OTPVerification.status == OTPStatus.PENDING,
        )
        .update({"status": OTPStatus.VERIFIED}, synchronize_session=False)
    )
    db.commit()
    if not verified:
        # Another request verified this record first; it cannot be used twice.
        raise OTPExpiredException()


def cleanup_expired(db: Session) -> int:
    """
    Delete every record that can no longer verify: expired, verified,
    exhausted or marked expired. Returns the number of rows removed.
    """
    removed = (
        db.query(OTPVerification)
        .filter(
            or_(
                OTPVerification.expires_at < utcnow(),
                OTPVerification.status != OTPStatus.PENDING,
            )
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return removed
