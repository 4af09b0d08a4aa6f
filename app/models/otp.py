import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Uuid, Index, Enum as SAEnum
from app.database import Base
from app.core.timezone import utcnow, as_utc


class OTPStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    EXHAUSTED = "EXHAUSTED"
    EXPIRED = "EXPIRED"


class OTPVerification(Base):
    """
    One-time code sent to a phone number.

    Security notes:
    - Raw code is NEVER stored: only the bcrypt hash.
    - A new send deletes every unverified record for the same phone, so at most
      one PENDING record is authoritative per phone.
    - `status` is the explicit state tag. PENDING moves to VERIFIED on a correct
      code, to EXHAUSTED when the attempt ceiling is struck. EXPIRED is applied
      lazily: a PENDING record past `expires_at` is reported as EXPIRED by
      `current_status()` and written back when a verify call finds it.
    """
    __tablename__ = "otp_verifications"
    __table_args__ = (
        Index("ix_otp_verifications_phone_status", "phone", "status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    phone = Column(String(20), nullable=False, index=True)
    code_hash = Column(String, nullable=False)
    status = Column(
        SAEnum(OTPStatus, name="otp_status"),
        nullable=False,
        default=OTPStatus.PENDING,
    )
    attempts = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def is_expired(self, now: datetime) -> bool:
        return as_utc(self.expires_at) <= now

    def current_status(self, now: datetime) -> OTPStatus:
        if self.status == OTPStatus.PENDING and self.is_expired(now):
            return OTPStatus.EXPIRED
        return self.status
