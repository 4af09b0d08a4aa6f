import uuid
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship
from app.database import Base
from app.core.timezone import utcnow

DEFAULT_USER_NAME = "User"


class User(Base):
    """
    A person identified by phone number.
    Created lazily the first time a phone completes OTP verification.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    phone = Column(String(20), unique=True, nullable=False, index=True)  # E.164
    name = Column(String(100), nullable=False, default=DEFAULT_USER_NAME)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # ── Relationships ──────────────────────────────────────────────────────────
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")
