import uuid
from sqlalchemy import Column, String, DateTime, Uuid, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.core.timezone import utcnow


class RefreshToken(Base):
    """
    Server-side allow-list of live refresh tokens.

    Only the SHA-256 digest of the opaque token is stored. A row is deleted the
    moment its token is consumed (rotation) or revoked (logout), so a replayed
    token finds nothing and is rejected.
    """
    __tablename__ = "refresh_tokens"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="refresh_tokens")
