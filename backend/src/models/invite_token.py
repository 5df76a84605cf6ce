"""
Invite Token model for invitation-based staff onboarding.

Handles secure token validation for staff invitations with expiration and
one-time use.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from utils.datetime_utils import ensure_utc, utc_now


class InviteToken(Base):
    """Single-use invitation to join a clinic with a given role."""

    __tablename__ = "invite_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    token: Mapped[str] = mapped_column(String(255), unique=True)
    email: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20))
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    invited_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    clinic = relationship("Clinic")

    __table_args__ = (
        Index('idx_invite_tokens_clinic_email', 'clinic_id', 'email'),
    )

    @property
    def is_active(self) -> bool:
        """Check if token is still valid for use."""
        expires_at = ensure_utc(self.expires_at)
        assert expires_at is not None
        return self.used_at is None and expires_at > utc_now()

    def mark_used(self) -> None:
        self.used_at = utc_now()

    def __repr__(self) -> str:
        return f"<InviteToken(id={self.id}, clinic_id={self.clinic_id}, is_active={self.is_active})>"
