"""
Password Reset Token model.

Short-lived, single-use tokens emailed to a user who requested a password reset.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from utils.datetime_utils import ensure_utc, utc_now


class PasswordResetToken(Base):
    """Single-use password reset credential."""

    __tablename__ = "password_reset_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    token: Mapped[str] = mapped_column(String(255), unique=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    user = relationship("User")

    @property
    def is_active(self) -> bool:
        """Check if token is still valid for use."""
        expires_at = ensure_utc(self.expires_at)
        assert expires_at is not None
        return self.used_at is None and expires_at > utc_now()

    def mark_used(self) -> None:
        self.used_at = utc_now()

    def __repr__(self) -> str:
        return f"<PasswordResetToken(id={self.id}, user_id={self.user_id}, is_active={self.is_active})>"
