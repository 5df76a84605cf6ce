"""
Clinic model representing a tenant of the platform.

A clinic is the top-level entity that owns all staff, patients, services,
appointments and billing records. Every tenant-owned table carries a
`clinic_id` pointing back here and is only ever read through a tenant scope.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, TIMESTAMP, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, JSONType
from core.constants import MAX_STRING_LENGTH


class Clinic(Base):
    """Clinic (tenant) entity."""

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the clinic."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the clinic."""

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    logo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    """Object storage key of the clinic logo."""

    settings: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    """Free-form clinic settings edited from the settings page."""

    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    users = relationship("User", back_populates="clinic")
    doctors = relationship("Doctor", back_populates="clinic")
    patients = relationship("Patient", back_populates="clinic")

    def __repr__(self) -> str:
        return f"<Clinic(id={self.id}, name='{self.name}')>"
