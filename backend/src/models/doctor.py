"""
Doctor profile attached to a DOCTOR user.

Appointments, consultations and prescriptions reference the profile rather
than the user row so that clinical data survives account changes.
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, JSONType


class Doctor(Base):
    """Clinical profile for a practitioner."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), index=True)

    specialization: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    license_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    consultation_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    biography: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    availability: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    """Weekly availability keyed by weekday, e.g. {"monday": [{"start": "09:00", "end": "17:00"}]}."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    user = relationship("User", back_populates="doctor_profile")
    clinic = relationship("Clinic", back_populates="doctors")
    appointments = relationship("Appointment", back_populates="doctor")

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, user_id={self.user_id}, clinic_id={self.clinic_id})>"
