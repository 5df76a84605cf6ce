"""
Prescription model.

The rendered PDF lives in object storage; `pdf_key` is filled in after the
prescription row is committed and stays NULL if rendering or upload failed.
"""

from datetime import datetime
from typing import Optional, Any

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, JSONType


class Prescription(Base):
    """Medications prescribed during a consultation."""

    __tablename__ = "prescriptions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), index=True)
    consultation_id: Mapped[int] = mapped_column(ForeignKey("consultations.id", ondelete="CASCADE"))
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))

    medications: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    """List of {name, dosage, frequency, duration, notes}."""

    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pdf_key: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    consultation = relationship("Consultation", back_populates="prescriptions")
    patient = relationship("Patient")
    doctor = relationship("Doctor")

    def __repr__(self) -> str:
        return f"<Prescription(id={self.id}, consultation_id={self.consultation_id})>"
