"""
Consultation model: the clinical record produced from one appointment.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, JSONType


class Consultation(Base):
    """Clinical notes for an appointment. At most one per appointment."""

    __tablename__ = "consultations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), index=True)
    appointment_id: Mapped[int] = mapped_column(ForeignKey("appointments.id"), unique=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))

    consultation_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    chief_complaint: Mapped[str] = mapped_column(Text)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    vital_signs: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED")

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    appointment = relationship("Appointment", back_populates="consultation")
    patient = relationship("Patient")
    doctor = relationship("Doctor")
    prescriptions = relationship(
        "Prescription",
        back_populates="consultation",
        cascade="all, delete-orphan",
        order_by="Prescription.created_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<Consultation(id={self.id}, appointment_id={self.appointment_id}, status='{self.status}')>"
