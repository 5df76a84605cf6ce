"""
Appointment model representing a booked slot with a doctor.

Slots are stored as a calendar date plus zero-padded "HH:MM" start and end
strings. Zero padding keeps lexicographic comparison equal to chronological
comparison, which the double-booking check relies on.
"""

from datetime import datetime, date
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP, Date, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Appointment(Base):
    """A patient's booking with a doctor on a given date."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))
    service_id: Mapped[Optional[int]] = mapped_column(ForeignKey("services.id"), nullable=True)

    appointment_date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[str] = mapped_column(String(5))  # "HH:MM"
    end_time: Mapped[str] = mapped_column(String(5))  # "HH:MM"

    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED")
    """SCHEDULED, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED or NO_SHOW. No transition rules."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")
    service = relationship("Service")
    consultation = relationship("Consultation", back_populates="appointment", uselist=False)

    __table_args__ = (
        # Conflict detection scans one doctor's day
        Index('idx_appointments_doctor_day', 'clinic_id', 'doctor_id', 'appointment_date'),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, "
            f"date={self.appointment_date}, {self.start_time}-{self.end_time}, status='{self.status}')>"
        )
