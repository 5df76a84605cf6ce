"""
Patient model representing individuals who receive treatment at clinics.

Every patient has a PATIENT user account (name, email, phone, login) plus this
clinical profile. Each patient belongs to exactly one clinic.
"""

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP, Date, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, date
from typing import Optional

from core.database import Base


class Patient(Base):
    """
    Patient entity representing an individual who receives treatment at a clinic.

    Patients can have many appointments, consultations, prescriptions and
    invoices, all of which live in the same clinic as the patient.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    """The PATIENT user account that holds name and contact details."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    """Reference to the clinic where this patient receives treatment."""

    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    gender: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """Optional gender. Valid values: 'MALE', 'FEMALE', 'OTHER'."""

    blood_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    allergies: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    chronic_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the patient was first created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    user = relationship("User", back_populates="patient_profile")
    """The login account for this patient."""

    clinic = relationship("Clinic", back_populates="patients")
    """Relationship to the Clinic entity where this patient receives treatment."""

    appointments = relationship("Appointment", back_populates="patient")
    """Relationship to all Appointment entities booked by this patient."""

    __table_args__ = (
        Index('idx_patients_clinic_created', 'clinic_id', 'created_at'),
    )

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, clinic_id={self.clinic_id}, user_id={self.user_id})>"
