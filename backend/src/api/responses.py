"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import datetime, date
from typing import Any, Dict, List, Optional

from pydantic import field_validator

from api.shared import CamelModel


class OkResponse(CamelModel):
    ok: bool = True


class UserSummary(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None


class PatientSummary(CamelModel):
    id: int
    user: UserSummary


class DoctorSummary(CamelModel):
    id: int
    specialization: Optional[str] = None
    user: UserSummary


class ServiceSummary(CamelModel):
    id: int
    name: str
    price: float
    duration: int


class PatientResponse(CamelModel):
    """Response model for patient information."""
    id: int
    user_id: int
    clinic_id: int
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    allergies: Optional[str] = None
    chronic_conditions: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user: UserSummary


class DoctorResponse(CamelModel):
    id: int
    user_id: int
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    consultation_fee: Optional[float] = None
    biography: Optional[str] = None
    availability: Dict[str, Any] = {}
    user: UserSummary


class ServiceResponse(CamelModel):
    id: int
    clinic_id: int
    name: str
    description: Optional[str] = None
    price: float
    duration: int
    category: str
    is_active: bool
    created_at: datetime


class AppointmentResponse(CamelModel):
    """Appointment with patient, doctor and service summaries."""
    id: int
    clinic_id: int
    patient_id: int
    doctor_id: int
    service_id: Optional[int] = None
    appointment_date: date
    start_time: str
    end_time: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None
    doctor: Optional[DoctorSummary] = None
    service: Optional[ServiceSummary] = None


class AppointmentCancelResponse(CamelModel):
    ok: bool = True
    appointment: AppointmentResponse


class MedicationItem(CamelModel):
    name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None


class PrescriptionResponse(CamelModel):
    id: int
    consultation_id: int
    patient_id: int
    doctor_id: int
    medications: List[MedicationItem]
    instructions: Optional[str] = None
    pdf_url: Optional[str] = None
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ConsultationResponse(CamelModel):
    """Consultation as exposed to clients (status lowercase)."""
    id: int
    appointment_id: int
    patient_id: int
    doctor_id: int
    consultation_date: datetime
    chief_complaint: str
    diagnosis: Optional[str] = None
    notes: Optional[str] = None
    vital_signs: Optional[Dict[str, Any]] = None
    status: str
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    prescriptions: Optional[List[PrescriptionResponse]] = None

    @field_validator("status", mode="before")
    @classmethod
    def lowercase_status(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v


class ConsultationEnvelope(CamelModel):
    success: bool = True
    data: Optional[ConsultationResponse] = None
    message: Optional[str] = None


class ConsultationListEnvelope(CamelModel):
    success: bool = True
    data: List[ConsultationResponse]


class PaymentResponse(CamelModel):
    id: int
    invoice_id: int
    amount: float
    payment_method: str
    status: str
    stripe_payment_intent_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class InvoiceItemResponse(CamelModel):
    description: str
    quantity: int
    unit_price: float
    service_id: Optional[int] = None


class InvoiceResponse(CamelModel):
    id: int
    clinic_id: int
    invoice_number: str
    patient_id: int
    items: List[InvoiceItemResponse]
    subtotal: float
    tax: float
    total: float
    status: str
    notes: Optional[str] = None
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    patient: Optional[PatientSummary] = None
    payments: List[PaymentResponse] = []


class PaymentIntentResponse(CamelModel):
    client_secret: str
    payment: PaymentResponse


class StaffResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None


class ClinicResponse(CamelModel):
    id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    logo_url: Optional[str] = None
    settings: Dict[str, Any] = {}
    created_at: datetime


class ProfileResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    clinic_id: int
