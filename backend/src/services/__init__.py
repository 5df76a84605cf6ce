"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints.
"""

from .auth_service import AuthService
from .patient_service import PatientService
from .practitioner_service import PractitionerService
from .appointment_service import AppointmentService
from .consultation_service import ConsultationService
from .prescription_service import PrescriptionService
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .service_management_service import ServiceManagementService
from .invite_service import InviteService
from .password_reset_service import PasswordResetService
from .staff_service import StaffService
from .settings_service import SettingsService

__all__ = [
    "AuthService",
    "PatientService",
    "PractitionerService",
    "AppointmentService",
    "ConsultationService",
    "PrescriptionService",
    "InvoiceService",
    "PaymentService",
    "ServiceManagementService",
    "InviteService",
    "PasswordResetService",
    "StaffService",
    "SettingsService",
]
