# Package initialization
# Import all models to ensure relationships are properly established
from .clinic import Clinic
from .user import User
from .doctor import Doctor
from .patient import Patient
from .service import Service
from .appointment import Appointment
from .consultation import Consultation
from .prescription import Prescription
from .invoice import Invoice
from .payment import Payment
from .invite_token import InviteToken
from .password_reset_token import PasswordResetToken

__all__ = [
    "Clinic",
    "User",
    "Doctor",
    "Patient",
    "Service",
    "Appointment",
    "Consultation",
    "Prescription",
    "Invoice",
    "Payment",
    "InviteToken",
    "PasswordResetToken",
]
