"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 5000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:3000",
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = list(dict.fromkeys(origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()))

# User roles
ROLE_ADMIN = "ADMIN"
ROLE_DOCTOR = "DOCTOR"
ROLE_RECEPTIONIST = "RECEPTIONIST"
ROLE_PATIENT = "PATIENT"
USER_ROLES = (ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST, ROLE_PATIENT)
STAFF_ROLES = (ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST)

# Appointment statuses
APPOINTMENT_STATUSES = ("SCHEDULED", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED", "NO_SHOW")
APPOINTMENT_STATUS_SCHEDULED = "SCHEDULED"
APPOINTMENT_STATUS_CANCELLED = "CANCELLED"

# Consultation statuses (stored uppercase, exposed lowercase)
CONSULTATION_STATUSES = ("SCHEDULED", "COMPLETED", "CANCELLED")

# Invoice statuses
INVOICE_STATUSES = ("PENDING", "PAID", "PARTIALLY_PAID", "OVERDUE", "CANCELLED")
INVOICE_STATUS_PENDING = "PENDING"
INVOICE_STATUS_PAID = "PAID"
INVOICE_STATUS_PARTIALLY_PAID = "PARTIALLY_PAID"

# Payments
PAYMENT_METHODS = ("STRIPE", "CASH", "CARD", "INSURANCE")
PAYMENT_STATUS_PENDING = "PENDING"
PAYMENT_STATUS_COMPLETED = "COMPLETED"
PAYMENT_STATUS_FAILED = "FAILED"
PAYMENT_STATUS_REFUNDED = "REFUNDED"
PAYMENT_STATUSES = (
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_FAILED,
    PAYMENT_STATUS_REFUNDED,
)

# Service catalog
SERVICE_CATEGORIES = ("CONSULTATION", "PROCEDURE", "DIAGNOSTIC", "THERAPY", "SURGERY", "OTHER")

# Patient demographics
GENDERS = ("MALE", "FEMALE", "OTHER")

# Invoice numbering: INV-<clinic id>-<sequence>
INVOICE_NUMBER_CLINIC_DIGITS = 6
INVOICE_NUMBER_SEQUENCE_DIGITS = 5

# Token sizes (bytes of randomness, hex encoded)
INVITE_TOKEN_BYTES = 20
PASSWORD_RESET_TOKEN_BYTES = 24

# Object storage prefixes
PRESCRIPTION_PDF_PREFIX = "prescriptions"
CLINIC_LOGO_PREFIX = "clinic-logos"
