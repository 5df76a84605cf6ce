"""
Patient service for shared patient business logic.

A patient is a PATIENT user account plus a clinical profile; both are created,
updated and deleted together.
"""

import logging
import secrets
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from core.constants import ROLE_PATIENT
from core.tenant import TenantScope
from models import Patient, User
from services.auth_service import AuthService, normalize_email

logger = logging.getLogger(__name__)

PATIENT_PROFILE_FIELDS = (
    "date_of_birth",
    "gender",
    "blood_type",
    "address",
    "emergency_contact",
    "allergies",
    "chronic_conditions",
)
PATIENT_USER_FIELDS = ("first_name", "last_name", "email", "phone")


class PatientService:
    """
    Service class for patient operations.

    Contains business logic for patient management that is shared
    across different API endpoints.
    """

    @staticmethod
    def list_patients(scope: TenantScope) -> List[Patient]:
        """All patients of the clinic, newest first."""
        return (
            scope.query(Patient)
            .options(joinedload(Patient.user))
            .order_by(Patient.created_at.desc(), Patient.id.desc())
            .all()
        )

    @staticmethod
    def get_patient(scope: TenantScope, patient_id: int) -> Patient:
        return scope.get_or_404(Patient, patient_id, "Patient not found")

    @staticmethod
    def get_patient_for_user(scope: TenantScope, user_id: int) -> Optional[Patient]:
        """The patient profile linked to a PATIENT login, if any."""
        return scope.query(Patient, Patient.user_id == user_id).first()

    @staticmethod
    def visible_patient_id(scope: TenantScope, role: str, user_id: int) -> Optional[int]:
        """
        Restrict PATIENT logins to their own records.

        Returns None for staff (no restriction), otherwise the caller's patient id,
        or -1 when the login has no patient profile so nothing matches.
        """
        if role != ROLE_PATIENT:
            return None
        patient = PatientService.get_patient_for_user(scope, user_id)
        return patient.id if patient else -1

    @staticmethod
    def create_patient(
        scope: TenantScope,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: Optional[str] = None,
        phone: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        gender: Optional[str] = None,
        blood_type: Optional[str] = None,
        address: Optional[str] = None,
        emergency_contact: Optional[str] = None,
        allergies: Optional[str] = None,
        chronic_conditions: Optional[str] = None,
    ) -> Patient:
        """
        Create a PATIENT user and its patient profile in one transaction.

        Without an explicit password the account gets a random one; the
        patient sets their own through the password reset flow.

        Raises:
            HTTPException: 400 if the email is already registered
        """
        user = AuthService.create_user_account(
            scope,
            email=email,
            password=password or secrets.token_urlsafe(16),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=ROLE_PATIENT,
        )

        patient = Patient(
            user_id=user.id,
            date_of_birth=date_of_birth,
            gender=gender,
            blood_type=blood_type,
            address=address,
            emergency_contact=emergency_contact,
            allergies=allergies,
            chronic_conditions=chronic_conditions,
        )
        scope.add(patient)
        scope.commit()
        scope.refresh(patient)

        logger.info(f"Created patient {patient.id} for clinic {scope.clinic_id}")
        return patient

    @staticmethod
    def update_patient(
        scope: TenantScope,
        patient_id: int,
        user_updates: Optional[Dict[str, Any]] = None,
        patient_updates: Optional[Dict[str, Any]] = None,
    ) -> Patient:
        """Apply partial updates to the patient's account and profile."""
        patient = PatientService.get_patient(scope, patient_id)
        user: User = patient.user

        for field, value in (user_updates or {}).items():
            if field not in PATIENT_USER_FIELDS or (value is None and field != "phone"):
                continue
            if field == "email" and value is not None:
                value = normalize_email(value)
                if value != user.email and AuthService.email_registered(scope.db, value):
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="Email already registered"
                    )
            setattr(user, field, value)

        for field, value in (patient_updates or {}).items():
            if field in PATIENT_PROFILE_FIELDS:
                setattr(patient, field, value)

        scope.commit()
        scope.refresh(patient)
        return patient

    @staticmethod
    def delete_patient(scope: TenantScope, patient_id: int) -> None:
        """
        Delete the patient profile and its user account.

        Raises:
            HTTPException: 404 if not found, 409 if clinical or billing records still reference it
        """
        patient = PatientService.get_patient(scope, patient_id)
        user = patient.user
        try:
            scope.delete(patient)
            if user is not None:
                scope.delete(user)
            scope.commit()
        except IntegrityError:
            scope.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Patient has related records and cannot be deleted"
            )
        logger.info(f"Deleted patient {patient_id} from clinic {scope.clinic_id}")
