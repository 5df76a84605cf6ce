# pyright: reportMissingTypeStubs=false
"""
Patient Management API endpoints.
"""

import logging
from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_front_desk
from core.constants import GENDERS
from core.tenant import TenantScope
from services import PatientService
from api.shared import (
    CamelModel,
    validate_choice,
    validate_email,
    validate_email_optional,
    validate_password,
    validate_required_text,
)
from api.responses import OkResponse, PatientResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class PatientProfileFields(CamelModel):
    date_of_birth: Optional[date_type] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    allergies: Optional[str] = None
    chronic_conditions: Optional[str] = None

    @field_validator('gender')
    @classmethod
    def validate_gender(cls, v: Optional[str]) -> Optional[str]:
        return validate_choice(v, GENDERS, "gender")

    @field_validator('date_of_birth')
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date_type]) -> Optional[date_type]:
        if v is not None and v > date_type.today():
            raise ValueError("dateOfBirth cannot be in the future")
        return v


class PatientCreateRequest(PatientProfileFields):
    """Request model for registering a patient."""
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    password: Optional[str] = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Name", 100)

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(v)

    @field_validator('password')
    @classmethod
    def validate_password_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_password(v) if v else None


class PatientUserUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_required_text(v, "Name", 100) if v is not None else None

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_email_optional(v)


class PatientUpdateRequest(CamelModel):
    """Request model for updating a patient: account fields and profile fields separately."""
    user: Optional[PatientUserUpdate] = None
    patient: Optional[PatientProfileFields] = None


@router.get("", summary="List all patients", response_model=List[PatientResponse])
async def list_patients(
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[PatientResponse]:
    """List the clinic's patients, newest first."""
    patients = PatientService.list_patients(scope)
    return [PatientResponse.model_validate(p) for p in patients]


@router.post("", summary="Register a patient", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    request: PatientCreateRequest,
    current_user: UserContext = Depends(require_front_desk),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PatientResponse:
    """Create a PATIENT account and its profile."""
    try:
        patient = PatientService.create_patient(scope, **request.model_dump())
        return PatientResponse.model_validate(patient)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating patient: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create patient"
        )


@router.get("/{patient_id}", summary="Get patient", response_model=PatientResponse)
async def get_patient(
    patient_id: int,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PatientResponse:
    return PatientResponse.model_validate(PatientService.get_patient(scope, patient_id))


@router.put("/{patient_id}", summary="Update patient", response_model=PatientResponse)
async def update_patient(
    patient_id: int,
    request: PatientUpdateRequest,
    current_user: UserContext = Depends(require_front_desk),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PatientResponse:
    try:
        patient = PatientService.update_patient(
            scope,
            patient_id,
            user_updates=request.user.model_dump(exclude_unset=True) if request.user else None,
            patient_updates=request.patient.model_dump(exclude_unset=True) if request.patient else None,
        )
        return PatientResponse.model_validate(patient)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating patient {patient_id}: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update patient"
        )


@router.delete("/{patient_id}", summary="Delete patient", response_model=OkResponse)
async def delete_patient(
    patient_id: int,
    current_user: UserContext = Depends(require_front_desk),
    scope: TenantScope = Depends(get_tenant_scope),
) -> OkResponse:
    PatientService.delete_patient(scope, patient_id)
    return OkResponse()
