# pyright: reportMissingTypeStubs=false
"""
Consultation API endpoints.

Responses use the `{success, data, message}` envelope; statuses are lowercase
on the wire.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_admin, require_clinician
from core.constants import CONSULTATION_STATUSES
from core.tenant import TenantScope
from models import Consultation
from services import ConsultationService, PatientService
from api.shared import CamelModel, validate_choice, validate_notes, validate_required_text
from api.responses import (
    ConsultationEnvelope,
    ConsultationListEnvelope,
    ConsultationResponse,
    PrescriptionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class ConsultationCreateRequest(CamelModel):
    appointment_id: int
    patient_id: int
    doctor_id: int
    chief_complaint: str
    diagnosis: Optional[str] = None
    notes: Optional[str] = None
    vital_signs: Optional[Dict[str, Any]] = None
    status: str = "scheduled"

    @field_validator('chief_complaint')
    @classmethod
    def validate_chief_complaint(cls, v: str) -> str:
        return validate_required_text(v, "chiefComplaint", 5000)

    @field_validator('notes', 'diagnosis')
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: str) -> str:
        return validate_choice(v, CONSULTATION_STATUSES, "status") or "SCHEDULED"


class ConsultationUpdateRequest(CamelModel):
    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    notes: Optional[str] = None
    vital_signs: Optional[Dict[str, Any]] = None
    status: Optional[str] = None

    @field_validator('chief_complaint')
    @classmethod
    def validate_chief_complaint(cls, v: Optional[str]) -> Optional[str]:
        return validate_required_text(v, "chiefComplaint", 5000) if v is not None else None

    @field_validator('notes', 'diagnosis')
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        return validate_choice(v, CONSULTATION_STATUSES, "status")


def to_consultation_response(consultation: Consultation, include_prescriptions: bool = False) -> ConsultationResponse:
    """Flatten patient/doctor names into the response."""
    response = ConsultationResponse.model_validate(consultation)
    response.prescriptions = None
    if consultation.patient is not None and consultation.patient.user is not None:
        response.patient_name = consultation.patient.user.full_name
    if consultation.doctor is not None and consultation.doctor.user is not None:
        response.doctor_name = consultation.doctor.user.full_name
    if include_prescriptions:
        response.prescriptions = [PrescriptionResponse.model_validate(p) for p in consultation.prescriptions]
    return response


@router.get("", summary="List consultations", response_model=ConsultationListEnvelope)
async def list_consultations(
    patient_id: Optional[int] = Query(None, alias="patientId"),
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ConsultationListEnvelope:
    """Patients only see their own consultations."""
    own_patient_id = PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)
    if own_patient_id is not None:
        patient_id = own_patient_id
    consultations = ConsultationService.list_consultations(
        scope, patient_id=patient_id, doctor_id=doctor_id, status_filter=status_filter
    )
    return ConsultationListEnvelope(data=[to_consultation_response(c) for c in consultations])


@router.post("", summary="Record a consultation", response_model=ConsultationEnvelope, status_code=status.HTTP_201_CREATED)
async def create_consultation(
    request: ConsultationCreateRequest,
    current_user: UserContext = Depends(require_clinician),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ConsultationEnvelope:
    try:
        consultation = ConsultationService.create_consultation(
            scope,
            appointment_id=request.appointment_id,
            patient_id=request.patient_id,
            doctor_id=request.doctor_id,
            chief_complaint=request.chief_complaint,
            diagnosis=request.diagnosis,
            notes=request.notes,
            vital_signs=request.vital_signs,
            status_value=request.status,
        )
        return ConsultationEnvelope(data=to_consultation_response(consultation), message="Consultation created successfully")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating consultation: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create consultation"
        )


@router.get("/{consultation_id}", summary="Get consultation", response_model=ConsultationEnvelope)
async def get_consultation(
    consultation_id: int,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ConsultationEnvelope:
    consultation = ConsultationService.get_consultation(scope, consultation_id)
    own_patient_id = PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)
    if own_patient_id is not None and consultation.patient_id != own_patient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consultation not found")
    return ConsultationEnvelope(data=to_consultation_response(consultation, include_prescriptions=True))


@router.patch("/{consultation_id}", summary="Update consultation", response_model=ConsultationEnvelope)
async def update_consultation(
    consultation_id: int,
    request: ConsultationUpdateRequest,
    current_user: UserContext = Depends(require_clinician),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ConsultationEnvelope:
    consultation = ConsultationService.update_consultation(
        scope, consultation_id, request.model_dump(exclude_unset=True)
    )
    return ConsultationEnvelope(data=to_consultation_response(consultation), message="Consultation updated successfully")


@router.delete("/{consultation_id}", summary="Delete consultation", response_model=ConsultationEnvelope)
async def delete_consultation(
    consultation_id: int,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ConsultationEnvelope:
    """Deleting a consultation also deletes its prescriptions."""
    ConsultationService.delete_consultation(scope, consultation_id)
    return ConsultationEnvelope(message="Consultation deleted successfully")
