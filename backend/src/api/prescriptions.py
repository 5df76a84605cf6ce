# pyright: reportMissingTypeStubs=false
"""
Prescription API endpoints.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_clinician
from core.tenant import TenantScope
from models import Prescription
from services import PatientService, PrescriptionService
from api.shared import CamelModel, validate_notes, validate_required_text
from api.responses import MedicationItem, OkResponse, PrescriptionResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class MedicationRequest(MedicationItem):
    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Medication name")


class PrescriptionCreateRequest(CamelModel):
    consultation_id: int
    patient_id: int
    medications: List[MedicationRequest]
    instructions: Optional[str] = None
    doctor_id: Optional[int] = None

    @field_validator('medications')
    @classmethod
    def validate_medications(cls, v: List[MedicationRequest]) -> List[MedicationRequest]:
        if not v:
            raise ValueError('At least one medication is required')
        return v

    @field_validator('instructions')
    @classmethod
    def validate_instructions(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)


class PrescriptionUpdateRequest(CamelModel):
    medications: Optional[List[MedicationRequest]] = None
    instructions: Optional[str] = None

    @field_validator('medications')
    @classmethod
    def validate_medications(cls, v: Optional[List[MedicationRequest]]) -> Optional[List[MedicationRequest]]:
        if v is not None and not v:
            raise ValueError('At least one medication is required')
        return v

    @field_validator('instructions')
    @classmethod
    def validate_instructions(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)


async def to_prescription_response(prescription: Prescription) -> PrescriptionResponse:
    response = PrescriptionResponse.model_validate(prescription)
    response.pdf_url = await PrescriptionService.resolve_pdf_url(prescription.pdf_key)
    if prescription.patient is not None and prescription.patient.user is not None:
        response.patient_name = prescription.patient.user.full_name
    if prescription.doctor is not None and prescription.doctor.user is not None:
        response.doctor_name = prescription.doctor.user.full_name
    return response


@router.get("", summary="List prescriptions", response_model=List[PrescriptionResponse])
async def list_prescriptions(
    patient_id: Optional[int] = Query(None, alias="patientId"),
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[PrescriptionResponse]:
    """Patients only see their own prescriptions."""
    own_patient_id = PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)
    if own_patient_id is not None:
        patient_id = own_patient_id
    prescriptions = PrescriptionService.list_prescriptions(scope, patient_id=patient_id, doctor_id=doctor_id)
    return [await to_prescription_response(p) for p in prescriptions]


@router.post("", summary="Create prescription", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_prescription(
    request: PrescriptionCreateRequest,
    current_user: UserContext = Depends(require_clinician),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PrescriptionResponse:
    """
    Create a prescription, then render and store its PDF.

    The PDF step runs after the record is committed; if it fails the
    prescription is still returned, with `pdfUrl` null.
    """
    try:
        prescription = PrescriptionService.create_prescription(
            scope,
            consultation_id=request.consultation_id,
            patient_id=request.patient_id,
            medications=[m.model_dump() for m in request.medications],
            instructions=request.instructions,
            doctor_id=request.doctor_id,
            current_user_id=current_user.user_id,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating prescription: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create prescription"
        )

    await PrescriptionService.attach_pdf(scope, prescription)
    return await to_prescription_response(PrescriptionService.get_prescription(scope, prescription.id))


@router.get("/{prescription_id}", summary="Get prescription", response_model=PrescriptionResponse)
async def get_prescription(
    prescription_id: int,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PrescriptionResponse:
    prescription = PrescriptionService.get_prescription(scope, prescription_id)
    own_patient_id = PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)
    if own_patient_id is not None and prescription.patient_id != own_patient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")
    return await to_prescription_response(prescription)


@router.patch("/{prescription_id}", summary="Update prescription", response_model=PrescriptionResponse)
async def update_prescription(
    prescription_id: int,
    request: PrescriptionUpdateRequest,
    current_user: UserContext = Depends(require_clinician),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PrescriptionResponse:
    updates = request.model_dump(exclude_unset=True)
    prescription = PrescriptionService.update_prescription(scope, prescription_id, updates)
    return await to_prescription_response(prescription)


@router.delete("/{prescription_id}", summary="Delete prescription", response_model=OkResponse)
async def delete_prescription(
    prescription_id: int,
    current_user: UserContext = Depends(require_clinician),
    scope: TenantScope = Depends(get_tenant_scope),
) -> OkResponse:
    await PrescriptionService.delete_prescription(scope, prescription_id)
    return OkResponse()
