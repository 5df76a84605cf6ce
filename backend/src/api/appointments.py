# pyright: reportMissingTypeStubs=false
"""
Appointment API endpoints.
"""

import logging
from datetime import date as date_type
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import field_validator, model_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_booking_roles, require_scheduling_staff
from core.constants import APPOINTMENT_STATUSES
from core.tenant import TenantScope
from services import AppointmentService, PatientService
from utils.datetime_utils import parse_date_string, validate_hhmm
from api.shared import CamelModel, validate_choice, validate_notes
from api.responses import AppointmentCancelResponse, AppointmentResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_day(v: Union[str, date_type, None]) -> Optional[date_type]:
    if v is None or isinstance(v, date_type):
        return v
    return parse_date_string(v)


class AppointmentCreateRequest(CamelModel):
    """Request model for booking an appointment."""
    patient_id: int
    doctor_id: int
    service_id: Optional[int] = None
    appointment_date: date_type
    start_time: str
    end_time: str
    notes: Optional[str] = None

    @field_validator('appointment_date', mode='before')
    @classmethod
    def validate_date(cls, v: Union[str, date_type]) -> Optional[date_type]:
        return _parse_day(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        return validate_hhmm(v)

    @field_validator('notes')
    @classmethod
    def validate_notes_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)

    @model_validator(mode='after')
    def validate_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError('startTime must be before endTime')
        return self


class AppointmentUpdateRequest(CamelModel):
    """Partial update; no status transition rules apply."""
    status: Optional[str] = None
    appointment_date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: Optional[str] = None
    doctor_id: Optional[int] = None
    service_id: Optional[int] = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        return validate_choice(v, APPOINTMENT_STATUSES, "status")

    @field_validator('appointment_date', mode='before')
    @classmethod
    def validate_date(cls, v: Union[str, date_type, None]) -> Optional[date_type]:
        return _parse_day(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return validate_hhmm(v) if v is not None else None

    @field_validator('notes')
    @classmethod
    def validate_notes_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)


def _own_patient_id(scope: TenantScope, current_user: UserContext) -> Optional[int]:
    return PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)


@router.get("", summary="List appointments", response_model=List[AppointmentResponse])
async def list_appointments(
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[AppointmentResponse]:
    """Appointments of the clinic, latest first. Patients only see their own."""
    appointments = AppointmentService.list_appointments(scope, patient_id=_own_patient_id(scope, current_user))
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.post("", summary="Book an appointment", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreateRequest,
    current_user: UserContext = Depends(require_booking_roles),
    scope: TenantScope = Depends(get_tenant_scope),
) -> AppointmentResponse:
    """
    Book an appointment.

    Fails with 409 when the doctor already has an overlapping appointment that day.
    """
    try:
        appointment = AppointmentService.create_appointment(
            scope,
            patient_id=request.patient_id,
            doctor_id=request.doctor_id,
            service_id=request.service_id,
            appointment_date=request.appointment_date,
            start_time=request.start_time,
            end_time=request.end_time,
            notes=request.notes,
            requested_by_user_id=current_user.user_id,
            requested_by_role=current_user.role,
        )
        return AppointmentResponse.model_validate(appointment)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating appointment: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create appointment"
        )


@router.get("/{appointment_id}", summary="Get appointment", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> AppointmentResponse:
    appointment = AppointmentService.get_appointment(scope, appointment_id)
    own_patient_id = _own_patient_id(scope, current_user)
    if own_patient_id is not None and appointment.patient_id != own_patient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return AppointmentResponse.model_validate(appointment)


@router.patch("/{appointment_id}", summary="Update appointment", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    request: AppointmentUpdateRequest,
    current_user: UserContext = Depends(require_scheduling_staff),
    scope: TenantScope = Depends(get_tenant_scope),
) -> AppointmentResponse:
    try:
        appointment = AppointmentService.update_appointment(
            scope, appointment_id, request.model_dump(exclude_unset=True)
        )
        return AppointmentResponse.model_validate(appointment)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating appointment {appointment_id}: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update appointment"
        )


@router.delete("/{appointment_id}", summary="Cancel appointment", response_model=AppointmentCancelResponse)
async def cancel_appointment(
    appointment_id: int,
    current_user: UserContext = Depends(require_scheduling_staff),
    scope: TenantScope = Depends(get_tenant_scope),
) -> AppointmentCancelResponse:
    """Cancelling keeps the record and sets its status to CANCELLED."""
    appointment = AppointmentService.cancel_appointment(scope, appointment_id)
    return AppointmentCancelResponse(ok=True, appointment=AppointmentResponse.model_validate(appointment))
