"""
Appointment service for shared appointment business logic.

Booking guarantees that no two live appointments of one doctor overlap on the
same day. The overlap rule compares zero-padded "HH:MM" strings and treats
touching boundaries as overlapping:

    existing.start_time <= new_end_time AND existing.end_time >= new_start_time

The check and the insert run in one transaction with the doctor row locked,
so concurrent bookings for the same doctor serialize.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import joinedload

from core.constants import (
    APPOINTMENT_STATUS_CANCELLED,
    APPOINTMENT_STATUS_SCHEDULED,
    ROLE_PATIENT,
)
from core.tenant import TenantScope
from models import Appointment, Doctor, Patient, Service
from services.patient_service import PatientService
from services.practitioner_service import PractitionerService

logger = logging.getLogger(__name__)

CONFLICT_DETAIL = "Appointment conflict detected"


class AppointmentService:
    """
    Service class for appointment operations.

    Contains business logic for appointment management that is shared
    across different API endpoints.
    """

    @staticmethod
    def _with_relations(query: Any) -> Any:
        return query.options(
            joinedload(Appointment.patient).joinedload(Patient.user),
            joinedload(Appointment.doctor).joinedload(Doctor.user),
            joinedload(Appointment.service),
        )

    @staticmethod
    def find_conflict(
        scope: TenantScope,
        *,
        doctor_id: int,
        appointment_date: date,
        start_time: str,
        end_time: str,
        exclude_appointment_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        """Return an existing non-cancelled appointment overlapping the slot, if any."""
        query = scope.query(
            Appointment,
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status != APPOINTMENT_STATUS_CANCELLED,
            Appointment.start_time <= end_time,
            Appointment.end_time >= start_time,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.first()

    @staticmethod
    def _lock_doctor(scope: TenantScope, doctor_id: int) -> None:
        try:
            scope.lock(Doctor, doctor_id)
        except OperationalError:
            scope.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Doctor schedule is being modified, please retry"
            )

    @staticmethod
    def create_appointment(
        scope: TenantScope,
        *,
        patient_id: int,
        doctor_id: int,
        appointment_date: date,
        start_time: str,
        end_time: str,
        service_id: Optional[int] = None,
        notes: Optional[str] = None,
        requested_by_user_id: Optional[int] = None,
        requested_by_role: Optional[str] = None,
    ) -> Appointment:
        """
        Book an appointment.

        Raises:
            HTTPException: 400 if the patient, doctor or service is unknown,
                403 if a patient books for someone else,
                409 if the slot overlaps an existing appointment
        """
        patient = scope.get(Patient, patient_id)
        if patient is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient not found")

        if requested_by_role == ROLE_PATIENT:
            own = PatientService.get_patient_for_user(scope, requested_by_user_id) if requested_by_user_id else None
            if own is None or own.id != patient.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Patients can only book appointments for themselves"
                )

        doctor = PractitionerService.require_doctor(scope, doctor_id)

        if service_id is not None and scope.get(Service, service_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Service not found")

        AppointmentService._lock_doctor(scope, doctor.id)

        conflict = AppointmentService.find_conflict(
            scope,
            doctor_id=doctor.id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
        )
        if conflict is not None:
            logger.info(
                f"Rejected booking for doctor {doctor.id} on {appointment_date} {start_time}-{end_time}: "
                f"overlaps appointment {conflict.id}"
            )
            scope.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL)

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            service_id=service_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=APPOINTMENT_STATUS_SCHEDULED,
            notes=notes,
        )
        scope.add(appointment)
        scope.commit()

        logger.info(f"Created appointment {appointment.id} for doctor {doctor.id} in clinic {scope.clinic_id}")
        return AppointmentService.get_appointment(scope, appointment.id)

    @staticmethod
    def list_appointments(
        scope: TenantScope,
        *,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Appointments of the clinic, latest date first."""
        query = AppointmentService._with_relations(scope.query(Appointment))
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        return query.order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc()).all()

    @staticmethod
    def get_appointment(scope: TenantScope, appointment_id: int) -> Appointment:
        appointment = AppointmentService._with_relations(
            scope.query(Appointment, Appointment.id == appointment_id)
        ).first()
        if appointment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
        return appointment

    @staticmethod
    def update_appointment(scope: TenantScope, appointment_id: int, updates: Dict[str, Any]) -> Appointment:
        """
        Partially update an appointment.

        Status is set as given. When the doctor, date or times change, or a
        cancelled appointment is reinstated, the slot is re-checked for overlaps
        with the doctor locked.
        """
        appointment = scope.get_or_404(Appointment, appointment_id, "Appointment not found")
        was_cancelled = appointment.status == APPOINTMENT_STATUS_CANCELLED

        if "doctor_id" in updates and updates["doctor_id"] is not None:
            updates["doctor_id"] = PractitionerService.require_doctor(scope, updates["doctor_id"]).id
        if updates.get("service_id") is not None and scope.get(Service, updates["service_id"]) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Service not found")

        for field in ("status", "appointment_date", "start_time", "end_time", "notes", "doctor_id", "service_id"):
            if field in updates:
                value = updates[field]
                if value is None and field not in ("notes", "service_id"):
                    continue
                setattr(appointment, field, value)

        if appointment.start_time >= appointment.end_time:
            scope.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="startTime must be before endTime")

        slot_changed = any(updates.get(f) is not None for f in ("doctor_id", "appointment_date", "start_time", "end_time"))
        if (slot_changed or was_cancelled) and appointment.status != APPOINTMENT_STATUS_CANCELLED:
            AppointmentService._lock_doctor(scope, appointment.doctor_id)
            conflict = AppointmentService.find_conflict(
                scope,
                doctor_id=appointment.doctor_id,
                appointment_date=appointment.appointment_date,
                start_time=appointment.start_time,
                end_time=appointment.end_time,
                exclude_appointment_id=appointment.id,
            )
            if conflict is not None:
                scope.rollback()
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL)

        scope.commit()
        return AppointmentService.get_appointment(scope, appointment.id)

    @staticmethod
    def cancel_appointment(scope: TenantScope, appointment_id: int) -> Appointment:
        """Mark an appointment CANCELLED (idempotent)."""
        appointment = scope.get_or_404(Appointment, appointment_id, "Appointment not found")
        appointment.status = APPOINTMENT_STATUS_CANCELLED
        scope.commit()
        logger.info(f"Cancelled appointment {appointment_id} in clinic {scope.clinic_id}")
        return AppointmentService.get_appointment(scope, appointment.id)
