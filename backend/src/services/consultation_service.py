"""
Consultation service: clinical notes recorded against an appointment.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import joinedload

from core.tenant import TenantScope
from models import Appointment, Consultation, Doctor, Patient
from services.practitioner_service import PractitionerService
from utils.datetime_utils import combine_date_and_hhmm

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("chief_complaint", "diagnosis", "notes", "vital_signs", "status")


class ConsultationService:
    """Business logic for consultations."""

    @staticmethod
    def _with_relations(query: Any) -> Any:
        return query.options(
            joinedload(Consultation.patient).joinedload(Patient.user),
            joinedload(Consultation.doctor).joinedload(Doctor.user),
        )

    @staticmethod
    def list_consultations(
        scope: TenantScope,
        *,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status_filter: Optional[str] = None,
    ) -> List[Consultation]:
        query = ConsultationService._with_relations(scope.query(Consultation))
        if patient_id is not None:
            query = query.filter(Consultation.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(Consultation.doctor_id == doctor_id)
        if status_filter:
            query = query.filter(Consultation.status == status_filter.upper())
        return query.order_by(Consultation.consultation_date.desc(), Consultation.id.desc()).all()

    @staticmethod
    def get_consultation(scope: TenantScope, consultation_id: int) -> Consultation:
        consultation = ConsultationService._with_relations(
            scope.query(Consultation, Consultation.id == consultation_id)
        ).options(joinedload(Consultation.prescriptions)).populate_existing().first()
        if consultation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consultation not found")
        return consultation

    @staticmethod
    def create_consultation(
        scope: TenantScope,
        *,
        appointment_id: int,
        patient_id: int,
        doctor_id: int,
        chief_complaint: str,
        diagnosis: Optional[str] = None,
        notes: Optional[str] = None,
        vital_signs: Optional[Dict[str, Any]] = None,
        status_value: str = "SCHEDULED",
    ) -> Consultation:
        """
        Record a consultation for an appointment.

        The consultation date is the appointment's date at its start time.

        Raises:
            HTTPException: 404 if the appointment is not in this clinic,
                400 if it already has a consultation or the patient/doctor is unknown
        """
        appointment = scope.get(Appointment, appointment_id)
        if appointment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")

        existing = scope.query(Consultation, Consultation.appointment_id == appointment.id).first()
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Consultation already exists for this appointment"
            )

        if scope.get(Patient, patient_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient not found")
        doctor = PractitionerService.require_doctor(scope, doctor_id)

        consultation = Consultation(
            appointment_id=appointment.id,
            patient_id=patient_id,
            doctor_id=doctor.id,
            consultation_date=combine_date_and_hhmm(appointment.appointment_date, appointment.start_time),
            chief_complaint=chief_complaint,
            diagnosis=diagnosis,
            notes=notes,
            vital_signs=vital_signs,
            status=status_value.upper(),
        )
        scope.add(consultation)
        scope.commit()
        logger.info(f"Created consultation {consultation.id} for appointment {appointment.id}")
        return ConsultationService.get_consultation(scope, consultation.id)

    @staticmethod
    def update_consultation(scope: TenantScope, consultation_id: int, updates: Dict[str, Any]) -> Consultation:
        consultation = scope.get_or_404(Consultation, consultation_id, "Consultation not found")
        for field, value in updates.items():
            if field not in UPDATABLE_FIELDS:
                continue
            if field in ("status", "chief_complaint") and value is None:
                continue
            if field == "status":
                value = value.upper()
            setattr(consultation, field, value)
        scope.commit()
        return ConsultationService.get_consultation(scope, consultation.id)

    @staticmethod
    def delete_consultation(scope: TenantScope, consultation_id: int) -> None:
        """Delete a consultation together with its prescriptions."""
        consultation = scope.get_or_404(Consultation, consultation_id, "Consultation not found")
        scope.delete(consultation)
        scope.commit()
        logger.info(f"Deleted consultation {consultation_id} from clinic {scope.clinic_id}")
