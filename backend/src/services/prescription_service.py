"""
Prescription service.

Creating a prescription is two-phase: the record is committed first, then the
PDF is rendered and uploaded and its storage key saved in a second commit.
A failure in the second phase is logged and leaves `pdf_key` NULL; the
prescription itself stands.
"""

import asyncio
import logging
import secrets
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import joinedload

from core.constants import PRESCRIPTION_PDF_PREFIX
from core.tenant import TenantScope
from models import Consultation, Doctor, Patient, Prescription
from services.pdf_service import PDFService
from services.practitioner_service import PractitionerService
from utils.datetime_utils import utc_now
from utils.file_storage import delete_file, get_download_url, upload_bytes

logger = logging.getLogger(__name__)


class PrescriptionService:
    """Business logic for prescriptions and their PDFs."""

    @staticmethod
    def _with_relations(query: Any) -> Any:
        return query.options(
            joinedload(Prescription.patient).joinedload(Patient.user),
            joinedload(Prescription.doctor).joinedload(Doctor.user),
        )

    @staticmethod
    def list_prescriptions(
        scope: TenantScope,
        *,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
    ) -> List[Prescription]:
        query = PrescriptionService._with_relations(scope.query(Prescription))
        if patient_id is not None:
            query = query.filter(Prescription.patient_id == patient_id)
        if doctor_id is not None:
            query = query.filter(Prescription.doctor_id == doctor_id)
        return query.order_by(Prescription.created_at.desc(), Prescription.id.desc()).all()

    @staticmethod
    def get_prescription(scope: TenantScope, prescription_id: int) -> Prescription:
        prescription = PrescriptionService._with_relations(
            scope.query(Prescription, Prescription.id == prescription_id)
        ).first()
        if prescription is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")
        return prescription

    @staticmethod
    def create_prescription(
        scope: TenantScope,
        *,
        consultation_id: int,
        patient_id: int,
        medications: List[Dict[str, Any]],
        instructions: Optional[str] = None,
        doctor_id: Optional[int] = None,
        current_user_id: Optional[int] = None,
    ) -> Prescription:
        """
        Create and commit the prescription record (no PDF yet).

        Without an explicit doctor the caller's own doctor profile is used.

        Raises:
            HTTPException: 404 if the consultation is not in this clinic,
                400 if the patient or doctor cannot be resolved
        """
        consultation = scope.get(Consultation, consultation_id)
        if consultation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consultation not found")
        if scope.get(Patient, patient_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient not found")

        if doctor_id is not None:
            doctor = PractitionerService.require_doctor(scope, doctor_id)
        else:
            doctor = PractitionerService.get_doctor_for_user(scope, current_user_id) if current_user_id else None
            if doctor is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Doctor ID could not be resolved"
                )

        prescription = Prescription(
            consultation_id=consultation.id,
            patient_id=patient_id,
            doctor_id=doctor.id,
            medications=medications,
            instructions=instructions,
        )
        scope.add(prescription)
        scope.commit()
        logger.info(f"Created prescription {prescription.id} for consultation {consultation.id}")
        return PrescriptionService.get_prescription(scope, prescription.id)

    @staticmethod
    def build_pdf_snapshot(scope: TenantScope, prescription: Prescription) -> Dict[str, Any]:
        """Data rendered into the prescription template."""
        clinic = scope.get_clinic()
        patient = prescription.patient
        doctor = prescription.doctor
        return {
            "id": prescription.id,
            "clinic": {
                "name": clinic.name,
                "address": clinic.address,
                "phone": clinic.phone,
                "email": clinic.email,
            },
            "patient": {
                "name": patient.user.full_name if patient and patient.user else "",
                "date_of_birth": patient.date_of_birth.isoformat() if patient and patient.date_of_birth else None,
            },
            "doctor": {
                "name": doctor.user.full_name if doctor and doctor.user else "",
                "license_number": doctor.license_number if doctor else None,
            },
            "medications": prescription.medications or [],
            "instructions": prescription.instructions,
            "issued_at": prescription.created_at or utc_now(),
        }

    @staticmethod
    async def attach_pdf(scope: TenantScope, prescription: Prescription) -> Optional[str]:
        """
        Render, upload and record the prescription PDF.

        Returns the storage key, or None if any step failed (logged).
        """
        try:
            snapshot = PrescriptionService.build_pdf_snapshot(scope, prescription)
            pdf_bytes = await asyncio.to_thread(PDFService().generate_prescription_pdf, snapshot)
            key = f"{PRESCRIPTION_PDF_PREFIX}/prescription-{prescription.id}-{secrets.token_hex(4)}.pdf"
            await upload_bytes(key, pdf_bytes, "application/pdf")
            prescription.pdf_key = key
            scope.commit()
            return key
        except Exception as e:
            logger.exception(f"Failed to generate PDF for prescription {prescription.id}: {e}")
            scope.rollback()
            return None

    @staticmethod
    async def resolve_pdf_url(pdf_key: Optional[str]) -> Optional[str]:
        """Download URL for a stored PDF; None when absent or signing fails."""
        if not pdf_key:
            return None
        try:
            return await get_download_url(pdf_key)
        except Exception as e:
            logger.warning(f"Failed to build download URL for {pdf_key}: {e}")
            return None

    @staticmethod
    def update_prescription(scope: TenantScope, prescription_id: int, updates: Dict[str, Any]) -> Prescription:
        prescription = scope.get_or_404(Prescription, prescription_id, "Prescription not found")
        if updates.get("medications") is not None:
            prescription.medications = updates["medications"]
        if "instructions" in updates:
            prescription.instructions = updates["instructions"]
        scope.commit()
        return PrescriptionService.get_prescription(scope, prescription.id)

    @staticmethod
    async def delete_prescription(scope: TenantScope, prescription_id: int) -> None:
        """Delete a prescription and its stored PDF."""
        prescription = scope.get_or_404(Prescription, prescription_id, "Prescription not found")
        pdf_key = prescription.pdf_key
        scope.delete(prescription)
        scope.commit()
        if pdf_key:
            await delete_file(pdf_key)
        logger.info(f"Deleted prescription {prescription_id} from clinic {scope.clinic_id}")
