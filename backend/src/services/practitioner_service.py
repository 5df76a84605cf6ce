"""
Practitioner service: doctor profiles within a clinic.
"""

import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import joinedload

from core.tenant import TenantScope
from models import Doctor, User

logger = logging.getLogger(__name__)


class PractitionerService:
    """Lookups for doctor profiles."""

    @staticmethod
    def list_doctors(scope: TenantScope) -> List[Doctor]:
        return (
            scope.query(Doctor)
            .options(joinedload(Doctor.user))
            .join(User, Doctor.user_id == User.id)
            .order_by(User.last_name, User.first_name)
            .all()
        )

    @staticmethod
    def get_doctor_for_user(scope: TenantScope, user_id: int) -> Optional[Doctor]:
        return scope.query(Doctor, Doctor.user_id == user_id).first()

    @staticmethod
    def resolve_doctor(scope: TenantScope, doctor_or_user_id: int) -> Optional[Doctor]:
        """
        Resolve a doctor reference sent by a client.

        Clients may send either a doctor profile id or the doctor's user id;
        the profile id wins when both would match.
        """
        doctor = scope.get(Doctor, doctor_or_user_id)
        if doctor is None:
            doctor = PractitionerService.get_doctor_for_user(scope, doctor_or_user_id)
        return doctor

    @staticmethod
    def require_doctor(scope: TenantScope, doctor_or_user_id: int) -> Doctor:
        doctor = PractitionerService.resolve_doctor(scope, doctor_or_user_id)
        if doctor is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor not found"
            )
        return doctor
