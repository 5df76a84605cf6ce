"""
Settings service: clinic profile and the signed-in user's own profile.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from core.tenant import TenantScope
from models import Clinic, User
from services.jwt_service import jwt_service

logger = logging.getLogger(__name__)

CLINIC_FIELDS = ("name", "address", "phone", "email", "description", "settings")


class SettingsService:
    """Clinic and profile settings."""

    @staticmethod
    def get_clinic(scope: TenantScope) -> Clinic:
        return scope.get_clinic()

    @staticmethod
    def update_clinic(scope: TenantScope, updates: Dict[str, Any]) -> Clinic:
        clinic = scope.get_clinic()
        for field, value in updates.items():
            if field not in CLINIC_FIELDS:
                continue
            if field == "settings" and value is None:
                continue
            setattr(clinic, field, value)
        scope.commit()
        logger.info(f"Updated settings for clinic {clinic.id}")
        return clinic

    @staticmethod
    def set_logo(scope: TenantScope, key: str) -> Optional[str]:
        """Record a new logo key and return the previous one."""
        clinic = scope.get_clinic()
        previous = clinic.logo
        clinic.logo = key
        scope.commit()
        return previous

    @staticmethod
    def get_profile(scope: TenantScope, user_id: int) -> User:
        return scope.get_or_404(User, user_id, "User not found")

    @staticmethod
    def update_profile(
        scope: TenantScope,
        user_id: int,
        *,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> User:
        """
        Update name and phone, and optionally the password.

        Raises:
            HTTPException: 400 when only one password field is given or the current password is wrong
        """
        user = SettingsService.get_profile(scope, user_id)

        if bool(current_password) != bool(new_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Both currentPassword and newPassword are required to change password"
            )
        if current_password and new_password:
            if not jwt_service.verify_password(current_password, user.password_hash):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Current password is incorrect"
                )
            user.password_hash = jwt_service.hash_password(new_password)

        user.first_name = first_name.strip()
        user.last_name = last_name.strip()
        user.phone = phone
        scope.commit()
        return user
