"""
Staff management for clinic admins.
"""

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError

from core.constants import ROLE_DOCTOR, STAFF_ROLES
from core.tenant import TenantScope
from models import Doctor, InviteToken, User
from services.auth_service import normalize_email
from services.invite_service import InviteService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("first_name", "last_name", "role", "is_active")


class StaffService:
    """List, invite, edit and remove clinic staff."""

    @staticmethod
    def list_staff(scope: TenantScope) -> List[User]:
        return (
            scope.query(User, User.role.in_(STAFF_ROLES))
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    @staticmethod
    def get_staff_member(scope: TenantScope, user_id: int) -> User:
        user = scope.query(User, User.id == user_id, User.role.in_(STAFF_ROLES)).first()
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
        return user

    @staticmethod
    async def invite_staff(
        scope: TenantScope,
        *,
        email: str,
        role: str,
        invited_by_id: int,
        inviter_name: str,
    ) -> InviteToken:
        """
        Invite a new staff member.

        Raises:
            HTTPException: 409 if a user with this email already belongs to the clinic
        """
        email = normalize_email(email)
        if scope.query(User, User.email == email).first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User already exists in this clinic"
            )
        return await InviteService.create_invite(
            scope,
            email=email,
            role=role,
            invited_by_id=invited_by_id,
            inviter_name=inviter_name,
        )

    @staticmethod
    def update_staff_member(scope: TenantScope, user_id: int, updates: Dict[str, Any]) -> User:
        """Edit name, role or active flag. Promoting to DOCTOR creates the doctor profile."""
        user = StaffService.get_staff_member(scope, user_id)
        for field, value in updates.items():
            if field in UPDATABLE_FIELDS and value is not None:
                setattr(user, field, value)

        if user.role == ROLE_DOCTOR and scope.query(Doctor, Doctor.user_id == user.id).first() is None:
            scope.add(Doctor(user_id=user.id, availability={}))

        scope.commit()
        scope.refresh(user)
        return user

    @staticmethod
    def delete_staff_member(scope: TenantScope, user_id: int, acting_user_id: int) -> None:
        """
        Remove a staff member.

        Raises:
            HTTPException: 400 when deleting yourself, 409 when clinical records reference them
        """
        if user_id == acting_user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account"
            )
        user = StaffService.get_staff_member(scope, user_id)
        try:
            doctor = scope.query(Doctor, Doctor.user_id == user.id).first()
            if doctor is not None:
                scope.delete(doctor)
            scope.delete(user)
            scope.commit()
        except IntegrityError:
            scope.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Staff member has related records; deactivate the account instead"
            )
        logger.info(f"Deleted staff member {user_id} from clinic {scope.clinic_id}")
