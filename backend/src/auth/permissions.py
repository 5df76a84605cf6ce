# pyright: reportMissingTypeStubs=false
from fastapi import Depends, HTTPException, status

from auth.dependencies import UserContext, get_current_user
from core.constants import ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST, ROLE_PATIENT


def require_roles(*roles: str):
    """
    Dependency that ensures the authenticated user holds one of `roles`.

    Unauthenticated requests fail with 401 (via get_current_user) before the
    role check; authenticated users with another role get 403.

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    allowed = frozenset(roles)

    def dependency(current_user: UserContext = Depends(get_current_user)) -> UserContext:
        if current_user.role in allowed:
            return current_user

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden"
        )

    return dependency


require_admin = require_roles(ROLE_ADMIN)
require_clinic_staff = require_roles(ROLE_ADMIN, ROLE_DOCTOR, ROLE_RECEPTIONIST)
require_front_desk = require_roles(ROLE_ADMIN, ROLE_RECEPTIONIST)
require_clinician = require_roles(ROLE_ADMIN, ROLE_DOCTOR)
require_booking_roles = require_roles(ROLE_ADMIN, ROLE_RECEPTIONIST, ROLE_PATIENT)
require_scheduling_staff = require_roles(ROLE_ADMIN, ROLE_RECEPTIONIST, ROLE_DOCTOR)
