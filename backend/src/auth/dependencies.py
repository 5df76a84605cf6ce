# pyright: reportMissingTypeStubs=false
"""
Authentication dependencies for FastAPI.

Provides dependency injection functions for session extraction, user
authentication and tenant-scoped database access.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from core.database import get_db
from core.tenant import TenantScope, set_current_clinic
from services.jwt_service import jwt_service, TokenPayload
from models import User

logger = logging.getLogger(__name__)


class UserContext:
    """Authenticated user context extracted from the session token."""

    def __init__(
        self,
        user_id: int,
        email: str,
        role: str,
        clinic_id: int,
        name: str,
        clinic_name: Optional[str] = None,
    ):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.clinic_id = clinic_id
        self.name = name
        self.clinic_name = clinic_name

    def has_role(self, *roles: str) -> bool:
        """Check if the user holds one of the given roles."""
        return self.role in roles

    def to_session(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "clinicId": self.clinic_id,
            "clinicName": self.clinic_name,
        }

    def __repr__(self) -> str:
        return f"UserContext(user_id={self.user_id}, email='{self.email}', role='{self.role}', clinic_id={self.clinic_id})"


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Extract and validate JWT token payload."""
    if not credentials:
        return None
    return jwt_service.verify_token(credentials.credentials)


def _resolve_user(payload: Optional[TokenPayload], db: Session) -> Optional[UserContext]:
    if not payload:
        return None

    try:
        user_id = int(payload.sub)
    except ValueError:
        return None

    # Session tokens are bound to a clinic; a user moved or removed since issuance is rejected
    user = db.query(User).filter(
        User.id == user_id,
        User.clinic_id == payload.clinic_id,
    ).first()

    if not user or not user.is_active:
        return None

    return UserContext(
        user_id=user.id,
        email=user.email,
        role=user.role,
        clinic_id=user.clinic_id,
        name=user.full_name,
        clinic_name=payload.clinic_name,
    )


def get_current_user(
    payload: Optional[TokenPayload] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> UserContext:
    """Get authenticated user context from JWT token, or 401."""
    user = _resolve_user(payload, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return user


def get_optional_user(
    payload: Optional[TokenPayload] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> Optional[UserContext]:
    """Like get_current_user, but returns None instead of raising."""
    return _resolve_user(payload, db)


def get_tenant_scope(
    current_user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> TenantScope:
    """Tenant-scoped data access for the authenticated user's clinic."""
    set_current_clinic(db, current_user.clinic_id)
    return TenantScope(db, current_user.clinic_id)
