"""
Account service: registration, credential login and user-account creation.

Email addresses are globally unique, so the existence check and the login
lookup are the only user queries not restricted to one clinic. Both resolve
the owning clinic before anything else is read.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import ROLE_ADMIN
from core.tenant import TenantScope
from models import Clinic, User
from services.jwt_service import jwt_service, TokenPayload
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Business logic for accounts and sessions."""

    @staticmethod
    def email_registered(db: Session, email: str) -> bool:
        """Whether any account already uses this email (across all clinics)."""
        return db.query(User.id).filter(User.email == normalize_email(email)).first() is not None

    @staticmethod
    def create_user_account(
        scope: TenantScope,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str,
        phone: Optional[str] = None,
    ) -> User:
        """
        Add a user to the scope's clinic (flushed, not committed).

        Raises:
            HTTPException: 400 if the email is already registered
        """
        if AuthService.email_registered(scope.db, email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        user = User(
            email=normalize_email(email),
            password_hash=jwt_service.hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=phone,
            role=role,
            is_active=True,
        )
        scope.add(user)
        try:
            scope.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            scope.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )
        return user

    @staticmethod
    def register_clinic(
        db: Session,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        clinic_name: str,
        phone: Optional[str] = None,
    ) -> Tuple[Clinic, User]:
        """Create a clinic and its first ADMIN user in one transaction."""
        if AuthService.email_registered(db, email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        clinic = Clinic(name=clinic_name.strip(), email=normalize_email(email), phone=phone, settings={})
        db.add(clinic)
        db.flush()

        scope = TenantScope(db, clinic.id)
        user = AuthService.create_user_account(
            scope,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=ROLE_ADMIN,
        )
        db.commit()
        logger.info(f"Registered clinic {clinic.id} with admin user {user.id}")
        return clinic, user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Tuple[User, Clinic]:
        """
        Verify credentials.

        Raises:
            HTTPException: 401 for unknown email, wrong password or inactive account
        """
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if not user or not jwt_service.verify_password(password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )
        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is disabled"
            )

        scope = TenantScope(db, user.clinic_id)
        clinic = scope.get_clinic()
        user.last_login_at = utc_now()
        db.commit()
        return user, clinic

    @staticmethod
    def issue_session(user: User, clinic: Clinic) -> Dict[str, Any]:
        """Build the login response with a signed session token."""
        payload = TokenPayload(
            sub=str(user.id),
            email=user.email,
            role=user.role,
            clinic_id=user.clinic_id,
            clinic_name=clinic.name,
            name=user.full_name,
        )
        return {
            "access_token": jwt_service.create_access_token(payload),
            "token_type": "bearer",
            "expires_in": jwt_service.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.full_name,
                "role": user.role,
                "clinic_id": clinic.id,
                "clinic_name": clinic.name,
            },
        }
