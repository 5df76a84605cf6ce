# pyright: reportMissingTypeStubs=false
"""
Authentication API endpoints.

Handles clinic registration, email/password login, the current session,
staff invitations and password resets.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from core.constants import STAFF_ROLES
from core.database import get_db
from auth.dependencies import UserContext, get_optional_user, get_tenant_scope
from auth.permissions import require_admin
from core.tenant import TenantScope
from services import AuthService, InviteService, PasswordResetService
from api.shared import (
    CamelModel,
    validate_choice,
    validate_email,
    validate_password,
    validate_required_text,
)
from api.responses import OkResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class RegisterRequest(CamelModel):
    first_name: str
    last_name: str
    email: str
    password: str
    phone: Optional[str] = None
    clinic_name: str

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Name", 100)

    @field_validator('clinic_name')
    @classmethod
    def validate_clinic_name(cls, v: str) -> str:
        return validate_required_text(v, "clinicName")

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(v)

    @field_validator('password')
    @classmethod
    def validate_password_field(cls, v: str) -> str:
        return validate_password(v)


class RegisterResponse(CamelModel):
    message: str
    user_id: int
    clinic_id: int


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_required_text(v, "email")

    @field_validator('password')
    @classmethod
    def validate_password_field(cls, v: str) -> str:
        if not v:
            raise ValueError("password is required")
        return v


class SessionUser(CamelModel):
    id: int
    email: str
    name: str
    role: str
    clinic_id: int
    clinic_name: Optional[str] = None


class LoginResponse(CamelModel):
    access_token: str
    token_type: str
    expires_in: int
    user: SessionUser


class InviteRequest(CamelModel):
    email: str
    role: str

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_email(v)

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: str) -> str:
        return validate_choice(v, STAFF_ROLES, "role") or ""


class InviteAcceptRequest(CamelModel):
    token: str
    first_name: str
    last_name: str
    password: str

    @field_validator('token')
    @classmethod
    def validate_token(cls, v: str) -> str:
        return validate_required_text(v, "token")

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Name", 100)

    @field_validator('password')
    @classmethod
    def validate_password_field(cls, v: str) -> str:
        return validate_password(v)


class InviteAcceptResponse(CamelModel):
    ok: bool = True
    user_id: int


class PasswordResetRequest(CamelModel):
    email: str

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return validate_required_text(v, "email")


class PasswordResetConfirmRequest(CamelModel):
    token: str
    password: str

    @field_validator('token')
    @classmethod
    def validate_token(cls, v: str) -> str:
        return validate_required_text(v, "token")

    @field_validator('password')
    @classmethod
    def validate_password_field(cls, v: str) -> str:
        return validate_password(v)


@router.post("/register", summary="Register a clinic", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: Session = Depends(get_db)) -> RegisterResponse:
    """
    Create a clinic and its first ADMIN user.

    Raises:
        HTTPException: 400 if the email is already registered
    """
    try:
        clinic, user = AuthService.register_clinic(
            db,
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            password=request.password,
            clinic_name=request.clinic_name,
            phone=request.phone,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error registering clinic: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )
    return RegisterResponse(message="Clinic registered successfully", user_id=user.id, clinic_id=clinic.id)


@router.post("/login", summary="Log in with email and password", response_model=LoginResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    user, clinic = AuthService.authenticate(db, request.email, request.password)
    logger.info(f"User {user.id} logged in to clinic {clinic.id}")
    return LoginResponse.model_validate(AuthService.issue_session(user, clinic))


@router.get("/session", summary="Current session")
async def get_session(
    current_user: Optional[UserContext] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """The signed-in user, or an empty object when there is no valid session."""
    if current_user is None:
        return {}
    return {"user": current_user.to_session()}


@router.post("/invite", summary="Invite a user to the clinic", response_model=OkResponse)
async def invite_user(
    request: InviteRequest,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> OkResponse:
    await InviteService.create_invite(
        scope,
        email=request.email,
        role=request.role,
        invited_by_id=current_user.user_id,
        inviter_name=current_user.name,
    )
    return OkResponse()


@router.post("/invite/accept", summary="Accept an invitation", response_model=InviteAcceptResponse)
async def accept_invite(request: InviteAcceptRequest, db: Session = Depends(get_db)) -> InviteAcceptResponse:
    user = InviteService.accept_invite(
        db,
        token=request.token,
        first_name=request.first_name,
        last_name=request.last_name,
        password=request.password,
    )
    return InviteAcceptResponse(user_id=user.id)


@router.post("/password-reset/request", summary="Request a password reset", response_model=OkResponse)
async def request_password_reset(request: PasswordResetRequest, db: Session = Depends(get_db)) -> OkResponse:
    """Always succeeds so callers cannot tell whether an email is registered."""
    await PasswordResetService.request_reset(db, request.email)
    return OkResponse()


@router.post("/password-reset/confirm", summary="Set a new password", response_model=OkResponse)
@router.post("/password-reset/accept", summary="Set a new password", response_model=OkResponse, include_in_schema=False)
async def confirm_password_reset(request: PasswordResetConfirmRequest, db: Session = Depends(get_db)) -> OkResponse:
    PasswordResetService.reset_password(db, token=request.token, password=request.password)
    return OkResponse()
