# pyright: reportMissingTypeStubs=false
"""
Staff management endpoints (clinic admins only).
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import field_validator

from auth.dependencies import UserContext, get_tenant_scope
from auth.permissions import require_admin
from core.constants import STAFF_ROLES
from core.tenant import TenantScope
from services import StaffService
from api.shared import CamelModel, validate_choice, validate_email, validate_required_text
from api.responses import OkResponse, StaffResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class StaffInviteRequest(CamelModel):
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


class StaffInviteResponse(CamelModel):
    success: bool = True
    message: str
    email: str


class StaffUpdateRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_required_text(v, "Name", 100) if v is not None else None

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        return validate_choice(v, STAFF_ROLES, "role")


@router.get("", summary="List staff", response_model=List[StaffResponse])
async def list_staff(
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[StaffResponse]:
    return [StaffResponse.model_validate(u) for u in StaffService.list_staff(scope)]


@router.post("", summary="Invite staff member", response_model=StaffInviteResponse)
async def invite_staff(
    request: StaffInviteRequest,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> StaffInviteResponse:
    try:
        invite = await StaffService.invite_staff(
            scope,
            email=request.email,
            role=request.role,
            invited_by_id=current_user.user_id,
            inviter_name=current_user.name,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error inviting staff member: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send invitation"
        )
    return StaffInviteResponse(message=f"Invitation sent to {invite.email}", email=invite.email)


@router.get("/{user_id}", summary="Get staff member", response_model=StaffResponse)
async def get_staff_member(
    user_id: int,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> StaffResponse:
    return StaffResponse.model_validate(StaffService.get_staff_member(scope, user_id))


@router.put("/{user_id}", summary="Update staff member", response_model=StaffResponse)
async def update_staff_member(
    user_id: int,
    request: StaffUpdateRequest,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> StaffResponse:
    user = StaffService.update_staff_member(scope, user_id, request.model_dump(exclude_unset=True))
    return StaffResponse.model_validate(user)


@router.delete("/{user_id}", summary="Remove staff member", response_model=OkResponse)
async def delete_staff_member(
    user_id: int,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> OkResponse:
    StaffService.delete_staff_member(scope, user_id, current_user.user_id)
    return OkResponse()
