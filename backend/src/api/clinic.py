# pyright: reportMissingTypeStubs=false
"""
Clinic settings and user profile endpoints.

`router` is mounted at `/api/clinic`; `settings_router` at `/api/settings`
exposes the same clinic settings plus the caller's own profile.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from pydantic import field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_admin, require_clinic_staff
from core.config import MAX_UPLOAD_SIZE_MB
from core.constants import CLINIC_LOGO_PREFIX
from core.tenant import TenantScope
from models import Clinic
from services import SettingsService
from utils.file_storage import delete_file, get_download_url, save_upload_file
from api.shared import (
    CamelModel,
    validate_email_optional,
    validate_password,
    validate_required_text,
)
from api.responses import ClinicResponse, ProfileResponse

logger = logging.getLogger(__name__)

router = APIRouter()
settings_router = APIRouter()

ALLOWED_LOGO_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml")


class ClinicUpdateRequest(CamelModel):
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Clinic name")

    @field_validator('email')
    @classmethod
    def validate_email_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_email_optional(v)


class ProfileUpdateRequest(CamelModel):
    first_name: str
    last_name: str
    phone: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "Name", 100)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v: Optional[str]) -> Optional[str]:
        return validate_password(v) if v else None


async def to_clinic_response(clinic: Clinic) -> ClinicResponse:
    response = ClinicResponse.model_validate(clinic)
    if clinic.logo:
        try:
            response.logo_url = await get_download_url(clinic.logo)
        except Exception as e:
            logger.warning(f"Could not resolve logo URL for clinic {clinic.id}: {e}")
    return response


@router.get("", summary="Get clinic", response_model=ClinicResponse)
@settings_router.get("/clinic", summary="Get clinic settings", response_model=ClinicResponse)
async def get_clinic(
    current_user: UserContext = Depends(require_clinic_staff),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ClinicResponse:
    return await to_clinic_response(SettingsService.get_clinic(scope))


@router.put("", summary="Update clinic", response_model=ClinicResponse)
@settings_router.put("/clinic", summary="Update clinic settings", response_model=ClinicResponse)
async def update_clinic(
    request: ClinicUpdateRequest,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ClinicResponse:
    clinic = SettingsService.update_clinic(scope, request.model_dump(exclude_unset=True))
    return await to_clinic_response(clinic)


@router.post("/logo", summary="Upload clinic logo", response_model=ClinicResponse)
async def upload_logo(
    file: UploadFile = File(...),
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ClinicResponse:
    """
    Store a new clinic logo and remove the previous one.

    Raises:
        HTTPException: 400 for non-image uploads or files over the size limit
    """
    if file.content_type not in ALLOWED_LOGO_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: {file.content_type}"
        )
    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large (max {MAX_UPLOAD_SIZE_MB}MB)"
        )

    key = await save_upload_file(file, f"{CLINIC_LOGO_PREFIX}/{scope.clinic_id}")
    previous = SettingsService.set_logo(scope, key)
    if previous and previous != key:
        await delete_file(previous)
    logger.info(f"Updated logo for clinic {scope.clinic_id}")
    return await to_clinic_response(SettingsService.get_clinic(scope))


@settings_router.get("/profile", summary="Get my profile", response_model=ProfileResponse)
async def get_profile(
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ProfileResponse:
    return ProfileResponse.model_validate(SettingsService.get_profile(scope, current_user.user_id))


@settings_router.put("/profile", summary="Update my profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ProfileResponse:
    user = SettingsService.update_profile(
        scope,
        current_user.user_id,
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        current_password=request.current_password,
        new_password=request.new_password,
    )
    return ProfileResponse.model_validate(user)
