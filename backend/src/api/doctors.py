# pyright: reportMissingTypeStubs=false
"""
Doctor directory endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from core.tenant import TenantScope
from services import PractitionerService
from api.responses import DoctorResponse

router = APIRouter()


@router.get("", summary="List doctors", response_model=List[DoctorResponse])
async def list_doctors(
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[DoctorResponse]:
    """Doctor profiles of the caller's clinic."""
    return [DoctorResponse.model_validate(d) for d in PractitionerService.list_doctors(scope)]
