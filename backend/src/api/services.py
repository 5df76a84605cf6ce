# pyright: reportMissingTypeStubs=false
"""
Service catalog endpoints.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_admin, require_front_desk
from core.constants import SERVICE_CATEGORIES
from core.tenant import TenantScope
from services import ServiceManagementService
from api.shared import CamelModel, validate_choice, validate_required_text
from api.responses import OkResponse, ServiceResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class ServiceCreateRequest(CamelModel):
    name: str
    description: Optional[str] = None
    price: float = Field(ge=0)
    duration: int = Field(default=0, ge=0)
    category: str = "OTHER"
    is_active: bool = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_required_text(v, "name")

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        return validate_choice(v, SERVICE_CATEGORIES, "category") or "OTHER"


class ServiceUpdateRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_required_text(v, "name") if v is not None else None

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        return validate_choice(v, SERVICE_CATEGORIES, "category")


@router.get("", summary="List services", response_model=List[ServiceResponse])
async def list_services(
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[ServiceResponse]:
    return [ServiceResponse.model_validate(s) for s in ServiceManagementService.list_services(scope)]


@router.post("", summary="Create service", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    request: ServiceCreateRequest,
    current_user: UserContext = Depends(require_front_desk),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ServiceResponse:
    service = ServiceManagementService.create_service(scope, **request.model_dump())
    return ServiceResponse.model_validate(service)


@router.get("/{service_id}", summary="Get service", response_model=ServiceResponse)
async def get_service(
    service_id: int,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ServiceResponse:
    return ServiceResponse.model_validate(ServiceManagementService.get_service(scope, service_id))


@router.put("/{service_id}", summary="Update service", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    request: ServiceUpdateRequest,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> ServiceResponse:
    service = ServiceManagementService.update_service(scope, service_id, request.model_dump(exclude_unset=True))
    return ServiceResponse.model_validate(service)


@router.delete("/{service_id}", summary="Delete service", response_model=OkResponse)
async def delete_service(
    service_id: int,
    current_user: UserContext = Depends(require_admin),
    scope: TenantScope = Depends(get_tenant_scope),
) -> OkResponse:
    ServiceManagementService.delete_service(scope, service_id)
    return OkResponse()
