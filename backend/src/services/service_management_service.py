"""
Service catalog management (what a clinic offers and charges for).
"""

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError

from core.tenant import TenantScope
from models import Service

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "price", "duration", "category", "is_active")


class ServiceManagementService:
    """CRUD for a clinic's service catalog."""

    @staticmethod
    def list_services(scope: TenantScope) -> List[Service]:
        return scope.query(Service).order_by(Service.name, Service.id).all()

    @staticmethod
    def get_service(scope: TenantScope, service_id: int) -> Service:
        return scope.get_or_404(Service, service_id, "Service not found")

    @staticmethod
    def create_service(scope: TenantScope, **fields: Any) -> Service:
        service = Service(**{k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})
        scope.add(service)
        scope.commit()
        logger.info(f"Created service {service.id} for clinic {scope.clinic_id}")
        return service

    @staticmethod
    def update_service(scope: TenantScope, service_id: int, updates: Dict[str, Any]) -> Service:
        service = ServiceManagementService.get_service(scope, service_id)
        for field, value in updates.items():
            if field in UPDATABLE_FIELDS and (value is not None or field == "description"):
                setattr(service, field, value)
        scope.commit()
        return service

    @staticmethod
    def delete_service(scope: TenantScope, service_id: int) -> None:
        """
        Delete a service.

        Raises:
            HTTPException: 404 if not found, 409 if appointments still reference it
        """
        service = ServiceManagementService.get_service(scope, service_id)
        try:
            scope.delete(service)
            scope.commit()
        except IntegrityError:
            scope.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Service is referenced by appointments; deactivate it instead"
            )
