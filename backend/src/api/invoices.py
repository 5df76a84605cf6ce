# pyright: reportMissingTypeStubs=false
"""
Invoice API endpoints.
"""

import logging
from datetime import date as date_type
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field, field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from auth.permissions import require_front_desk
from core.constants import INVOICE_STATUSES
from core.tenant import TenantScope
from services import InvoiceService, PatientService
from utils.datetime_utils import parse_date_string
from api.shared import CamelModel, validate_choice, validate_notes, validate_required_text
from api.responses import InvoiceResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class InvoiceItemRequest(CamelModel):
    description: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    service_id: Optional[int] = None

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: str) -> str:
        return validate_required_text(v, "description")


class InvoiceCreateRequest(CamelModel):
    patient_id: int
    items: List[InvoiceItemRequest] = Field(min_length=1)
    tax: float = Field(default=0, ge=0)
    notes: Optional[str] = None
    due_date: Optional[date_type] = None

    @field_validator('notes')
    @classmethod
    def validate_notes_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)

    @field_validator('due_date', mode='before')
    @classmethod
    def validate_due_date(cls, v: Union[str, date_type, None]) -> Optional[date_type]:
        if v is None or v == "" or isinstance(v, date_type):
            return v or None
        return parse_date_string(v)


class InvoiceUpdateRequest(CamelModel):
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        return validate_choice(v, INVOICE_STATUSES, "status")

    @field_validator('notes')
    @classmethod
    def validate_notes_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_notes(v)


@router.get("", summary="List invoices", response_model=List[InvoiceResponse])
async def list_invoices(
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> List[InvoiceResponse]:
    """Invoices with patient and payments. Patients only see their own."""
    patient_id = PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)
    return [InvoiceResponse.model_validate(i) for i in InvoiceService.list_invoices(scope, patient_id=patient_id)]


@router.post("", summary="Create invoice", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    request: InvoiceCreateRequest,
    current_user: UserContext = Depends(require_front_desk),
    scope: TenantScope = Depends(get_tenant_scope),
) -> InvoiceResponse:
    try:
        invoice = InvoiceService.create_invoice(
            scope,
            patient_id=request.patient_id,
            items=[item.model_dump() for item in request.items],
            tax=request.tax,
            notes=request.notes,
            due_date=request.due_date,
        )
        return InvoiceResponse.model_validate(invoice)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating invoice: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create invoice"
        )


@router.get("/{invoice_id}", summary="Get invoice", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> InvoiceResponse:
    invoice = InvoiceService.get_invoice(scope, invoice_id)
    patient_id = PatientService.visible_patient_id(scope, current_user.role, current_user.user_id)
    if patient_id is not None and invoice.patient_id != patient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return InvoiceResponse.model_validate(invoice)


@router.patch("/{invoice_id}", summary="Update invoice", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: int,
    request: InvoiceUpdateRequest,
    current_user: UserContext = Depends(require_front_desk),
    scope: TenantScope = Depends(get_tenant_scope),
) -> InvoiceResponse:
    invoice = InvoiceService.update_invoice(scope, invoice_id, request.model_dump(exclude_unset=True))
    return InvoiceResponse.model_validate(invoice)
