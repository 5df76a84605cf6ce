# pyright: reportMissingTypeStubs=false
"""
Payment endpoints (Stripe PaymentIntents).
"""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import field_validator

from auth.dependencies import UserContext, get_current_user, get_tenant_scope
from core.tenant import TenantScope
from services import PaymentService
from api.shared import CamelModel, validate_required_text
from api.responses import PaymentIntentResponse, PaymentResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class PaymentCreateRequest(CamelModel):
    invoice_id: int


class PaymentConfirmRequest(CamelModel):
    payment_intent_id: str

    @field_validator('payment_intent_id')
    @classmethod
    def validate_intent_id(cls, v: str) -> str:
        return validate_required_text(v, "paymentIntentId")


@router.post("", summary="Start a payment", response_model=PaymentIntentResponse)
async def create_payment(
    request: PaymentCreateRequest,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PaymentIntentResponse:
    try:
        result = PaymentService.create_payment_intent(scope, request.invoice_id)
    except HTTPException:
        raise
    except stripe.StripeError as e:
        logger.exception(f"Stripe error creating payment intent for invoice {request.invoice_id}: {e}")
        scope.rollback()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment provider error"
        )
    return PaymentIntentResponse(
        client_secret=result["client_secret"],
        payment=PaymentResponse.model_validate(result["payment"]),
    )


@router.post("/confirm", summary="Confirm a payment", response_model=PaymentResponse)
async def confirm_payment(
    request: PaymentConfirmRequest,
    current_user: UserContext = Depends(get_current_user),
    scope: TenantScope = Depends(get_tenant_scope),
) -> PaymentResponse:
    payment = PaymentService.confirm_payment(scope, request.payment_intent_id)
    return PaymentResponse.model_validate(payment)
