# pyright: reportMissingTypeStubs=false
"""
Webhook endpoints for external service integrations.

Stripe posts payment events here. Requests carry no session; the signature
header is the only authentication.
"""

import logging

from fastapi import APIRouter, Request, HTTPException, status, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from core.database import get_db
from services import PaymentService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/stripe",
    summary="Stripe Webhook",
    description="Receive Stripe payment events",
    responses={
        200: {"description": "Webhook processed successfully"},
        400: {"description": "Invalid signature"},
        500: {"description": "Internal server error"},
    },
)
async def stripe_webhook(request: Request, db: Session = Depends(get_db)) -> PlainTextResponse:
    """
    Verify and apply a Stripe event.

    Returns:
        PlainTextResponse: "ok" to acknowledge receipt

    Raises:
        HTTPException: 400 on a bad signature, 500 if applying the event fails
    """
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature")

    try:
        event = PaymentService.construct_webhook_event(payload, signature)
    except ValueError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        PaymentService.handle_webhook_event(db, event)
    except Exception as e:
        logger.exception(f"Error processing Stripe webhook: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed"
        )

    return PlainTextResponse("ok")
