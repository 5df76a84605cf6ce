"""
Payment service backed by Stripe PaymentIntents.

Flow:
1. `create_payment_intent` opens a PaymentIntent for the invoice total and
   records a PENDING payment carrying the intent id.
2. The client confirms the intent with Stripe, then either calls
   `confirm_payment` or waits for the `payment_intent.succeeded` webhook.
3. Webhook events update the payment and recompute the invoice status.

Webhooks arrive without a session. The payment-intent id is the only key
used to locate the owning clinic; everything after that goes through a
TenantScope for that clinic.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

import stripe
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core.config import STRIPE_CURRENCY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from core.constants import (
    INVOICE_STATUS_PAID,
    INVOICE_STATUS_PARTIALLY_PAID,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_REFUNDED,
)
from core.tenant import TenantScope, set_current_clinic
from models import Invoice, Payment
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

REFUND_EVENTS = ("charge.refunded", "charge.dispute.closed")


def amount_in_cents(amount: Decimal) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    """Business logic for invoice payments."""

    @staticmethod
    def create_payment_intent(scope: TenantScope, invoice_id: int) -> Dict[str, Any]:
        """
        Start a card payment for an invoice.

        Returns:
            {"client_secret": ..., "payment": Payment}

        Raises:
            HTTPException: 404 if the invoice is not in this clinic,
                400 if it is already paid
        """
        invoice = scope.get(Invoice, invoice_id)
        if invoice is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
        if invoice.status == INVOICE_STATUS_PAID:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invoice is already paid")

        intent = stripe.PaymentIntent.create(
            api_key=STRIPE_SECRET_KEY,
            amount=amount_in_cents(invoice.total),
            currency=STRIPE_CURRENCY,
            metadata={"invoiceId": str(invoice.id), "clinicId": str(scope.clinic_id)},
            automatic_payment_methods={"enabled": True},
        )

        payment = Payment(
            invoice_id=invoice.id,
            amount=invoice.total,
            payment_method="STRIPE",
            status=PAYMENT_STATUS_PENDING,
            stripe_payment_intent_id=intent["id"],
        )
        scope.add(payment)
        scope.commit()
        logger.info(f"Created payment {payment.id} (intent {intent['id']}) for invoice {invoice.id}")
        return {"client_secret": intent["client_secret"], "payment": payment}

    @staticmethod
    def confirm_payment(scope: TenantScope, payment_intent_id: str) -> Payment:
        """Mark a payment completed and its invoice paid."""
        payment = scope.query(Payment, Payment.stripe_payment_intent_id == payment_intent_id).first()
        if payment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")

        payment.status = PAYMENT_STATUS_COMPLETED
        payment.paid_at = payment.paid_at or utc_now()
        invoice = scope.get_or_404(Invoice, payment.invoice_id, "Invoice not found")
        invoice.status = INVOICE_STATUS_PAID
        scope.commit()
        logger.info(f"Confirmed payment {payment.id}; invoice {invoice.id} marked paid")
        return payment

    @staticmethod
    def refresh_invoice_status(scope: TenantScope, invoice: Invoice) -> None:
        """PAID when completed payments cover the total, PARTIALLY_PAID when some were received."""
        paid = sum(
            (Decimal(str(p.amount)) for p in scope.query(
                Payment,
                Payment.invoice_id == invoice.id,
                Payment.status == PAYMENT_STATUS_COMPLETED,
            ).all()),
            Decimal("0"),
        )
        if paid >= Decimal(str(invoice.total)):
            invoice.status = INVOICE_STATUS_PAID
        elif paid > 0:
            invoice.status = INVOICE_STATUS_PARTIALLY_PAID

    @staticmethod
    def construct_webhook_event(payload: bytes, signature: Optional[str]) -> Any:
        """
        Verify a Stripe webhook signature and parse the event.

        Raises:
            ValueError: invalid payload or signature
        """
        if not signature:
            raise ValueError("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)
        except stripe.SignatureVerificationError as e:
            raise ValueError(str(e)) from e

    @staticmethod
    def _scope_for_intent(db: Session, payment_intent_id: Optional[str]) -> Optional[TenantScope]:
        if not payment_intent_id:
            return None
        row = db.query(Payment.clinic_id).filter(Payment.stripe_payment_intent_id == payment_intent_id).first()
        if row is None:
            return None
        set_current_clinic(db, row[0])
        return TenantScope(db, row[0])

    @staticmethod
    def handle_webhook_event(db: Session, event: Any) -> None:
        """Apply a verified Stripe event. Unknown intents and event types are ignored."""
        event_type = event["type"]
        data_object = event["data"]["object"]

        if event_type == "payment_intent.succeeded":
            intent_id = data_object["id"]
        elif event_type in REFUND_EVENTS:
            intent_id = data_object["payment_intent"]
        else:
            logger.info(f"Ignoring Stripe event {event_type}")
            return

        scope = PaymentService._scope_for_intent(db, intent_id)
        if scope is None:
            logger.warning(f"Stripe event {event_type} for unknown payment intent {intent_id}")
            return

        payment = scope.query(Payment, Payment.stripe_payment_intent_id == intent_id).first()
        if payment is None:
            return

        if event_type == "payment_intent.succeeded":
            payment.status = PAYMENT_STATUS_COMPLETED
            payment.paid_at = payment.paid_at or utc_now()
            scope.flush()
            invoice = scope.get(Invoice, payment.invoice_id)
            if invoice is not None:
                PaymentService.refresh_invoice_status(scope, invoice)
        else:
            payment.status = PAYMENT_STATUS_REFUNDED

        scope.commit()
        logger.info(f"Applied Stripe event {event_type} to payment {payment.id} (clinic {scope.clinic_id})")
