"""
Invoice service.

Invoice numbers are `INV-<clinic id, 6 digits>-<sequence, 5 digits>`, where
the sequence is the clinic's invoice count plus one. The count and insert run
inside one transaction with the clinic row locked so two concurrent invoices
of the same clinic cannot draw the same number.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import joinedload

from core.constants import (
    INVOICE_NUMBER_CLINIC_DIGITS,
    INVOICE_NUMBER_SEQUENCE_DIGITS,
    INVOICE_STATUS_PENDING,
)
from core.tenant import TenantScope
from models import Invoice, Patient, Service

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_totals(items: List[Dict[str, Any]], tax: Any = 0) -> Tuple[Decimal, Decimal, Decimal]:
    """Return (subtotal, tax, total) where subtotal = sum(quantity * unit price)."""
    subtotal = sum(
        (Decimal(str(item["quantity"])) * Decimal(str(item["unit_price"])) for item in items),
        Decimal("0"),
    )
    tax_amount = to_money(tax or 0)
    subtotal = to_money(subtotal)
    return subtotal, tax_amount, to_money(subtotal + tax_amount)


def format_invoice_number(clinic_id: int, sequence: int) -> str:
    return (
        f"INV-{clinic_id:0{INVOICE_NUMBER_CLINIC_DIGITS}d}"
        f"-{sequence:0{INVOICE_NUMBER_SEQUENCE_DIGITS}d}"
    )


class InvoiceService:
    """Business logic for invoices."""

    @staticmethod
    def _with_relations(query: Any) -> Any:
        return query.options(
            joinedload(Invoice.patient).joinedload(Patient.user),
            joinedload(Invoice.payments),
        ).populate_existing()

    @staticmethod
    def list_invoices(scope: TenantScope, *, patient_id: Optional[int] = None) -> List[Invoice]:
        query = InvoiceService._with_relations(scope.query(Invoice))
        if patient_id is not None:
            query = query.filter(Invoice.patient_id == patient_id)
        return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()

    @staticmethod
    def get_invoice(scope: TenantScope, invoice_id: int) -> Invoice:
        invoice = InvoiceService._with_relations(scope.query(Invoice, Invoice.id == invoice_id)).first()
        if invoice is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
        return invoice

    @staticmethod
    def create_invoice(
        scope: TenantScope,
        *,
        patient_id: int,
        items: List[Dict[str, Any]],
        tax: Any = 0,
        notes: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> Invoice:
        """
        Create a PENDING invoice with computed totals and the next invoice number.

        Raises:
            HTTPException: 400 if the patient or a referenced service is not in this clinic
        """
        if scope.get(Patient, patient_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Patient not found")
        for item in items:
            service_id = item.get("service_id")
            if service_id is not None and scope.get(Service, service_id) is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Service not found")

        subtotal, tax_amount, total = calculate_totals(items, tax)

        scope.lock_clinic()
        sequence = scope.count(Invoice) + 1
        invoice = Invoice(
            patient_id=patient_id,
            invoice_number=format_invoice_number(scope.clinic_id, sequence),
            items=[
                {
                    "description": item["description"],
                    "quantity": int(item["quantity"]),
                    "unitPrice": float(to_money(item["unit_price"])),
                    "serviceId": item.get("service_id"),
                }
                for item in items
            ],
            subtotal=subtotal,
            tax=tax_amount,
            total=total,
            status=INVOICE_STATUS_PENDING,
            notes=notes,
            due_date=due_date,
        )
        scope.add(invoice)
        scope.commit()
        logger.info(f"Created invoice {invoice.invoice_number} (total {total}) for clinic {scope.clinic_id}")
        return InvoiceService.get_invoice(scope, invoice.id)

    @staticmethod
    def update_invoice(scope: TenantScope, invoice_id: int, updates: Dict[str, Any]) -> Invoice:
        """Set status and/or notes as given; no transition rules."""
        invoice = scope.get_or_404(Invoice, invoice_id, "Invoice not found")
        if updates.get("status") is not None:
            invoice.status = updates["status"]
        if "notes" in updates:
            invoice.notes = updates["notes"]
        scope.commit()
        return InvoiceService.get_invoice(scope, invoice.id)
