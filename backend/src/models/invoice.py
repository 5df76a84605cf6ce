"""
Invoice model.

Invoice numbers are sequential per clinic (INV-000001-00001). Line items are
kept as JSON so that later catalog price changes do not rewrite history.
"""

from decimal import Decimal
from datetime import datetime, date
from typing import Optional, Any

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP, Numeric, Date, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, JSONType


class Invoice(Base):
    """Bill issued to a patient."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    invoice_number: Mapped[str] = mapped_column(String(50))

    items: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    """List of {description, quantity, unitPrice, serviceId}."""

    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    tax: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    patient = relationship("Patient")
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.created_at")

    __table_args__ = (
        UniqueConstraint('clinic_id', 'invoice_number', name='uq_invoices_clinic_number'),
        Index('idx_invoices_clinic_created', 'clinic_id', 'created_at'),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status='{self.status}')>"
