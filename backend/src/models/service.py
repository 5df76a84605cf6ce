"""
Service model: the billable catalog of a clinic (consultations, procedures, ...).
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, ForeignKey, TIMESTAMP, Numeric, Integer, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class Service(Base):
    """A service offered by a clinic."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    duration: Mapped[int] = mapped_column(Integer, default=0)  # minutes
    category: Mapped[str] = mapped_column(String(30), default="OTHER")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_services_clinic_name', 'clinic_id', 'name'),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, clinic_id={self.clinic_id}, name='{self.name}')>"
