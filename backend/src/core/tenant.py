# pyright: reportMissingTypeStubs=false
"""
Tenant-scoped data access.

Every read or write of a clinic-owned table goes through a `TenantScope`,
which cannot be built without a clinic id and injects `clinic_id` into every
query it issues. Rows owned by another clinic are indistinguishable from
missing rows.

On PostgreSQL the clinic id is additionally published to the session variable
used by row-level-security policies. That step is best effort: failures are
logged and the scoped filters still apply.
"""

import logging
from typing import Any, Optional, Type, TypeVar

from fastapi import HTTPException, status
from sqlalchemy import event, func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from core.config import RLS_SESSION_VARIABLE
from models import Clinic

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def set_current_clinic(db: Session, clinic_id: int) -> None:
    """
    Publish the clinic id to the Postgres RLS session variable.

    The variable is transaction-local, so it is (re)applied at the start of
    every transaction the session begins. No-op on other databases.
    """
    if db.get_bind().dialect.name != "postgresql":
        return

    def _apply(connection: Any) -> None:
        # A failure only rolls back the savepoint, leaving the outer transaction usable
        try:
            with connection.begin_nested():
                connection.execute(
                    text("SELECT set_config(:name, :value, true)"),
                    {"name": RLS_SESSION_VARIABLE, "value": str(clinic_id)},
                )
        except SQLAlchemyError as e:
            logger.warning(f"Failed to set RLS clinic context for clinic {clinic_id}: {e}")

    @event.listens_for(db, "after_begin")
    def _on_begin(session, transaction, connection):  # type: ignore
        _apply(connection)

    if db.in_transaction():
        _apply(db.connection())


class TenantScope:
    """Data-access handle bound to a single clinic."""

    def __init__(self, db: Session, clinic_id: Optional[int]):
        if not clinic_id:
            raise ValueError("clinic_id is required for tenant scoped access")
        self.db = db
        self.clinic_id = clinic_id

    def __repr__(self) -> str:
        return f"TenantScope(clinic_id={self.clinic_id})"

    @staticmethod
    def _tenant_column(model: Type[Any]) -> Any:
        column = getattr(model, "clinic_id", None)
        if column is None:
            raise TypeError(f"{model.__name__} is not a tenant-owned model")
        return column

    def query(self, model: Type[ModelT], *criteria: Any) -> "Query[ModelT]":
        """Query `model` restricted to this clinic, with optional extra filters."""
        return self.db.query(model).filter(self._tenant_column(model) == self.clinic_id, *criteria)

    def get(self, model: Type[ModelT], record_id: Optional[int]) -> Optional[ModelT]:
        """Fetch a row by id; None when missing or owned by another clinic."""
        if record_id is None:
            return None
        return self.query(model, getattr(model, "id") == record_id).first()

    def get_or_404(self, model: Type[ModelT], record_id: Optional[int], detail: str = "Not found") -> ModelT:
        record = self.get(model, record_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
        return record

    def lock(self, model: Type[ModelT], record_id: int) -> Optional[ModelT]:
        """SELECT ... FOR UPDATE a tenant row (the lock clause is dropped on SQLite)."""
        return self.query(model, getattr(model, "id") == record_id).with_for_update().first()

    def count(self, model: Type[Any], *criteria: Any) -> int:
        column = self._tenant_column(model)
        return self.db.query(func.count(getattr(model, "id"))).filter(column == self.clinic_id, *criteria).scalar() or 0

    def add(self, obj: ModelT) -> ModelT:
        """Stamp the clinic id on a new row and add it to the session."""
        self._tenant_column(type(obj))
        setattr(obj, "clinic_id", self.clinic_id)
        self.db.add(obj)
        return obj

    def delete(self, obj: Any) -> None:
        self._tenant_column(type(obj))
        if obj.clinic_id != self.clinic_id:
            raise PermissionError("Refusing to delete a row owned by another clinic")
        self.db.delete(obj)

    def get_clinic(self) -> Clinic:
        """The clinic this scope is bound to."""
        clinic = self.db.get(Clinic, self.clinic_id)
        if clinic is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clinic not found")
        return clinic

    def lock_clinic(self) -> Clinic:
        """Lock the clinic row; serializes per-clinic sequences such as invoice numbers."""
        clinic = self.db.query(Clinic).filter(Clinic.id == self.clinic_id).with_for_update().first()
        if clinic is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Clinic not found")
        return clinic

    def flush(self) -> None:
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, obj: Any) -> None:
        self.db.refresh(obj)
