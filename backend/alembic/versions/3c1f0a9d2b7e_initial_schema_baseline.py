"""initial_schema_baseline

Revision ID: 3c1f0a9d2b7e
Revises:
Create Date: 2026-10-19 10:12:41.227903

Baseline migration creating every table from the current model definitions,
plus check constraints for the status enums and, on PostgreSQL, row level
security policies keyed on the per-transaction clinic variable.
"""
from typing import Sequence, Union
import sys
import os

# Add src directory to path to import models
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.config import RLS_SESSION_VARIABLE
from core.constants import (
    APPOINTMENT_STATUSES,
    CONSULTATION_STATUSES,
    INVOICE_STATUSES,
    PAYMENT_STATUSES,
    USER_ROLES,
)
from core.database import Base
import models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


TENANT_TABLES = (
    'users',
    'doctors',
    'patients',
    'services',
    'appointments',
    'consultations',
    'prescriptions',
    'invoices',
    'payments',
    'invite_tokens',
    'password_reset_tokens',
)

def _in_list(column: str, values: Sequence[str]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


CHECK_CONSTRAINTS = (
    ('check_user_role', 'users', _in_list('role', USER_ROLES)),
    ('check_appointment_status', 'appointments', _in_list('status', APPOINTMENT_STATUSES)),
    ('check_consultation_status', 'consultations', _in_list('status', CONSULTATION_STATUSES)),
    ('check_invoice_status', 'invoices', _in_list('status', INVOICE_STATUSES)),
    ('check_payment_status', 'payments', _in_list('status', PAYMENT_STATUSES)),
)


def upgrade() -> None:
    """
    Create all tables, then the PostgreSQL-only extras.

    The RLS policies admit a row when the clinic variable is unset, so
    unauthenticated flows (login, invite and reset tokens, Stripe webhooks)
    keep working; once a request sets the variable, other clinics' rows
    disappear even if a query forgets its tenant filter.
    """
    bind = op.get_bind()
    Base.metadata.create_all(bind=bind)

    if bind.dialect.name != 'postgresql':
        return

    for name, table, condition in CHECK_CONSTRAINTS:
        op.create_check_constraint(name, table, condition)

    setting = f"NULLIF(current_setting('{RLS_SESSION_VARIABLE}', true), '')"
    for table in TENANT_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(
            f"CREATE POLICY tenant_isolation ON {table} "
            f"USING ({setting} IS NULL OR clinic_id = {setting}::integer) "
            f"WITH CHECK ({setting} IS NULL OR clinic_id = {setting}::integer)"
        )


def downgrade() -> None:
    """Drop all database tables."""
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for table in TENANT_TABLES:
            op.execute(f"DROP POLICY IF EXISTS tenant_isolation ON {table}")
            op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
        for name, table, _ in CHECK_CONSTRAINTS:
            op.drop_constraint(name, table, type_='check')

    Base.metadata.drop_all(bind=bind)
