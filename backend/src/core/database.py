# pyright: reportMissingTypeStubs=false
"""
Database configuration and session management.

This module sets up SQLAlchemy database connection, session management,
and provides dependency injection for database sessions in FastAPI routes.
"""

import logging
from typing import Generator

from fastapi import HTTPException
from sqlalchemy import JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS

logger = logging.getLogger(__name__)

# Create SQLAlchemy engine with optimized settings
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before use
    pool_recycle=DB_POOL_RECYCLE_SECONDS,
    echo=False,
    future=True,
)

# Create configured SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)

# JSONB on Postgres, plain JSON elsewhere (SQLite test databases)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# Create Base class for declarative models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# Keep created_at/updated_at current without relying on server defaults
@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert (UTC)."""
    from utils.datetime_utils import utc_now
    now = utc_now()
    for column_name in ("created_at", "updated_at"):
        if column_name in mapper.columns and getattr(target, column_name, None) is None:  # type: ignore
            setattr(target, column_name, now)


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update (UTC)."""
    from utils.datetime_utils import utc_now
    if "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", utc_now())


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session dependency.

    Routes never use the session for tenant data directly; they receive a
    `TenantScope` built on top of it (see `auth.dependencies.get_tenant_scope`).
    The session is rolled back if the request fails and is always closed.
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except HTTPException:
        # Don't log HTTPExceptions as errors - they're expected business logic
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    """
    Create all database tables defined in SQLAlchemy models.

    Note:
        In production, prefer using Alembic migrations instead of this function.
    """
    import models  # noqa: F401  registers every model on Base.metadata
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create database tables: {e}")
        raise
