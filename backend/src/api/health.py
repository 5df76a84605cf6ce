# pyright: reportMissingTypeStubs=false
"""
Readiness check endpoint.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database import get_db
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", summary="Readiness check")
async def health(db: Session = Depends(get_db)) -> JSONResponse:
    """Report healthy after a trivial database round trip, 503 otherwise."""
    timestamp = utc_now().isoformat()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": timestamp,
                "error": "Database connection failed",
            },
        )
    return JSONResponse(
        content={
            "status": "healthy",
            "timestamp": timestamp,
            "services": {"database": "connected", "application": "running"},
        }
    )
