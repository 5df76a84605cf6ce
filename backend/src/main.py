# pyright: reportMissingTypeStubs=false
"""
Clinic Management Backend API

A multi-tenant FastAPI application for clinics: patients, doctors,
appointments, consultations, prescriptions, billing and staff.

Features:
- Email/password sessions with role-based access
- Every data access scoped to the caller's clinic
- Stripe payments, PDF prescriptions, S3 or local file storage
"""

import logging
from contextlib import asynccontextmanager
import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import (
    appointments,
    auth,
    clinic,
    consultations,
    doctors,
    health,
    invoices,
    patients,
    payments,
    prescriptions,
    services,
    staff,
    webhooks,
)
from core.config import IS_PRODUCTION
from core.constants import CORS_ORIGINS
from utils.file_storage import UPLOAD_DIR

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)

AUTHENTICATED_RESPONSES = {
    401: {"description": "Unauthorized"},
    403: {"description": "Forbidden"},
    404: {"description": "Resource not found"},
    500: {"description": "Internal server error"},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Clinic Management Backend API")
    yield
    logger.info("Shutting down Clinic Management Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Management Backend",
    description="Multi-tenant clinic management: scheduling, records and billing",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    auth.router,
    prefix="/api/auth",
    tags=["authentication"],
    responses={
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(patients.router, prefix="/api/patients", tags=["patients"], responses=AUTHENTICATED_RESPONSES)
app.include_router(doctors.router, prefix="/api/doctors", tags=["doctors"], responses=AUTHENTICATED_RESPONSES)
app.include_router(
    appointments.router,
    prefix="/api/appointments",
    tags=["appointments"],
    responses={**AUTHENTICATED_RESPONSES, 409: {"description": "Conflict"}},
)
app.include_router(
    consultations.router, prefix="/api/consultations", tags=["consultations"], responses=AUTHENTICATED_RESPONSES
)
app.include_router(
    prescriptions.router, prefix="/api/prescriptions", tags=["prescriptions"], responses=AUTHENTICATED_RESPONSES
)
app.include_router(services.router, prefix="/api/services", tags=["services"], responses=AUTHENTICATED_RESPONSES)
app.include_router(invoices.router, prefix="/api/invoices", tags=["invoices"], responses=AUTHENTICATED_RESPONSES)
app.include_router(
    payments.router,
    prefix="/api/payments",
    tags=["payments"],
    responses={**AUTHENTICATED_RESPONSES, 502: {"description": "Payment provider error"}},
)
app.include_router(
    staff.router,
    prefix="/api/staff",
    tags=["staff"],
    responses={**AUTHENTICATED_RESPONSES, 409: {"description": "Conflict"}},
)
app.include_router(clinic.router, prefix="/api/clinic", tags=["clinic"], responses=AUTHENTICATED_RESPONSES)
app.include_router(clinic.settings_router, prefix="/api/settings", tags=["settings"], responses=AUTHENTICATED_RESPONSES)
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(health.router, prefix="/api/health", tags=["health"])

# Locally stored uploads (when S3 is not configured)
app.mount(f"/{UPLOAD_DIR}", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Clinic Management Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": detail}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body and parameter validation failures."""
    logger.info(f"Validation failed for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"error": str(exc)},
    )


@app.exception_handler(httpx.HTTPStatusError)
async def http_status_error_handler(request: Request, exc: httpx.HTTPStatusError):
    """Handle HTTP status errors from external services."""
    logger.exception(f"External service error: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "External service error"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error" if IS_PRODUCTION else str(exc)},
    )
