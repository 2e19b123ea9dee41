"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
It handles:
1. Application initialization
2. Router registration
3. Middleware configuration (correlation ids, audit, security headers, CORS)
4. Exception handlers mapping domain and database errors to JSON bodies
5. Startup/shutdown events

Run with: uvicorn crm.api.main:app --reload
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm import __version__
from crm.api.routes import (
    accounts_router,
    approval_process_router,
    approvals_router,
    contacts_router,
    events_router,
    field_history_router,
    health_router,
    leads_router,
    opportunities_router,
    pricebooks_router,
    products_router,
    quotes_router,
    sharing_rules_router,
)
from crm.core.audit import AuditMiddleware, CorrelationIdMiddleware, SecurityHeadersMiddleware, get_correlation_id
from crm.core.config import get_settings
from crm.core.exceptions import CRMException
from crm.core.logging_config import get_logger, setup_logging
from crm.database.connection import close_database


# Initialize logging before anything else
settings = get_settings()
setup_logging(settings.log_level, settings.log_dir, settings.log_to_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: log the effective configuration
    - Shutdown: dispose the connection pool
    """
    logger.info(f"Starting {settings.app_name} {__version__} in {settings.app_env} mode")
    logger.info(f"Audit Logging: {settings.enable_audit_logging}")
    logger.info(f"CORS origins: {', '.join(settings.cors_origins) or '(none)'}")

    yield  # Application runs here

    logger.info(f"Shutting down {settings.app_name}")
    close_database()


app = FastAPI(
    title="CRM API",
    description="""
    Multi-tenant CRM service.

    ## Features

    - **Records**: accounts, contacts, leads, opportunities, quotes, products,
      pricebooks and events with cursor pagination, search and soft delete
    - **Optimistic concurrency**: every record carries an ETag; send it back in
      `If-Match` to update only what you read
    - **Lead conversion**: account, contact and opportunity in one transaction
    - **Approvals**: multi-step approval processes with work items and history
    - **Field history**: per-field change log for tracked fields
    - **Sharing rules**: owner- and criteria-based rule definitions

    Every `/api/v1` request is scoped to the tenant in its bearer token
    (`tenantId:userId:email:roles`).
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# Middleware Configuration (last added runs first)
# ============================================================

app.add_middleware(SecurityHeadersMiddleware)

if settings.enable_audit_logging:
    app.add_middleware(AuditMiddleware)
    logger.info("Audit logging middleware enabled")

app.add_middleware(CorrelationIdMiddleware)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag", "X-Correlation-ID"],
    )


# ============================================================
# Exception Handlers
# ============================================================

def error_response(request: Request, status_code: int, body: dict) -> JSONResponse:
    body["correlation_id"] = get_correlation_id(request)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(CRMException)
async def crm_exception_handler(request: Request, exc: CRMException):
    """Handle all domain exceptions."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}")
    return error_response(request, exc.status_code, exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report body, query and path validation failures as 400 with per-field details."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(request, 400, {
        "error": "validation_error",
        "message": "Request validation failed",
        "details": details,
    })


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = "not_found" if exc.status_code == 404 else "http_error"
    return error_response(request, exc.status_code, {
        "error": error,
        "message": str(exc.detail),
        "details": None,
    })


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Constraint violations: duplicates, missing references."""
    logger.warning(f"Integrity error: {exc.orig}")
    return error_response(request, 409, {
        "error": "integrity_error",
        "message": "The change conflicts with existing data",
        "details": str(exc.orig) if settings.is_development() else None,
    })


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error: {exc}")
    return error_response(request, 503, {
        "error": "database_error",
        "message": "Database operation failed",
        "details": str(exc) if settings.is_development() else None,
    })


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions globally.

    Detailed error information is only included in development mode.
    """
    logger.exception(f"Unhandled exception: {exc}")
    return error_response(request, 500, {
        "error": "internal_error",
        "message": "An unexpected error occurred",
        "details": str(exc) if settings.is_development() else None,
    })


# ============================================================
# Routers
# ============================================================

app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(contacts_router)
app.include_router(leads_router)
app.include_router(opportunities_router)
app.include_router(quotes_router)
app.include_router(products_router)
app.include_router(pricebooks_router)
app.include_router(events_router)
app.include_router(sharing_rules_router)
app.include_router(approval_process_router)
app.include_router(approvals_router)
app.include_router(field_history_router)


# ============================================================
# Root Endpoint
# ============================================================

@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "CRM API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health",
    }


def main() -> None:
    """Entry point for crm-api."""
    import uvicorn

    uvicorn.run(
        "crm.api.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.is_development(),
    )


if __name__ == "__main__":
    main()
