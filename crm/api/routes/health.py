"""
Health Check Routes - liveness and readiness probes.

- /health       : the process is up and serving requests
- /health/ready : the database answers too; 503 otherwise
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from crm import __version__
from crm.api.dependencies import get_db
from crm.core.logging_config import get_logger
from crm.core.serialization import utcnow
from crm.database.connection import DatabaseConnection
from crm.models.common import HealthResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get("", response_model=HealthResponse, summary="Health check endpoint")
def health_check() -> HealthResponse:
    """
    Perform a basic health check.

    Does not touch the database; use /health/ready for that.
    """
    logger.debug("Health check requested")
    return HealthResponse(status="healthy", version=__version__, timestamp=utcnow())


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check endpoint",
    responses={503: {"model": HealthResponse, "description": "Database unreachable"}},
)
def readiness_check(db: DatabaseConnection = Depends(get_db)):
    """
    Perform a readiness check.

    Runs a trivial query against the database and reports 503 when it fails.
    """
    logger.debug("Readiness check requested")

    if db.check_connection():
        return HealthResponse(status="ready", version=__version__, timestamp=utcnow(), database="connected")

    body = HealthResponse(status="not_ready", version=__version__, timestamp=utcnow(), database="unreachable")
    return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
