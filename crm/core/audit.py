"""
Audit Middleware - Request/response logging for monitoring and compliance.

This module holds the Starlette middlewares installed on the API:
- CorrelationIdMiddleware tags every request with an id echoed in errors
- AuditMiddleware logs method, path, status, duration, client and tenant
- SecurityHeadersMiddleware adds standard response headers
"""
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from crm.core.logging_config import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def get_correlation_id(request: Request) -> str:
    """Return the request's correlation id, creating one if missing."""
    correlation_id = getattr(request.state, "correlation_id", None)
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Accept or generate a correlation id and echo it on the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(CORRELATION_HEADER)
        request.state.correlation_id = incoming[:64] if incoming else str(uuid.uuid4())

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = request.state.correlation_id
        return response


class AuditMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging all requests and responses.

    Captures timing information and key request metadata
    for debugging and compliance purposes.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log audit information."""
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        tenant = self._tenant_hint(request)

        try:
            response = await call_next(request)

            duration = time.time() - start_time

            self._log_request(
                method=method,
                path=path,
                status_code=response.status_code,
                duration=duration,
                client_ip=client_ip,
                tenant=tenant,
            )

            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"REQUEST FAILED: {method} {path} "
                f"client={client_ip} duration={duration:.3f}s error={str(e)}"
            )
            raise

    @staticmethod
    def _tenant_hint(request: Request) -> str:
        """First 8 characters of the tenant id in the bearer token, if any."""
        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return "-"
        return auth[7:].split(":", 1)[0][:8] or "-"

    def _log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        client_ip: str,
        tenant: str,
    ) -> None:
        """Log request details."""
        # Skip health checks from verbose logging
        if path in ("/health", "/health/ready"):
            logger.debug(
                f"HEALTH: {path} status={status_code} duration={duration:.3f}s"
            )
            return

        if status_code >= 500:
            log_fn = logger.error
        elif status_code >= 400:
            log_fn = logger.warning
        else:
            log_fn = logger.info

        log_fn(
            f"REQUEST: {method} {path} "
            f"status={status_code} duration={duration:.3f}s "
            f"client={client_ip} tenant={tenant}"
        )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Headers added:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - X-XSS-Protection: 1; mode=block
    - Referrer-Policy: strict-origin-when-cross-origin
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
