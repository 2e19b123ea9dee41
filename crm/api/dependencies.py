"""
FastAPI dependencies shared by the routers.

- get_db / get_repos : the database and its repository bundle
- get_request_context : tenant and user identity for the request
- record_id / etag helpers for path and header parsing
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fastapi import Depends, Header

from crm.core.config import get_settings
from crm.core.exceptions import UnauthorizedError
from crm.core.logging_config import get_logger
from crm.core.validators import ensure_uuid, is_uuid
from crm.database.connection import DatabaseConnection, get_database
from crm.repositories.registry import Repositories, get_repositories

logger = get_logger(__name__)

DEV_ROLES = ("Admin", "Sales Manager")


@dataclass(frozen=True)
class RequestContext:
    """Who is calling, and for which tenant."""
    tenant_id: str
    user_id: str
    user_email: str = ""
    roles: Tuple[str, ...] = field(default_factory=tuple)


def get_db() -> DatabaseConnection:
    return get_database()


def get_repos(db: DatabaseConnection = Depends(get_db)) -> Repositories:
    return get_repositories(db)


def parse_bearer_token(token: str) -> RequestContext:
    """
    Parse "tenantId:userId:email:role1,role2".

    Raises:
        UnauthorizedError: If the token does not have that shape
    """
    parts = token.split(":")
    if len(parts) < 2 or not is_uuid(parts[0]) or not is_uuid(parts[1]):
        raise UnauthorizedError("Invalid token format")

    email = parts[2] if len(parts) > 2 else ""
    roles = tuple(r.strip() for r in parts[3].split(",") if r.strip()) if len(parts) > 3 else ()
    return RequestContext(
        tenant_id=ensure_uuid(parts[0], "tenant_id"),
        user_id=ensure_uuid(parts[1], "user_id"),
        user_email=email,
        roles=roles,
    )


def get_request_context(authorization: Optional[str] = Header(default=None)) -> RequestContext:
    """
    Resolve the caller from the Authorization header.

    Development mode falls back to the configured demo identity when the
    header is absent; every other case requires a valid bearer token.
    """
    settings = get_settings()

    if not authorization:
        if settings.is_development():
            return RequestContext(
                tenant_id=settings.dev_tenant_id,
                user_id=settings.dev_user_id,
                user_email=settings.dev_user_email,
                roles=DEV_ROLES,
            )
        raise UnauthorizedError("Missing or invalid authorization header")

    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing or invalid authorization header")

    context = parse_bearer_token(authorization[len("Bearer "):].strip())
    logger.debug(f"Request context: tenant={context.tenant_id[:8]} user={context.user_id[:8]}")
    return context


def parse_etag(if_match: Optional[str]) -> Optional[str]:
    """Strip weak-validator prefix and quotes from an If-Match value."""
    if not if_match or if_match.strip() == "*":
        return None
    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    return value.strip('"')
