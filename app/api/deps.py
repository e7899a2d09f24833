"""API dependencies for authentication and common operations."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.permissions import Actor, ActorRole
from app.core.security import verify_token
from app.database import get_db

__all__ = [
    "get_current_actor",
    "get_db",
    "require_customer",
    "require_staff",
]

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Actor:
    """Resolve the caller from the bearer token issued by the auth service."""
    if not credentials:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials, token_type="access")
    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        raise AuthenticationError("Invalid token payload")

    try:
        return Actor(id=int(subject), role=ActorRole(role))
    except ValueError:
        raise AuthenticationError("Invalid token payload")


async def require_staff(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Staff or admin access required."""
    if not actor.is_staff:
        raise AuthorizationError("Staff access required")
    return actor


async def require_customer(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Self-service endpoints are for customers only."""
    if actor.role != ActorRole.CUSTOMER:
        raise AuthorizationError("Customer access required")
    return actor
