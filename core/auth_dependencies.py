"""
FastAPI Authentication Dependencies for Microservices

The API gateway verifies the session and forwards the caller identity in
headers. These dependencies trust that identity as given.
"""

from dataclasses import dataclass
from fastapi import Header, HTTPException, status, Request
from typing import Optional
import logging

from .internal_service_auth import InternalServiceAuth

logger = logging.getLogger(__name__)

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """Verified caller identity"""
    user_id: str
    role: str = ROLE_CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


async def get_current_actor(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Actor:
    """
    Resolve the caller.

    Priority:
    1. Internal service headers -> admin actor
    2. X-User-Id / X-User-Role from the gateway

    Raises:
        HTTPException 401: no identity supplied
    """
    if InternalServiceAuth.is_internal_service_request(request):
        logger.debug(f"Internal service request to {request.url.path}")
        return Actor(user_id=InternalServiceAuth.get_service_user_id(), role=ROLE_ADMIN)

    if x_user_id and x_user_id.strip():
        role = (x_user_role or ROLE_CUSTOMER).lower()
        if role not in (ROLE_CUSTOMER, ROLE_ADMIN):
            logger.warning(f"Unknown role {role!r} for user {x_user_id}, treating as customer")
            role = ROLE_CUSTOMER
        return Actor(user_id=x_user_id.strip(), role=role)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User authentication required"
    )


async def require_admin(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Actor:
    """Like get_current_actor, but rejects non-admin callers with 403"""
    actor = await get_current_actor(request, x_user_id, x_user_role)
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return actor


__all__ = [
    "Actor",
    "ROLE_ADMIN",
    "ROLE_CUSTOMER",
    "get_current_actor",
    "require_admin",
]
