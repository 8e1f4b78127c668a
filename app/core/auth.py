from typing import List, Optional
from uuid import UUID
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core.exceptions import Unauthorized
from app.core.security import create_access_token, decode_access_token
from app.db.models.user import User, UserRole

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    """
    Authenticated caller as described by the claims of their access token.

    ``permissions`` is the snapshot taken when the token was issued; it is not
    re-read from the database on each request.
    """
    user_id: UUID
    tenant_id: UUID
    role: UserRole
    permissions: List[str] = []

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.client

    def has_permission(self, name: str) -> bool:
        return name in self.permissions


def issue_token(user: User, permissions: List[str]) -> str:
    """
    Issue an access token carrying the user's identity and permission snapshot.
    """
    role = user.role if isinstance(user.role, UserRole) else UserRole(user.role)
    return create_access_token({
        "sub": str(user.id),
        "tenant_id": str(user.tenant_id),
        "role": role.value,
        "permissions": sorted(permissions),
    })


def identity_from_token(token: Optional[str]) -> Identity:
    """
    Resolve a raw bearer token into an Identity, raising Unauthorized otherwise.

    Shared by the HTTP dependency and the realtime handshake.
    """
    if not token:
        raise Unauthorized("Authentication credentials were not provided.")

    payload = decode_access_token(token)
    if not payload:
        raise Unauthorized("Invalid or expired token.")

    try:
        return Identity(
            user_id=payload.get("sub"),
            tenant_id=payload.get("tenant_id"),
            role=payload.get("role"),
            permissions=payload.get("permissions") or [],
        )
    except PydanticValidationError as e:
        logger.warning(f"Token with malformed claims rejected: {e.error_count()} error(s)")
        raise Unauthorized("Invalid token claims.")


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """
    Dependency returning the caller's identity from the Authorization header.
    """
    token = credentials.credentials if credentials else None
    return identity_from_token(token)
