from typing import List, Any
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import Identity, get_current_identity
from app.core.database import get_db
from app.core.exceptions import Forbidden, NotFound
from app.core.permissions import CAN_CREATE_USER, CAN_DEFINE_USER_PERMISSIONS
from app.crud import user as user_crud
from app.db.models import UserRole
from app.schemas.permission import UserPermissionsUpdate
from app.schemas.user import User, UserCreate, UserWithPermissions
from app.services.access_control import require_permission
from uuid import UUID

logger = logging.getLogger(__name__)
router = APIRouter()

def _require_office_user(identity: Identity) -> None:
    if identity.role == UserRole.client:
        raise Forbidden("Clients cannot list office users.")

@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    user_in: UserCreate
) -> Any:
    """
    Create a lawyer account in the caller's office.
    """
    require_permission(identity, CAN_CREATE_USER)
    user = await user_crud.create_user(db, user_in, identity.tenant_id, UserRole.lawyer)
    logger.info(f"User {user.id} created by {identity.user_id}")
    return user

@router.get("", response_model=List[User])
async def get_users(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100)
) -> Any:
    """
    Retrieve the users of the caller's office.
    """
    _require_office_user(identity)
    return await user_crud.get_users(db, identity.tenant_id, skip=skip, limit=limit)

@router.get("/{user_id}", response_model=User)
async def get_user(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    user_id: UUID
) -> Any:
    _require_office_user(identity)
    user = await user_crud.get_user(db, user_id, identity.tenant_id)
    if not user:
        raise NotFound("User not found.")
    return user

@router.put("/{user_id}/permissions", response_model=UserWithPermissions)
async def set_user_permissions(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    user_id: UUID,
    permissions_in: UserPermissionsUpdate
) -> Any:
    """
    Replace a user's permissions. The user sees the change after logging in
    again or refreshing their token.
    """
    require_permission(identity, CAN_DEFINE_USER_PERMISSIONS)
    user = await user_crud.get_user(db, user_id, identity.tenant_id)
    if not user:
        raise NotFound("User not found.")

    names = await user_crud.set_permissions(db, user, permissions_in.permissions)
    return UserWithPermissions(**User.model_validate(user).model_dump(), permissions=names)
