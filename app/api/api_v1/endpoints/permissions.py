from typing import List, Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auth import Identity, get_current_identity
from app.core.database import get_db
from app.core.permissions import CAN_DEFINE_USER_PERMISSIONS
from app.crud import permission as permission_crud
from app.schemas.permission import Permission
from app.services.access_control import require_permission

router = APIRouter()

@router.get("", response_model=List[Permission])
async def get_permissions(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    List the permission catalogue.
    """
    require_permission(identity, CAN_DEFINE_USER_PERMISSIONS)
    return await permission_crud.get_permissions(db)
