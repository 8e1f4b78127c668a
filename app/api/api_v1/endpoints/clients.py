from typing import List, Any
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import Identity, get_current_identity
from app.core.database import get_db
from app.core.exceptions import NotFound
from app.core.permissions import CAN_MANAGE_CLIENTS
from app.crud import client as client_crud
from app.db.models import Client as ClientModel
from app.schemas.client import Client, ClientCreate, ClientUpdate
from app.services.access_control import require_permission
from uuid import UUID

logger = logging.getLogger(__name__)
router = APIRouter()

async def _load_client(db: AsyncSession, client_id: UUID, identity: Identity) -> ClientModel:
    db_client = await client_crud.get_client(db, client_id, identity.tenant_id)
    if not db_client:
        raise NotFound("Client not found.")
    return db_client

@router.post("", response_model=Client, status_code=status.HTTP_201_CREATED)
async def create_client(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    client_in: ClientCreate
) -> Any:
    """
    Create new client.
    """
    require_permission(identity, CAN_MANAGE_CLIENTS)
    return await client_crud.create_client(db, client_in, identity.tenant_id)

@router.get("", response_model=List[Client])
async def get_clients(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100)
) -> Any:
    require_permission(identity, CAN_MANAGE_CLIENTS)
    return await client_crud.get_clients(db, identity.tenant_id, skip=skip, limit=limit)

@router.get("/{client_id}", response_model=Client)
async def get_client(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    client_id: UUID
) -> Any:
    require_permission(identity, CAN_MANAGE_CLIENTS)
    return await _load_client(db, client_id, identity)

@router.put("/{client_id}", response_model=Client)
async def update_client(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    client_id: UUID,
    client_in: ClientUpdate
) -> Any:
    require_permission(identity, CAN_MANAGE_CLIENTS)
    db_client = await _load_client(db, client_id, identity)
    return await client_crud.update_client(db, db_client, client_in)

@router.delete("/{client_id}")
async def delete_client(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    client_id: UUID
) -> Any:
    """
    Delete a client record.
    """
    require_permission(identity, CAN_MANAGE_CLIENTS)
    db_client = await _load_client(db, client_id, identity)
    await client_crud.delete_client(db, db_client)
    return {"success": True}
