from typing import List, Any, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import Identity, get_current_identity
from app.core.database import get_db
from app.core.exceptions import NotFound
from app.core.permissions import (
    CAN_ASSIGN_CASE_MEMBERS, CAN_CREATE_CASE, CAN_DELETE_CASE, CAN_EDIT_CASE,
)
from app.crud import case as case_crud
from app.crud import message as message_crud
from app.db.models import Case as CaseModel, CaseStatus, UserRole
from app.schemas.case import (
    CaseCreate, CaseDetail, CaseFile, CaseParticipantClientCreate,
    CaseParticipantUserCreate, CaseResponse, CaseUpdate,
)
from app.schemas.message import Message
from app.services.access_control import (
    AccessMode, require_case_access, require_permission, resolve_actor,
    resolve_client_for_identity,
)
from uuid import UUID

logger = logging.getLogger(__name__)
router = APIRouter()

async def _load_case(db: AsyncSession, case_id: UUID, identity: Identity, with_files: bool = False) -> CaseModel:
    db_case = await case_crud.get_case(db, case_id, identity.tenant_id, with_files=with_files)
    if not db_case:
        raise NotFound("Case not found.")
    return db_case

@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def create_case(
    *,
    db: AsyncSession = Depends(get_db),
    case_in: CaseCreate,
    identity: Identity = Depends(get_current_identity)
) -> Any:
    """
    Create a new case led by the caller.

    The caller becomes the primary lawyer and the given client the main
    contact; both are enrolled as participants.
    """
    require_permission(identity, CAN_CREATE_CASE)
    logger.info(f"Case creation requested by user: {identity.user_id}")

    new_case = await case_crud.create_case(db, case_in, identity.tenant_id, identity.user_id)
    logger.info(f"Case created successfully: {new_case.id}")
    return new_case

@router.get("", response_model=List[CaseResponse])
async def get_cases(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    skip: int = Query(0, ge=0, description="Skip N records"),
    limit: int = Query(100, ge=1, le=100, description="Limit to N records"),
    status: Optional[CaseStatus] = Query(None, description="Filter by case status")
) -> Any:
    """
    Retrieve the cases of the caller's office.

    Clients only see cases they are primary contact of or participate in.
    """
    client_id = None
    if identity.role == UserRole.client:
        client = await resolve_client_for_identity(db, identity)
        client_id = client.id

    return await case_crud.get_cases(
        db,
        identity.tenant_id,
        skip=skip,
        limit=limit,
        client_id=client_id,
        status=status,
    )

@router.get("/{case_id}", response_model=CaseDetail)
async def get_case(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    case_id: UUID
) -> Any:
    """
    Get a case with its participants, visible messages and files.
    """
    await require_case_access(db, identity, case_id, AccessMode.read)
    db_case = await _load_case(db, case_id, identity, with_files=True)

    actor = await resolve_actor(db, identity)
    messages = await message_crud.list_by_case(db, case_id, identity.tenant_id, actor)

    return CaseDetail(
        **CaseResponse.model_validate(db_case).model_dump(),
        messages=[Message.model_validate(m) for m in messages],
        files=[CaseFile.model_validate(f) for f in db_case.files],
    )

@router.put("/{case_id}", response_model=CaseResponse)
async def update_case(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    case_id: UUID,
    case_in: CaseUpdate
) -> Any:
    """
    Update title, description or status of a case.
    """
    require_permission(identity, CAN_EDIT_CASE)
    await require_case_access(db, identity, case_id, AccessMode.write)

    db_case = await _load_case(db, case_id, identity)
    updated_case = await case_crud.update_case(db, db_case, case_in)
    logger.info(f"Case updated successfully: {case_id}")
    return updated_case

@router.delete("/{case_id}")
async def delete_case(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    case_id: UUID
) -> Any:
    """
    Delete a case with its participants, messages, files and invites.
    """
    require_permission(identity, CAN_DELETE_CASE)
    await require_case_access(db, identity, case_id, AccessMode.write)

    db_case = await _load_case(db, case_id, identity)
    await case_crud.delete_case(db, db_case)
    logger.info(f"Case deleted successfully: {case_id}")
    return {"success": True}

@router.post("/{case_id}/participants/users", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def add_user_participant(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    case_id: UUID,
    participant_in: CaseParticipantUserCreate
) -> Any:
    """
    Add a lawyer of the office to a case.
    """
    require_permission(identity, CAN_ASSIGN_CASE_MEMBERS)
    await require_case_access(db, identity, case_id, AccessMode.write)

    db_case = await _load_case(db, case_id, identity)
    return await case_crud.add_user_participant(db, db_case, participant_in.user_id, participant_in.role)

@router.post("/{case_id}/participants/clients", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def add_client_participant(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    case_id: UUID,
    participant_in: CaseParticipantClientCreate
) -> Any:
    """
    Add a client of the office to a case.
    """
    require_permission(identity, CAN_ASSIGN_CASE_MEMBERS)
    await require_case_access(db, identity, case_id, AccessMode.write)

    db_case = await _load_case(db, case_id, identity)
    return await case_crud.add_client_participant(
        db, db_case, participant_in.client_id, participant_in.participation
    )
