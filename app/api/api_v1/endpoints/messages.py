from typing import List, Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.api.deps import get_messaging
from app.core.auth import Identity, get_current_identity
from app.core.database import get_db
from app.core.permissions import CAN_VIEW_MESSAGE_HISTORY
from app.crud import message as message_crud
from app.schemas.message import Message, MessageCreate
from app.services.access_control import (
    AccessMode, require_case_access, require_permission, resolve_actor,
)
from app.services.messaging import MessagingService
from uuid import UUID

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/cases/{case_id}", response_model=List[Message])
async def get_case_messages(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    case_id: UUID
) -> Any:
    """
    Message history of a case, oldest first.

    Clients only get the messages they sent or received.
    """
    require_permission(identity, CAN_VIEW_MESSAGE_HISTORY)
    await require_case_access(db, identity, case_id, AccessMode.read)

    actor = await resolve_actor(db, identity)
    return await message_crud.list_by_case(db, case_id, identity.tenant_id, actor)

@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    messaging: MessagingService = Depends(get_messaging),
    message_in: MessageCreate
) -> Any:
    """
    Send a message over HTTP; it is broadcast like one sent on the realtime channel.
    """
    return await messaging.send_message(db, identity, message_in)

@router.put("/{message_id}/viewed", response_model=Message)
async def mark_message_viewed(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    messaging: MessagingService = Depends(get_messaging),
    message_id: UUID
) -> Any:
    """
    Mark a message as viewed. Repeating the call is harmless.
    """
    return await messaging.mark_viewed(db, identity, message_id)
