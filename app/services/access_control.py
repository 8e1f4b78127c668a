"""
Authorization checks shared by the REST endpoints and the realtime channel.

Every check derives from the caller's identity and a fresh read of the case's
participant sets. Failures raise ``Unauthorized``, ``Forbidden`` or
``NotFound`` from ``app.core.exceptions``.

Case access policy:

* Clients reach a case only when their linked client record is in the case's
  effective client set.
* Lawyers reach a case only when they are in its effective lawyer set.
* Admins may read any case of their tenant, but writing to a case and
  messaging in it require membership like any lawyer.
"""

import logging
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity
from app.core.exceptions import Forbidden, Unauthorized
from app.crud.client import get_client_by_user
from app.crud.message import ClientSender, SenderRef, UserSender
from app.db.models import Client, Message, UserRole
from app.services.membership import Participants, resolve_participants

logger = logging.getLogger(__name__)


class AccessMode(str, Enum):
    read = "read"
    write = "write"


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Unauthorized()
    return identity


def require_permission(identity: Optional[Identity], name: str) -> Identity:
    """
    Check the permission snapshot carried by the caller's token.
    """
    identity = require_identity(identity)
    if not identity.has_permission(name):
        logger.warning(f"User {identity.user_id} lacks permission {name}")
        raise Forbidden(f"Missing permission: {name}.")
    return identity


async def resolve_client_for_identity(db: AsyncSession, identity: Identity) -> Client:
    """
    The client record linked to a Client-role login.
    """
    client = await get_client_by_user(db, identity.user_id, identity.tenant_id)
    if client is None:
        logger.warning(f"Client login {identity.user_id} has no linked client record")
        raise Forbidden("Your account is not linked to a client record.")
    return client


async def resolve_actor(db: AsyncSession, identity: Identity) -> SenderRef:
    """
    The party the caller acts as inside a case thread.
    """
    if identity.role == UserRole.client:
        client = await resolve_client_for_identity(db, identity)
        return ClientSender(client_id=client.id)
    elif identity.role in (UserRole.lawyer, UserRole.admin):
        return UserSender(user_id=identity.user_id)
    raise Forbidden(f"Unsupported role: {identity.role}.")


def _is_member(actor: SenderRef, participants: Participants) -> bool:
    if isinstance(actor, UserSender):
        return participants.has_lawyer(actor.user_id)
    elif isinstance(actor, ClientSender):
        return participants.has_client(actor.client_id)
    return False


async def require_case_access(
    db: AsyncSession,
    identity: Optional[Identity],
    case_id: UUID,
    mode: AccessMode = AccessMode.read,
) -> Participants:
    """
    Allow the caller into a case of their tenant, returning its participants.
    """
    identity = require_identity(identity)
    participants = await resolve_participants(db, case_id, identity.tenant_id)
    actor = await resolve_actor(db, identity)

    if _is_member(actor, participants):
        return participants
    if identity.role == UserRole.admin and mode == AccessMode.read:
        return participants

    logger.warning(f"User {identity.user_id} denied {mode.value} access to case {case_id}")
    raise Forbidden("You do not have access to this case.")


async def require_message_send_authority(
    db: AsyncSession,
    identity: Optional[Identity],
    case_id: UUID,
    receiver_client_id: UUID,
) -> Tuple[SenderRef, Participants]:
    """
    Check that the caller may post in the case and that the receiver belongs to it.

    Both checks run against the same participant snapshot.
    """
    identity = require_identity(identity)
    participants = await resolve_participants(db, case_id, identity.tenant_id)
    sender = await resolve_actor(db, identity)

    if not _is_member(sender, participants):
        logger.warning(f"User {identity.user_id} may not send messages in case {case_id}")
        raise Forbidden("You are not a participant of this case.")
    if not participants.has_client(receiver_client_id):
        logger.warning(f"Receiver {receiver_client_id} is not a client of case {case_id}")
        raise Forbidden("The receiving client is not associated with this case.")

    return sender, participants


async def require_message_view_authority(
    db: AsyncSession,
    identity: Optional[Identity],
    message: Message,
) -> SenderRef:
    """
    Only the receiving client or a responsible lawyer may mark a message viewed.
    """
    identity = require_identity(identity)
    actor = await resolve_actor(db, identity)

    if isinstance(actor, ClientSender):
        if actor.client_id == message.receiver_client_id:
            return actor
    else:
        participants = await resolve_participants(db, message.case_id, identity.tenant_id)
        if participants.has_lawyer(actor.user_id):
            return actor

    logger.warning(f"User {identity.user_id} may not mark message {message.id} as viewed")
    raise Forbidden("You are not allowed to mark this message as viewed.")
