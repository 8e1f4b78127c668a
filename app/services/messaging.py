"""
Case messaging: send, mark viewed and the unread e-mail alert.

``MessagingService`` ties the message store, the access checks, the
connection registry and the notification scheduler together. The REST
endpoints and the realtime channel both go through it so a message follows
the same path whichever transport it arrives on.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from html import escape
from typing import Callable, Dict, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity
from app.core.email import EmailNotifier
from app.core.exceptions import NotFound
from app.core.permissions import CAN_MARK_MESSAGE_AS_VIEWED, CAN_SEND_MESSAGES
from app.crud import message as message_crud
from app.realtime.manager import ConnectionManager
from app.schemas.message import Message as MessageSchema, MessageCreate
from app.services.access_control import (
    require_message_send_authority,
    require_message_view_authority,
    require_permission,
)
from app.services.membership import resolve_participant_user_ids, resolve_participants
from app.services.notifications import NotificationScheduler

logger = logging.getLogger(__name__)

NEW_MESSAGE = "newMessage"
MESSAGE_VIEWED = "messageViewed"


class MessagingService:

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        scheduler: NotificationScheduler,
        connections: ConnectionManager,
        notifier: EmailNotifier,
    ):
        self.session_factory = session_factory
        self.scheduler = scheduler
        self.connections = connections
        self.notifier = notifier
        # (tenant_id, case_id) -> [lock, callers holding or awaiting it]
        self._case_locks: Dict[Tuple[UUID, UUID], list] = {}

    @asynccontextmanager
    async def _case_lock(self, tenant_id: UUID, case_id: UUID):
        """Serialize sends per case; the lock is dropped once nobody uses it."""
        key = (tenant_id, case_id)
        entry = self._case_locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._case_locks[key]

    async def send_message(self, db: AsyncSession, identity: Identity, payload: MessageCreate) -> MessageSchema:
        """
        Authorize, persist and broadcast a message, then arm its unread alert.

        Messages of one case are persisted and broadcast one at a time so
        room members receive them in creation order.
        """
        require_permission(identity, CAN_SEND_MESSAGES)
        sender, _ = await require_message_send_authority(
            db, identity, payload.case_id, payload.receiver_client_id
        )

        async with self._case_lock(identity.tenant_id, payload.case_id):
            message = await message_crud.create_message(
                db,
                content=payload.content,
                case_id=payload.case_id,
                tenant_id=identity.tenant_id,
                sender=sender,
                receiver_client_id=payload.receiver_client_id,
            )
            out = MessageSchema.model_validate(message)
            await self.connections.broadcast_to_case(identity.tenant_id, payload.case_id, NEW_MESSAGE, out)

        self.scheduler.arm(message.id, self.notify_if_unviewed)
        return out

    async def mark_viewed(self, db: AsyncSession, identity: Identity, message_id: UUID) -> MessageSchema:
        """
        Mark a message viewed by its receiver or a responsible lawyer.

        Only the call that performs the transition cancels the alert and
        tells the case participants; repeated calls return the message as is.
        """
        require_permission(identity, CAN_MARK_MESSAGE_AS_VIEWED)
        message = await message_crud.get_message(db, message_id, identity.tenant_id)
        if message is None:
            raise NotFound("Message not found.")
        await require_message_view_authority(db, identity, message)

        message, transitioned = await message_crud.mark_viewed(db, message_id, identity.tenant_id)
        if message is None:
            raise NotFound("Message not found.")
        out = MessageSchema.model_validate(message)

        if transitioned:
            self.scheduler.cancel(message.id)
            participants = await resolve_participants(db, message.case_id, identity.tenant_id)
            user_ids = await resolve_participant_user_ids(db, participants)
            await self.connections.send_to_users(user_ids, MESSAGE_VIEWED, str(message.id))
            logger.info(f"Message {message.id} viewed by user {identity.user_id}")

        return out

    async def notify_if_unviewed(self, message_id: UUID) -> None:
        """
        Timer callback: e-mail the receiver if the message is still unread.
        """
        async with self.session_factory() as db:
            message = await message_crud.get_message_for_notification(db, message_id)

        if message is None:
            logger.info(f"Message {message_id} no longer exists; alert skipped")
            return
        if message.viewed:
            logger.info(f"Message {message_id} already viewed; alert skipped")
            return

        receiver = message.receiver_client
        if receiver is None or not receiver.email:
            logger.info(f"Receiver of message {message_id} has no email; alert skipped")
            return

        subject = f'New message in case "{message.case.title}"'
        text_body = (
            f"Hello {receiver.first_name},\n\n"
            f'You have a new message in case "{message.case.title}":\n\n'
            f'"{message.content}"\n'
        )
        html_body = (
            f"<p>Hello <strong>{escape(receiver.first_name)}</strong>,</p>"
            f"<p>You have a new message in case <strong>{escape(message.case.title)}</strong>:</p>"
            f"<blockquote>{escape(message.content)}</blockquote>"
        )

        sent = await self.notifier.send(receiver.email, subject, text_body, html_body)
        if sent:
            logger.info(f"Unread alert for message {message_id} sent to client {receiver.id}")
        else:
            logger.error(f"Unread alert for message {message_id} could not be delivered")
