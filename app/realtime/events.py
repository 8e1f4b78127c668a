"""Inbound event handling for one realtime connection."""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

from fastapi import WebSocket
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Identity
from app.core.exceptions import AppError
from app.core.permissions import CAN_VIEW_MESSAGE_HISTORY
from app.realtime.manager import ConnectionManager
from app.schemas.message import MessageCreate
from app.schemas.realtime import RealtimeFrame
from app.services.access_control import AccessMode, require_case_access, require_permission
from app.services.messaging import MessagingService

logger = logging.getLogger(__name__)

JOIN_CASE = "joinCase"
SEND_MESSAGE = "sendMessage"
MARK_MESSAGE_VIEWED = "markMessageViewed"
JOINED_CASE = "joinedCase"
MESSAGE_ERROR = "messageError"


def _parse_id(data: Any, key: str) -> Optional[UUID]:
    """Accept either a bare id or an object carrying it under ``key``."""
    if isinstance(data, dict):
        data = data.get(key)
    try:
        return UUID(str(data))
    except (TypeError, ValueError):
        return None


class RealtimeSession:
    """
    Dispatch the frames received on one authenticated connection.

    Failures are reported back to this connection only, as ``messageError``
    frames; they never close the socket.
    """

    def __init__(
        self,
        websocket: WebSocket,
        identity: Identity,
        connections: ConnectionManager,
        messaging: MessagingService,
        session_factory: Callable[[], AsyncSession],
    ):
        self.websocket = websocket
        self.identity = identity
        self.connections = connections
        self.messaging = messaging
        self.session_factory = session_factory
        self._handlers: Dict[str, Callable[[Any], Awaitable[None]]] = {
            JOIN_CASE: self.join_case,
            SEND_MESSAGE: self.send_message,
            MARK_MESSAGE_VIEWED: self.mark_message_viewed,
        }

    async def error(self, detail: str):
        await self.connections.send(self.websocket, MESSAGE_ERROR, detail)

    async def handle(self, raw: Any):
        try:
            frame = RealtimeFrame.model_validate(raw)
        except PydanticValidationError:
            await self.error("Malformed frame.")
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            await self.error(f"Unknown event: {frame.event}.")
            return
        await handler(frame.data)

    async def join_case(self, data: Any):
        case_id = _parse_id(data, "caseId")
        if case_id is None:
            await self.error("Invalid case id.")
            return

        try:
            require_permission(self.identity, CAN_VIEW_MESSAGE_HISTORY)
            async with self.session_factory() as db:
                await require_case_access(db, self.identity, case_id, AccessMode.read)
        except AppError as e:
            await self.error(e.detail)
            return
        except Exception:
            logger.exception(f"Unexpected error joining case {case_id} for user {self.identity.user_id}")
            await self.error("Error joining case.")
            return

        self.connections.join_case(self.websocket, self.identity.tenant_id, case_id)
        await self.connections.send(self.websocket, JOINED_CASE, str(case_id))

    async def send_message(self, data: Any):
        try:
            payload = MessageCreate.model_validate(data)
        except PydanticValidationError:
            await self.error("Invalid message payload.")
            return

        try:
            async with self.session_factory() as db:
                await self.messaging.send_message(db, self.identity, payload)
        except AppError as e:
            await self.error(e.detail)
        except Exception:
            logger.exception(f"Unexpected error sending message for user {self.identity.user_id}")
            await self.error("Error sending message.")

    async def mark_message_viewed(self, data: Any):
        message_id = _parse_id(data, "messageId")
        if message_id is None:
            await self.error("Invalid message id.")
            return

        try:
            async with self.session_factory() as db:
                await self.messaging.mark_viewed(db, self.identity, message_id)
        except AppError as e:
            await self.error(e.detail)
        except Exception:
            logger.exception(f"Unexpected error marking message {message_id} as viewed")
            await self.error("Error marking message as viewed.")
