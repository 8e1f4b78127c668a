"""WebSocket connection registry for realtime case messaging."""
import logging
from typing import Any, Dict, Iterable, List, Set, Tuple
from uuid import UUID

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from app.core.auth import Identity

logger = logging.getLogger(__name__)

CaseKey = Tuple[UUID, UUID]


class ConnectionManager:
    """
    Track live connections per user, per tenant and per case room.

    One instance is created at startup and shared through ``app.state``.
    Case rooms are keyed by (tenant id, case id) so a room can never span
    tenants.
    """

    def __init__(self):
        # user_id -> open connections of that user
        self._connections: Dict[UUID, List[WebSocket]] = {}
        # tenant_id -> connections enrolled in the tenant channel
        self._tenants: Dict[UUID, Set[WebSocket]] = {}
        # (tenant_id, case_id) -> connections that joined the case room
        self._case_rooms: Dict[CaseKey, Set[WebSocket]] = {}
        # connection -> case rooms it joined
        self._joined: Dict[WebSocket, Set[CaseKey]] = {}

    async def connect(self, websocket: WebSocket, identity: Identity):
        """Accept an authenticated connection and enroll it in its tenant channel."""
        await websocket.accept()
        self.register(websocket, identity)

    def register(self, websocket: WebSocket, identity: Identity):
        self._connections.setdefault(identity.user_id, []).append(websocket)
        self._tenants.setdefault(identity.tenant_id, set()).add(websocket)
        self._joined.setdefault(websocket, set())
        logger.info(f"WebSocket connected: user={identity.user_id}, tenant={identity.tenant_id}")

    def disconnect(self, websocket: WebSocket, identity: Identity):
        """Forget a connection and every room it joined."""
        connections = self._connections.get(identity.user_id)
        if connections is not None:
            if websocket in connections:
                connections.remove(websocket)
            if not connections:
                del self._connections[identity.user_id]

        tenant_sockets = self._tenants.get(identity.tenant_id)
        if tenant_sockets is not None:
            tenant_sockets.discard(websocket)
            if not tenant_sockets:
                del self._tenants[identity.tenant_id]

        for key in self._joined.pop(websocket, set()):
            room = self._case_rooms.get(key)
            if room is None:
                continue
            room.discard(websocket)
            if not room:
                del self._case_rooms[key]

        logger.info(f"WebSocket disconnected: user={identity.user_id}")

    def join_case(self, websocket: WebSocket, tenant_id: UUID, case_id: UUID):
        key = (tenant_id, case_id)
        self._case_rooms.setdefault(key, set()).add(websocket)
        self._joined.setdefault(websocket, set()).add(key)
        logger.debug(f"WebSocket joined case room {case_id}")

    def in_case(self, websocket: WebSocket, tenant_id: UUID, case_id: UUID) -> bool:
        return websocket in self._case_rooms.get((tenant_id, case_id), set())

    def is_connected(self, user_id: UUID) -> bool:
        return bool(self._connections.get(user_id))

    def stats(self) -> Dict[str, int]:
        return {
            "users": len(self._connections),
            "connections": sum(len(sockets) for sockets in self._tenants.values()),
            "case_rooms": len(self._case_rooms),
        }

    async def send(self, websocket: WebSocket, event: str, data: Any) -> bool:
        """Send one event frame to a single connection."""
        try:
            await websocket.send_json({"event": event, "data": jsonable_encoder(data)})
        except Exception as e:
            logger.warning(f"Failed to send {event} frame: {e}")
            return False
        return True

    async def broadcast_to_case(self, tenant_id: UUID, case_id: UUID, event: str, data: Any):
        """Send an event to every connection in a case room."""
        for websocket in list(self._case_rooms.get((tenant_id, case_id), ())):
            await self.send(websocket, event, data)

    async def send_to_users(self, user_ids: Iterable[UUID], event: str, data: Any):
        """Send an event to every open connection of the given users."""
        for user_id in set(user_ids):
            for websocket in list(self._connections.get(user_id, ())):
                await self.send(websocket, event, data)
