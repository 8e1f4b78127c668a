import json
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.auth import identity_from_token
from app.core.exceptions import Unauthorized
from app.realtime.events import RealtimeSession

logger = logging.getLogger(__name__)
router = APIRouter()

def _bearer_token(websocket: WebSocket) -> Optional[str]:
    scheme, _, credentials = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None

@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Realtime case messaging channel.

    Authenticate with ``?token=`` or an ``Authorization: Bearer`` header.
    Frames are JSON objects of the form ``{"event": ..., "data": ...}``.
    """
    try:
        identity = identity_from_token(token or _bearer_token(websocket))
    except Unauthorized as e:
        logger.warning(f"Realtime handshake rejected: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.detail)
        return

    state = websocket.app.state
    connections = state.connections
    await connections.connect(websocket, identity)
    session = RealtimeSession(
        websocket,
        identity,
        connections=connections,
        messaging=state.messaging,
        session_factory=state.session_factory,
    )

    try:
        while True:
            text = await websocket.receive_text()
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                await session.error("Malformed frame.")
                continue
            await session.handle(raw)
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(websocket, identity)
