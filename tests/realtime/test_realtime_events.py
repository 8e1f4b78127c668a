import pytest
from typing import Optional
from uuid import uuid4
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.auth import identity_from_token, issue_token
from app.crud import message as message_crud
from app.crud.message import UserSender
from app.db.models import Message
from app.realtime.events import RealtimeSession

pytestmark = pytest.mark.asyncio


async def _message_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(Message))


@pytest.fixture
def open_session(office, connections, messaging, session_factory, make_socket):
    """Connect a fake socket for one of the office's users."""
    async def _open(who: str, token: Optional[str] = None):
        socket = make_socket()
        identity = identity_from_token(token or office.tokens[who])
        await connections.connect(socket, identity)
        session = RealtimeSession(
            socket,
            identity,
            connections=connections,
            messaging=messaging,
            session_factory=session_factory,
        )
        return socket, session
    return _open


class TestJoinCase:
    async def test_member_joins(self, office, connections, open_session):
        socket, session = await open_session("client")

        await session.handle({"event": "joinCase", "data": str(office.case.id)})

        assert socket.events("joinedCase") == [str(office.case.id)]
        assert connections.in_case(socket, office.tenant_id, office.case.id)

    async def test_object_payload(self, office, open_session):
        socket, session = await open_session("lawyer")

        await session.handle({"event": "joinCase", "data": {"caseId": str(office.case.id)}})

        assert socket.events("joinedCase") == [str(office.case.id)]

    async def test_non_member_is_refused(self, office, connections, open_session):
        socket, session = await open_session("other_client")

        await session.handle({"event": "joinCase", "data": str(office.case.id)})

        assert socket.events("joinedCase") == []
        assert socket.events("messageError") == ["You do not have access to this case."]
        assert not connections.in_case(socket, office.tenant_id, office.case.id)

    async def test_unknown_case(self, office, open_session):
        socket, session = await open_session("lawyer")

        await session.handle({"event": "joinCase", "data": str(uuid4())})
        await session.handle({"event": "joinCase", "data": "not-a-uuid"})

        assert socket.events("messageError") == ["Case not found.", "Invalid case id."]


class TestSendMessage:
    async def test_room_receives_new_message(self, office, open_session, scheduler):
        lawyer_socket, lawyer = await open_session("lawyer")
        client_socket, client = await open_session("client")
        await lawyer.handle({"event": "joinCase", "data": str(office.case.id)})
        await client.handle({"event": "joinCase", "data": str(office.case.id)})

        await lawyer.handle({
            "event": "sendMessage",
            "data": {
                "content": "Your hearing is on Monday",
                "caseId": str(office.case.id),
                "receiverClientId": str(office.client.id),
            },
        })

        received = client_socket.events("newMessage")
        assert [m["content"] for m in received] == ["Your hearing is on Monday"]
        assert lawyer_socket.events("newMessage") == received
        assert scheduler.pending_count == 1

    async def test_invalid_payload(self, office, open_session):
        socket, session = await open_session("lawyer")

        await session.handle({"event": "sendMessage", "data": {"content": "", "caseId": str(office.case.id)}})

        assert socket.events("messageError") == ["Invalid message payload."]

    async def test_unauthorized_sender(self, db, office, open_session):
        socket, session = await open_session("outsider")

        await session.handle({
            "event": "sendMessage",
            "data": {
                "content": "hello",
                "caseId": str(office.case.id),
                "receiverClientId": str(office.client.id),
            },
        })

        assert socket.events("messageError") == ["You are not a participant of this case."]
        assert socket.events("newMessage") == []
        assert await _message_count(db) == 0

    async def test_receiver_outside_case(self, db, office, open_session):
        socket, session = await open_session("lawyer")

        await session.handle({
            "event": "sendMessage",
            "data": {
                "content": "hello",
                "caseId": str(office.case.id),
                "receiverClientId": str(office.other_client.id),
            },
        })

        assert socket.events("messageError") == ["The receiving client is not associated with this case."]
        assert await _message_count(db) == 0


class TestMarkMessageViewed:
    async def test_participants_are_told_once(self, db, office, open_session):
        message = await message_crud.create_message(
            db, "read me", office.case.id, office.tenant_id,
            UserSender(office.lawyer.id), office.client.id,
        )
        lawyer_socket, _ = await open_session("lawyer")
        outsider_socket, _ = await open_session("outsider")
        client_socket, client = await open_session("client")

        await client.handle({"event": "markMessageViewed", "data": {"messageId": str(message.id)}})
        await client.handle({"event": "markMessageViewed", "data": str(message.id)})

        assert lawyer_socket.events("messageViewed") == [str(message.id)]
        assert client_socket.events("messageViewed") == [str(message.id)]
        assert outsider_socket.sent == []
        assert client_socket.events("messageError") == []

    async def test_wrong_client_is_refused(self, db, office, open_session):
        message = await message_crud.create_message(
            db, "read me", office.case.id, office.tenant_id,
            UserSender(office.lawyer.id), office.client.id,
        )
        socket, session = await open_session("other_client")

        await session.handle({"event": "markMessageViewed", "data": str(message.id)})

        assert socket.events("messageError") == ["You are not allowed to mark this message as viewed."]


class TestFrames:
    async def test_unknown_event(self, open_session):
        socket, session = await open_session("lawyer")

        await session.handle({"event": "dance", "data": None})

        assert socket.events("messageError") == ["Unknown event: dance."]

    async def test_malformed_frame(self, open_session):
        socket, session = await open_session("lawyer")

        await session.handle(["not", "an", "object"])

        assert socket.events("messageError") == ["Malformed frame."]

    async def test_join_survives_database_failure(self, office, connections, messaging, make_socket):
        def broken_session_factory():
            raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))

        socket = make_socket()
        identity = identity_from_token(office.tokens["lawyer"])
        session = RealtimeSession(
            socket,
            identity,
            connections=connections,
            messaging=messaging,
            session_factory=broken_session_factory,
        )

        await session.handle({"event": "joinCase", "data": str(office.case.id)})

        assert socket.events("messageError") == ["Error joining case."]
        assert not connections.in_case(socket, office.tenant_id, office.case.id)


class TestPermissionSnapshot:
    """Events are refused when the token lacks the matching permission."""

    async def test_send_without_permission(self, db, office, open_session, scheduler):
        room_socket, room = await open_session("client")
        await room.handle({"event": "joinCase", "data": str(office.case.id)})
        socket, session = await open_session("lawyer", token=issue_token(office.lawyer, []))

        await session.handle({
            "event": "sendMessage",
            "data": {
                "content": "hello",
                "caseId": str(office.case.id),
                "receiverClientId": str(office.client.id),
            },
        })

        assert socket.events("messageError") == ["Missing permission: can_send_messages."]
        assert room_socket.events("newMessage") == []
        assert await _message_count(db) == 0
        assert scheduler.pending_count == 0

    async def test_mark_viewed_without_permission(self, db, office, open_session):
        message = await message_crud.create_message(
            db, "read me", office.case.id, office.tenant_id,
            UserSender(office.lawyer.id), office.client.id,
        )
        socket, session = await open_session("client", token=issue_token(office.client_user, []))

        await session.handle({"event": "markMessageViewed", "data": str(message.id)})

        assert socket.events("messageError") == ["Missing permission: can_mark_message_as_viewed."]
        assert socket.events("messageViewed") == []
        current = await message_crud.get_message(db, message.id, office.tenant_id)
        assert current.viewed is False

    async def test_join_without_permission(self, office, connections, open_session):
        socket, session = await open_session("lawyer", token=issue_token(office.lawyer, []))

        await session.handle({"event": "joinCase", "data": str(office.case.id)})

        assert socket.events("messageError") == ["Missing permission: can_view_message_history."]
        assert socket.events("joinedCase") == []
        assert not connections.in_case(socket, office.tenant_id, office.case.id)
