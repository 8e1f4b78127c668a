import pytest
from uuid import uuid4

from app.core.auth import Identity
from app.db.models import UserRole
from app.realtime.manager import ConnectionManager

pytestmark = pytest.mark.asyncio


class BrokenWebSocket:
    async def accept(self):
        pass

    async def send_json(self, data):
        raise RuntimeError("connection reset")


def _identity(tenant_id=None) -> Identity:
    return Identity(user_id=uuid4(), tenant_id=tenant_id or uuid4(), role=UserRole.lawyer)


async def test_connect_accepts_and_registers(make_socket):
    manager = ConnectionManager()
    socket = make_socket()
    identity = _identity()

    await manager.connect(socket, identity)

    assert socket.accepted
    assert manager.is_connected(identity.user_id)
    assert manager.stats() == {"users": 1, "connections": 1, "case_rooms": 0}


async def test_case_rooms_are_scoped_by_tenant(make_socket):
    manager = ConnectionManager()
    case_id = uuid4()
    ours, theirs = _identity(), _identity()
    our_socket, their_socket = make_socket(), make_socket()
    await manager.connect(our_socket, ours)
    await manager.connect(their_socket, theirs)

    manager.join_case(our_socket, ours.tenant_id, case_id)
    manager.join_case(their_socket, theirs.tenant_id, case_id)
    await manager.broadcast_to_case(ours.tenant_id, case_id, "newMessage", {"content": "hi"})

    assert our_socket.events("newMessage") == [{"content": "hi"}]
    assert their_socket.events("newMessage") == []


async def test_send_to_users_reaches_every_connection(make_socket):
    manager = ConnectionManager()
    identity = _identity()
    phone, laptop, stranger = make_socket(), make_socket(), make_socket()
    await manager.connect(phone, identity)
    await manager.connect(laptop, identity)
    await manager.connect(stranger, _identity(identity.tenant_id))

    message_id = uuid4()
    await manager.send_to_users([identity.user_id, identity.user_id], "messageViewed", message_id)

    assert phone.events("messageViewed") == [str(message_id)]
    assert laptop.events("messageViewed") == [str(message_id)]
    assert stranger.sent == []


async def test_disconnect_leaves_rooms(make_socket):
    manager = ConnectionManager()
    identity = _identity()
    case_id = uuid4()
    socket = make_socket()
    await manager.connect(socket, identity)
    manager.join_case(socket, identity.tenant_id, case_id)
    assert manager.in_case(socket, identity.tenant_id, case_id)

    manager.disconnect(socket, identity)

    assert not manager.in_case(socket, identity.tenant_id, case_id)
    assert not manager.is_connected(identity.user_id)
    assert manager.stats() == {"users": 0, "connections": 0, "case_rooms": 0}
    manager.disconnect(socket, identity)


async def test_failed_send_does_not_stop_broadcast(make_socket):
    manager = ConnectionManager()
    identity = _identity()
    case_id = uuid4()
    broken, healthy = BrokenWebSocket(), make_socket()
    await manager.connect(broken, identity)
    await manager.connect(healthy, _identity(identity.tenant_id))
    manager.join_case(broken, identity.tenant_id, case_id)
    manager.join_case(healthy, identity.tenant_id, case_id)

    assert not await manager.send(broken, "newMessage", {})
    await manager.broadcast_to_case(identity.tenant_id, case_id, "newMessage", {"content": "hi"})

    assert healthy.events("newMessage") == [{"content": "hi"}]
