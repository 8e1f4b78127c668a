import asyncio
import pytest
from sqlalchemy import delete

from app.core.auth import identity_from_token
from app.crud import message as message_crud
from app.crud.message import UserSender
from app.db.models import Message
from app.schemas.message import MessageCreate
from app.services.messaging import MessagingService
from app.services.notifications import NotificationScheduler

pytestmark = pytest.mark.asyncio


async def _message(db, office, content: str = "Please sign the power of attorney"):
    return await message_crud.create_message(
        db, content, office.case.id, office.tenant_id,
        UserSender(office.lawyer.id), office.client.id,
    )


class TestUnreadAlert:
    async def test_alert_sent_when_unviewed(self, db, office, messaging, notifier):
        message = await _message(db, office)

        await messaging.notify_if_unviewed(message.id)

        assert len(notifier.sent) == 1
        sent = notifier.sent[0]
        assert sent["to"] == "client@silva.com"
        assert sent["subject"] == 'New message in case "Silva Advogados v. Costa"'
        assert "Hello Carla" in sent["text"]
        assert "Please sign the power of attorney" in sent["text"]
        assert "Silva Advogados v. Costa" in sent["html"]

    async def test_alert_escapes_html(self, db, office, messaging, notifier):
        message = await _message(db, office, "<script>alert(1)</script>")

        await messaging.notify_if_unviewed(message.id)

        assert "<script>" not in notifier.sent[0]["html"]
        assert "&lt;script&gt;" in notifier.sent[0]["html"]

    async def test_no_alert_when_viewed(self, db, office, messaging, notifier):
        message = await _message(db, office)
        await message_crud.mark_viewed(db, message.id, office.tenant_id)

        await messaging.notify_if_unviewed(message.id)

        assert notifier.sent == []

    async def test_no_alert_when_deleted(self, db, office, messaging, notifier):
        message = await _message(db, office)
        await db.execute(delete(Message).where(Message.id == message.id))
        await db.commit()

        await messaging.notify_if_unviewed(message.id)

        assert notifier.sent == []

    async def test_no_alert_without_receiver_email(self, db, office, messaging, notifier):
        office.client.email = None
        db.add(office.client)
        await db.commit()
        message = await _message(db, office)

        await messaging.notify_if_unviewed(message.id)

        assert notifier.sent == []

    async def test_delivery_failure_does_not_raise(self, db, office, messaging, notifier, caplog):
        notifier.succeed = False
        message = await _message(db, office)

        await messaging.notify_if_unviewed(message.id)

        assert len(notifier.sent) == 1
        assert "could not be delivered" in caplog.text


class TestMessageLifecycle:
    async def test_unread_message_triggers_alert(self, db, office, session_factory, connections, notifier):
        scheduler = NotificationScheduler(delay=0.05)
        messaging = MessagingService(session_factory, scheduler, connections, notifier)
        payload = MessageCreate(content="Hearing moved", case_id=office.case.id, receiver_client_id=office.client.id)

        sent = await messaging.send_message(db, identity_from_token(office.tokens["lawyer"]), payload)
        assert scheduler.is_armed(sent.id)
        await asyncio.sleep(0.3)

        assert [m["to"] for m in notifier.sent] == ["client@silva.com"]
        assert scheduler.pending_count == 0
        await scheduler.shutdown()

    async def test_viewed_message_is_not_alerted(self, db, office, session_factory, connections, notifier):
        scheduler = NotificationScheduler(delay=0.1)
        messaging = MessagingService(session_factory, scheduler, connections, notifier)
        payload = MessageCreate(content="Hearing moved", case_id=office.case.id, receiver_client_id=office.client.id)

        sent = await messaging.send_message(db, identity_from_token(office.tokens["lawyer"]), payload)
        viewed = await messaging.mark_viewed(db, identity_from_token(office.tokens["client"]), sent.id)
        assert viewed.viewed is True
        await asyncio.sleep(0.3)

        assert notifier.sent == []
        await scheduler.shutdown()

    async def test_broadcasts_arrive_in_creation_order(self, db, office, messaging, connections, make_socket):
        socket = make_socket()
        lawyer = identity_from_token(office.tokens["lawyer"])
        await connections.connect(socket, lawyer)
        connections.join_case(socket, office.tenant_id, office.case.id)

        for content in ("first", "second", "third"):
            payload = MessageCreate(content=content, case_id=office.case.id, receiver_client_id=office.client.id)
            await messaging.send_message(db, lawyer, payload)

        assert [m["content"] for m in socket.events("newMessage")] == ["first", "second", "third"]
        assert messaging._case_locks == {}

    async def test_concurrent_sends_release_case_lock(self, office, messaging, session_factory):
        lawyer = identity_from_token(office.tokens["lawyer"])

        async def send(content):
            async with session_factory() as session:
                payload = MessageCreate(content=content, case_id=office.case.id, receiver_client_id=office.client.id)
                return await messaging.send_message(session, lawyer, payload)

        sent = await asyncio.gather(send("one"), send("two"))

        assert sorted(m.content for m in sent) == ["one", "two"]
        assert messaging._case_locks == {}


class TestViewTransition:
    async def test_concurrent_views_transition_once(self, db, office, session_factory):
        message = await _message(db, office)

        async def view():
            async with session_factory() as session:
                _, transitioned = await message_crud.mark_viewed(session, message.id, office.tenant_id)
                return transitioned

        results = await asyncio.gather(view(), view())

        assert sorted(results) == [False, True]

    async def test_viewed_at_is_kept(self, db, office):
        message = await _message(db, office)

        first, transitioned = await message_crud.mark_viewed(db, message.id, office.tenant_id)
        assert transitioned
        viewed_at = first.viewed_at

        second, transitioned = await message_crud.mark_viewed(db, message.id, office.tenant_id)
        assert not transitioned
        assert second.viewed is True
        assert second.viewed_at == viewed_at
