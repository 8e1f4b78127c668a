import pytest
from datetime import timedelta
from httpx import AsyncClient
from fastapi import status
from sqlalchemy import select

from app.db.base_class import utcnow
from app.db.models import CaseParticipantClient, Client, Invite, UserRole

pytestmark = pytest.mark.asyncio


async def _invite(client: AsyncClient, office, email: str = "newclient@example.com"):
    return await client.post(
        f"/api/v1/cases/{office.case.id}/invite-client",
        json={"email": email},
        headers=office.headers("lawyer"),
    )


def _registration(token: str) -> dict:
    return {
        "token": token,
        "first_name": "Nina",
        "last_name": "Nova",
        "password": "nina_password1",
        "phone_number": "+5511999999999",
    }


class TestInviteIssuance:
    async def test_invite_sends_email(self, client: AsyncClient, office, notifier):
        response = await _invite(client, office)
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["email_sent"] is True
        assert data["invite"]["email"] == "newclient@example.com"
        assert data["invite"]["is_used"] is False

        assert len(notifier.sent) == 1
        assert notifier.sent[0]["to"] == "newclient@example.com"
        assert "/register-client?token=" in notifier.sent[0]["text"]

    async def test_invite_reports_email_failure(self, client: AsyncClient, office, notifier):
        notifier.succeed = False
        response = await _invite(client, office)
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["email_sent"] is False

    async def test_duplicate_pending_invite(self, client: AsyncClient, office):
        await _invite(client, office)
        response = await _invite(client, office)
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_invite_existing_user_email(self, client: AsyncClient, office):
        response = await _invite(client, office, email="lawyer@silva.com")
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_invite_requires_case_membership(self, client: AsyncClient, office):
        response = await client.post(
            f"/api/v1/cases/{office.case.id}/invite-client",
            json={"email": "newclient@example.com"},
            headers=office.headers("outsider"),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_invite_requires_permission(self, client: AsyncClient, office):
        response = await client.post(
            f"/api/v1/cases/{office.case.id}/invite-client",
            json={"email": "newclient@example.com"},
            headers=office.headers("client"),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestInviteRedemption:
    async def test_redeem_creates_client_account_in_case(self, client: AsyncClient, db, office):
        await _invite(client, office)
        token = (await db.execute(select(Invite.token))).scalar_one()

        response = await client.post("/api/v1/register/invite", json=_registration(token))
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["access_token"]
        assert data["user"]["role"] == UserRole.client.value
        assert data["user"]["email"] == "newclient@example.com"
        assert data["user"]["tenant_id"] == str(office.tenant_id)

        new_client = (
            await db.execute(select(Client).where(Client.email == "newclient@example.com"))
        ).scalar_one()
        assert str(new_client.user_id) == data["user"]["id"]
        participation = (
            await db.execute(
                select(CaseParticipantClient).where(
                    CaseParticipantClient.case_id == office.case.id,
                    CaseParticipantClient.client_id == new_client.id,
                )
            )
        ).scalar_one()
        assert participation.participation.value == "OtherContact"

        headers = {"Authorization": f"Bearer {data['access_token']}"}
        response = await client.get("/api/v1/cases", headers=headers)
        assert [c["id"] for c in response.json()] == [str(office.case.id)]

    async def test_redeem_links_existing_client_record(self, client: AsyncClient, db, office):
        response = await client.post(
            "/api/v1/clients",
            json={"first_name": "Nina", "last_name": "Nova", "email": "newclient@example.com"},
            headers=office.headers("lawyer"),
        )
        client_id = response.json()["id"]

        await _invite(client, office)
        token = (await db.execute(select(Invite.token))).scalar_one()
        response = await client.post("/api/v1/register/invite", json=_registration(token))
        assert response.status_code == status.HTTP_201_CREATED

        clients = (
            await db.execute(select(Client).where(Client.email == "newclient@example.com"))
        ).scalars().all()
        assert [str(c.id) for c in clients] == [client_id]

    async def test_redeem_twice(self, client: AsyncClient, db, office):
        await _invite(client, office)
        token = (await db.execute(select(Invite.token))).scalar_one()
        await client.post("/api/v1/register/invite", json=_registration(token))

        response = await client.post("/api/v1/register/invite", json=_registration(token))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_redeem_expired(self, client: AsyncClient, db, office):
        await _invite(client, office)
        invite = (await db.execute(select(Invite))).scalar_one()
        invite.expires_at = utcnow() - timedelta(minutes=1)
        await db.commit()

        response = await client.post("/api/v1/register/invite", json=_registration(invite.token))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_redeem_unknown_token(self, client: AsyncClient, db):
        response = await client.post("/api/v1/register/invite", json=_registration("no-such-token"))
        assert response.status_code == status.HTTP_404_NOT_FOUND
