"""
Effective participant sets of a case.

A case's participants are its primary lawyer and primary client plus every
row of the participant join tables. The sets are read fresh for every
authorization decision since membership can change between requests.
"""

from dataclasses import dataclass
from typing import FrozenSet, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound
from app.db.models import Case, CaseParticipantClient, CaseParticipantUser, Client


@dataclass(frozen=True)
class Participants:
    case_id: UUID
    tenant_id: UUID
    lawyer_primary_id: UUID
    client_primary_id: UUID
    lawyer_ids: FrozenSet[UUID]
    client_ids: FrozenSet[UUID]

    def has_lawyer(self, user_id: UUID) -> bool:
        return user_id in self.lawyer_ids

    def has_client(self, client_id: UUID) -> bool:
        return client_id in self.client_ids


async def resolve_participants(db: AsyncSession, case_id: UUID, tenant_id: UUID) -> Participants:
    """
    Resolve the effective lawyer and client sets of a case in a tenant.

    Raises NotFound when the case does not exist in ``tenant_id``.
    """
    row = (
        await db.execute(
            select(Case.id, Case.lawyer_primary_id, Case.client_primary_id).where(
                Case.id == case_id, Case.tenant_id == tenant_id
            )
        )
    ).first()
    if row is None:
        raise NotFound("Case not found.")

    user_rows = await db.execute(
        select(CaseParticipantUser.user_id).where(CaseParticipantUser.case_id == case_id)
    )
    client_rows = await db.execute(
        select(CaseParticipantClient.client_id).where(CaseParticipantClient.case_id == case_id)
    )

    lawyer_ids = {row.lawyer_primary_id, *user_rows.scalars().all()}
    client_ids = {row.client_primary_id, *client_rows.scalars().all()}

    return Participants(
        case_id=row.id,
        tenant_id=tenant_id,
        lawyer_primary_id=row.lawyer_primary_id,
        client_primary_id=row.client_primary_id,
        lawyer_ids=frozenset(lawyer_ids),
        client_ids=frozenset(client_ids),
    )


async def resolve_participant_user_ids(db: AsyncSession, participants: Participants) -> Set[UUID]:
    """
    User ids behind a participant set: the lawyers plus the logins of its clients.
    """
    user_ids = set(participants.lawyer_ids)
    if participants.client_ids:
        result = await db.execute(
            select(Client.user_id).where(
                Client.id.in_(participants.client_ids),
                Client.tenant_id == participants.tenant_id,
                Client.user_id.is_not(None),
            )
        )
        user_ids.update(result.scalars().all())
    return user_ids
