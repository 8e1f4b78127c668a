from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.config import settings
from app.core.exceptions import Conflict, NotFound, ValidationError
from app.core.permissions import DEFAULT_ROLE_PERMISSIONS
from app.crud.client import get_client_by_email
from app.crud.permission import get_permissions_by_names
from app.crud.user import build_user, get_user_by_email
from app.db.base_class import utcnow
from app.db.models import (
    Case, CaseParticipantClient, Client, ClientParticipation, Invite, User, UserRole,
)
from app.schemas.auth import RegisterViaInvite
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)

def _is_expired(invite: Invite) -> bool:
    expires_at = invite.expires_at
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        return expires_at < utcnow().replace(tzinfo=None)
    return expires_at < utcnow()

async def get_invite_by_token(db: AsyncSession, token: str) -> Optional[Invite]:
    result = await db.execute(
        select(Invite).options(selectinload(Invite.case)).where(Invite.token == token)
    )
    return result.scalar_one_or_none()

async def get_pending_invite(db: AsyncSession, email: str, case_id: UUID) -> Optional[Invite]:
    """
    Get an unused, unexpired invite for this e-mail on this case.
    """
    result = await db.execute(
        select(Invite).where(
            Invite.email == email,
            Invite.case_id == case_id,
            Invite.is_used.is_(False),
        )
    )
    for invite in result.scalars().all():
        if not _is_expired(invite):
            return invite
    return None

async def create_invite(db: AsyncSession, case: Case, email: str) -> Invite:
    """
    Create an invite for ``email`` to join ``case`` as a client.

    Fails with Conflict when the address already has a login or a pending
    invite to the same case.
    """
    if await get_user_by_email(db, email):
        raise Conflict("This email is already in use.")
    if await get_pending_invite(db, email, case.id):
        raise Conflict("There is already a pending invite for this email on this case.")

    db_invite = Invite(
        tenant_id=case.tenant_id,
        case_id=case.id,
        email=email,
        token=str(uuid4()),
        expires_at=utcnow() + timedelta(hours=settings.INVITE_EXPIRE_HOURS),
        is_used=False,
    )
    try:
        db.add(db_invite)
        await db.commit()
        await db.refresh(db_invite)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_invite: {e}")
        raise

    logger.info(f"Invite {db_invite.id} created for case {case.id}")
    return db_invite

def invite_link(invite: Invite) -> str:
    return f"{settings.FRONTEND_BASE_URL.rstrip('/')}/register-client?token={invite.token}"

async def redeem_invite(db: AsyncSession, registration: RegisterViaInvite) -> User:
    """
    Turn an invite into a client login attached to the invited case.

    Creates the Client-role user, creates or links the client record,
    enrolls the client in the case and marks the invite used, all in one
    transaction.
    """
    invite = await get_invite_by_token(db, registration.token)
    if not invite:
        raise NotFound("Invite not found.")
    if invite.is_used:
        raise ValidationError("Invite has already been used.")
    if _is_expired(invite):
        raise ValidationError("Invite has expired.")
    if await get_user_by_email(db, invite.email):
        raise Conflict("This email is already in use.")

    user_in = UserCreate(
        email=invite.email,
        first_name=registration.first_name,
        last_name=registration.last_name,
        password=registration.password,
    )
    permissions = await get_permissions_by_names(db, DEFAULT_ROLE_PERMISSIONS[UserRole.client])
    client = await get_client_by_email(db, invite.email, invite.tenant_id)
    if client is not None and client.user_id is not None:
        raise Conflict("This client already has an account.")

    try:
        db_user = build_user(user_in, invite.tenant_id, UserRole.client, permissions)
        db.add(db_user)
        await db.flush()

        if client is None:
            client = Client(
                tenant_id=invite.tenant_id,
                first_name=registration.first_name,
                last_name=registration.last_name,
                email=invite.email,
                phone_number=registration.phone_number,
            )
            db.add(client)
        client.user_id = db_user.id
        await db.flush()

        existing = await db.execute(
            select(CaseParticipantClient).where(
                CaseParticipantClient.case_id == invite.case_id,
                CaseParticipantClient.client_id == client.id,
            )
        )
        if existing.scalar_one_or_none() is None and invite.case.client_primary_id != client.id:
            db.add(CaseParticipantClient(
                case_id=invite.case_id,
                client_id=client.id,
                participation=ClientParticipation.other_contact,
            ))

        invite.is_used = True
        await db.commit()
        await db.refresh(db_user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in redeem_invite: {e}")
        raise

    logger.info(f"Invite {invite.id} redeemed by user {db_user.id} (client {client.id})")
    return db_user
