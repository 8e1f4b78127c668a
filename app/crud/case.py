from typing import List, Optional
from uuid import UUID
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.exceptions import Conflict, NotFound
from app.db.models import (
    Case, CaseStatus, CaseUserRole, ClientParticipation,
    CaseParticipantUser, CaseParticipantClient, Client, User, UserRole,
)
from app.schemas.case import CaseCreate, CaseUpdate

logger = logging.getLogger(__name__)

def _case_options(with_files: bool = False):
    options = [
        selectinload(Case.lawyer_primary),
        selectinload(Case.client_primary),
        selectinload(Case.participants_users).selectinload(CaseParticipantUser.user),
        selectinload(Case.participants_clients).selectinload(CaseParticipantClient.client),
    ]
    if with_files:
        options.append(selectinload(Case.files))
    return options

async def get_case(db: AsyncSession, case_id: UUID, tenant_id: UUID, with_files: bool = False) -> Optional[Case]:
    """
    Get a case of the tenant with primaries and participants loaded.
    """
    result = await db.execute(
        select(Case)
        .options(*_case_options(with_files))
        .where(Case.id == case_id, Case.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()

async def get_cases(
    db: AsyncSession,
    tenant_id: UUID,
    skip: int = 0,
    limit: int = 100,
    client_id: Optional[UUID] = None,
    status: Optional[CaseStatus] = None,
) -> List[Case]:
    """
    Get the cases of a tenant, newest first.

    With ``client_id`` only cases that client is primary contact of or
    participates in are returned.
    """
    query = select(Case).options(*_case_options()).where(Case.tenant_id == tenant_id)

    if client_id is not None:
        query = query.where(
            or_(
                Case.client_primary_id == client_id,
                Case.participants_clients.any(CaseParticipantClient.client_id == client_id),
            )
        )
    if status is not None:
        query = query.where(Case.status == status)

    query = query.order_by(Case.created_at.desc()).offset(skip).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())

async def _get_tenant_client(db: AsyncSession, client_id: UUID, tenant_id: UUID) -> Client:
    result = await db.execute(
        select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
    )
    client = result.scalar_one_or_none()
    if not client:
        raise NotFound("Client not found.")
    return client

async def _get_tenant_lawyer(db: AsyncSession, user_id: UUID, tenant_id: UUID) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, User.tenant_id == tenant_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found.")
    if user.role == UserRole.client:
        raise Conflict("Client accounts cannot take part in a case as lawyers.")
    return user

async def create_case(db: AsyncSession, case_in: CaseCreate, tenant_id: UUID, lawyer_id: UUID) -> Case:
    """
    Create a case together with its lead-lawyer and main-contact participations.

    The three rows are committed in one transaction so a case never exists
    without its primaries enrolled as participants.
    """
    await _get_tenant_client(db, case_in.client_id, tenant_id)

    db_case = Case(
        tenant_id=tenant_id,
        title=case_in.title,
        description=case_in.description,
        status=case_in.status,
        lawyer_primary_id=lawyer_id,
        client_primary_id=case_in.client_id,
    )
    db_case.participants_users.append(
        CaseParticipantUser(user_id=lawyer_id, role=CaseUserRole.lead_lawyer)
    )
    db_case.participants_clients.append(
        CaseParticipantClient(client_id=case_in.client_id, participation=ClientParticipation.main_contact)
    )

    try:
        db.add(db_case)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_case: {e}")
        raise

    logger.info(f"Case {db_case.id} created in tenant {tenant_id}")
    return await get_case(db, db_case.id, tenant_id)

async def update_case(db: AsyncSession, db_case: Case, case_in: CaseUpdate) -> Case:
    """
    Apply the fields set on ``case_in`` to an existing case.
    """
    update_data = case_in.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(db_case, field, value)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_case: {e}")
        raise

    return await get_case(db, db_case.id, db_case.tenant_id)

async def delete_case(db: AsyncSession, db_case: Case) -> bool:
    """
    Delete a case; participants, messages, files and invites go with it.
    """
    try:
        await db.delete(db_case)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in delete_case: {e}")
        raise

    logger.info(f"Case {db_case.id} deleted")
    return True

async def add_user_participant(db: AsyncSession, db_case: Case, user_id: UUID, role: CaseUserRole) -> Case:
    await _get_tenant_lawyer(db, user_id, db_case.tenant_id)
    if any(p.user_id == user_id for p in db_case.participants_users):
        raise Conflict("User already participates in this case.")

    try:
        db.add(CaseParticipantUser(case_id=db_case.id, user_id=user_id, role=role))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in add_user_participant: {e}")
        raise

    logger.info(f"User {user_id} added to case {db_case.id} as {role.value}")
    return await get_case(db, db_case.id, db_case.tenant_id)

async def add_client_participant(
    db: AsyncSession,
    db_case: Case,
    client_id: UUID,
    participation: ClientParticipation,
) -> Case:
    await _get_tenant_client(db, client_id, db_case.tenant_id)
    if any(p.client_id == client_id for p in db_case.participants_clients):
        raise Conflict("Client already participates in this case.")

    try:
        db.add(CaseParticipantClient(case_id=db_case.id, client_id=client_id, participation=participation))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in add_client_participant: {e}")
        raise

    logger.info(f"Client {client_id} added to case {db_case.id} as {participation.value}")
    return await get_case(db, db_case.id, db_case.tenant_id)
