from typing import List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.exceptions import Conflict
from app.db.models import Client
from app.schemas.client import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)

async def get_client(db: AsyncSession, client_id: UUID, tenant_id: UUID) -> Optional[Client]:
    result = await db.execute(
        select(Client).where(Client.id == client_id, Client.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()

async def get_client_by_email(db: AsyncSession, email: str, tenant_id: UUID) -> Optional[Client]:
    """
    Get a client of the tenant by e-mail address.
    """
    result = await db.execute(
        select(Client).where(Client.email == email, Client.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()

async def get_client_by_user(db: AsyncSession, user_id: UUID, tenant_id: UUID) -> Optional[Client]:
    """
    Get the client record linked to a client login.
    """
    result = await db.execute(
        select(Client).where(Client.user_id == user_id, Client.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()

async def get_clients(db: AsyncSession, tenant_id: UUID, skip: int = 0, limit: int = 100) -> List[Client]:
    result = await db.execute(
        select(Client)
        .where(Client.tenant_id == tenant_id)
        .order_by(Client.last_name, Client.first_name)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())

async def create_client(db: AsyncSession, client_in: ClientCreate, tenant_id: UUID) -> Client:
    """
    Create a client record in the tenant.
    """
    if client_in.email and await get_client_by_email(db, client_in.email, tenant_id):
        raise Conflict("A client with this email already exists.")

    db_client = Client(tenant_id=tenant_id, **client_in.model_dump())
    try:
        db.add(db_client)
        await db.commit()
        await db.refresh(db_client)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_client: {e}")
        raise

    logger.info(f"Client {db_client.id} created in tenant {tenant_id}")
    return db_client

async def update_client(db: AsyncSession, db_client: Client, client_in: ClientUpdate) -> Client:
    update_data = client_in.model_dump(exclude_unset=True)
    new_email = update_data.get("email")
    if new_email and new_email != db_client.email:
        if await get_client_by_email(db, new_email, db_client.tenant_id):
            raise Conflict("A client with this email already exists.")

    for field, value in update_data.items():
        setattr(db_client, field, value)

    try:
        await db.commit()
        await db.refresh(db_client)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_client: {e}")
        raise

    return db_client

async def delete_client(db: AsyncSession, db_client: Client) -> bool:
    try:
        await db.delete(db_client)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in delete_client: {e}")
        raise

    logger.info(f"Client {db_client.id} deleted")
    return True
