from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.exceptions import Conflict
from app.core.permissions import DEFAULT_ROLE_PERMISSIONS
from app.crud.permission import get_permissions_by_names
from app.crud.user import build_user, get_user_by_email
from app.db.models import Tenant, User, UserRole
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)

async def get_tenant_by_name(db: AsyncSession, name: str) -> Optional[Tenant]:
    result = await db.execute(select(Tenant).where(Tenant.name == name))
    return result.scalar_one_or_none()

async def register_user(db: AsyncSession, tenant_name: str, user_in: UserCreate) -> User:
    """
    Register a user into the office named ``tenant_name``.

    An unknown name creates the office and makes the registrant its Admin;
    a known name adds the registrant to it as a Lawyer.
    """
    if await get_user_by_email(db, user_in.email):
        raise Conflict("A user with this email already exists.")

    tenant = await get_tenant_by_name(db, tenant_name)
    role = UserRole.lawyer
    try:
        if tenant is None:
            tenant = Tenant(name=tenant_name)
            db.add(tenant)
            await db.flush()
            role = UserRole.admin
            logger.info(f"Tenant {tenant.id} created for {tenant_name!r}")

        permissions = await get_permissions_by_names(db, DEFAULT_ROLE_PERMISSIONS[role])
        db_user = build_user(user_in, tenant.id, role, permissions)
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in register_user: {e}")
        raise

    logger.info(f"User {db_user.id} registered in tenant {tenant.id} as {role.value}")
    return db_user
