from typing import List, Optional, Sequence
from uuid import UUID
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.exceptions import Conflict, ValidationError
from app.core.permissions import DEFAULT_ROLE_PERMISSIONS
from app.core.security import get_password_hash, verify_password
from app.crud.permission import get_permissions_by_names
from app.db.models import User, UserRole, Permission, UserPermission
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)

async def get_user(db: AsyncSession, user_id: UUID, tenant_id: Optional[UUID] = None) -> Optional[User]:
    query = select(User).where(User.id == user_id)
    if tenant_id is not None:
        query = query.where(User.tenant_id == tenant_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """
    Get a user by email. Emails are unique across all tenants.
    """
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()

async def get_users(db: AsyncSession, tenant_id: UUID, skip: int = 0, limit: int = 100) -> List[User]:
    result = await db.execute(
        select(User)
        .where(User.tenant_id == tenant_id)
        .order_by(User.created_at)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())

async def get_permission_names(db: AsyncSession, user_id: UUID) -> List[str]:
    """
    Names of the permissions currently granted to a user.
    """
    result = await db.execute(
        select(Permission.name)
        .join(UserPermission, UserPermission.permission_id == Permission.id)
        .where(UserPermission.user_id == user_id)
        .order_by(Permission.name)
    )
    return list(result.scalars().all())

def build_user(
    user_in: UserCreate,
    tenant_id: UUID,
    role: UserRole,
    permissions: Sequence[Permission],
) -> User:
    """
    Build an unsaved user with hashed password and the given grants attached.
    """
    db_user = User(
        tenant_id=tenant_id,
        email=user_in.email,
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        hashed_password=get_password_hash(user_in.password),
        role=role,
        is_active=True,
    )
    for permission in permissions:
        db_user.user_permissions.append(UserPermission(permission_id=permission.id))
    return db_user

async def create_user(
    db: AsyncSession,
    user_in: UserCreate,
    tenant_id: UUID,
    role: UserRole = UserRole.lawyer,
) -> User:
    """
    Create a user in the tenant with the default permissions of their role.
    """
    if await get_user_by_email(db, user_in.email):
        raise Conflict("A user with this email already exists.")

    permissions = await get_permissions_by_names(db, DEFAULT_ROLE_PERMISSIONS[role])
    db_user = build_user(user_in, tenant_id, role, permissions)

    try:
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_user: {e}")
        raise

    logger.info(f"User {db_user.id} created with role {role.value}")
    return db_user

async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user

async def update_profile(db: AsyncSession, db_user: User, first_name: Optional[str], last_name: Optional[str]) -> User:
    if first_name is not None:
        db_user.first_name = first_name
    if last_name is not None:
        db_user.last_name = last_name

    try:
        await db.commit()
        await db.refresh(db_user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_profile: {e}")
        raise

    return db_user

async def change_password(db: AsyncSession, db_user: User, new_password: str) -> User:
    db_user.hashed_password = get_password_hash(new_password)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in change_password: {e}")
        raise

    logger.info(f"Password changed for user {db_user.id}")
    return db_user

async def set_permissions(db: AsyncSession, db_user: User, names: Sequence[str]) -> List[str]:
    """
    Replace the user's grants with the named permissions.

    Takes effect in the user's next token.
    """
    permissions = await get_permissions_by_names(db, names)
    unknown = set(names) - {p.name for p in permissions}
    if unknown:
        raise ValidationError(f"Unknown permission(s): {', '.join(sorted(unknown))}.")

    try:
        await db.execute(delete(UserPermission).where(UserPermission.user_id == db_user.id))
        for permission in permissions:
            db.add(UserPermission(user_id=db_user.id, permission_id=permission.id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in set_permissions: {e}")
        raise

    logger.info(f"Permissions of user {db_user.id} set to {sorted(p.name for p in permissions)}")
    return await get_permission_names(db, db_user.id)
