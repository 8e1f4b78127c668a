from typing import Iterable, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.permissions import PERMISSIONS
from app.db.models import Permission

logger = logging.getLogger(__name__)

async def get_permissions(db: AsyncSession) -> List[Permission]:
    result = await db.execute(select(Permission).order_by(Permission.name))
    return list(result.scalars().all())

async def get_permissions_by_names(db: AsyncSession, names: Iterable[str]) -> List[Permission]:
    names = list(names)
    if not names:
        return []
    result = await db.execute(select(Permission).where(Permission.name.in_(names)))
    return list(result.scalars().all())

async def seed_permissions(db: AsyncSession) -> int:
    """
    Insert any catalogue permission missing from the database.

    Returns the number of permissions created.
    """
    result = await db.execute(select(Permission.name))
    existing = set(result.scalars().all())

    created = 0
    for name, description in PERMISSIONS:
        if name in existing:
            continue
        db.add(Permission(name=name, description=description))
        created += 1

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in seed_permissions: {e}")
        raise

    if created:
        logger.info(f"Seeded {created} permission(s)")
    return created
