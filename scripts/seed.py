#!/usr/bin/env python3
"""
Prepare a database for use.

Creates missing tables, seeds the permission catalogue and, optionally, an
office with its first administrator.

Usage:
    python scripts/seed.py
    python scripts/seed.py --tenant "Silva Advogados" --email admin@silva.adv --password secret123
"""
import asyncio
import os
import sys
import logging
import argparse

# Add the parent directory to the path so we can import from app
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from app.core.database import close_db_connection, create_tables, get_db_context
from app.core.exceptions import Conflict
from app.crud import permission as permission_crud
from app.crud import tenant as tenant_crud
from app.schemas.user import UserCreate
from app.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def seed(args: argparse.Namespace) -> None:
    await create_tables()

    async with get_db_context() as db:
        created = await permission_crud.seed_permissions(db)
        logger.info(f"Permission catalogue ready ({created} new)")

        if args.tenant:
            user_in = UserCreate(
                email=args.email,
                password=args.password,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            try:
                user = await tenant_crud.register_user(db, args.tenant, user_in)
                logger.info(f"{user.role.value} {user.email} ready in office {args.tenant!r}")
            except Conflict as e:
                logger.warning(f"Skipping user creation: {e.detail}")

    await close_db_connection()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the database")
    parser.add_argument("--tenant", help="Office name to create together with its admin")
    parser.add_argument("--email", default="admin@example.com", help="Admin e-mail")
    parser.add_argument("--password", default="changeme123", help="Admin password")
    parser.add_argument("--first-name", default="Admin", help="Admin first name")
    parser.add_argument("--last-name", default="User", help="Admin last name")
    args = parser.parse_args()

    setup_logging("INFO")
    asyncio.run(seed(args))


if __name__ == "__main__":
    main()
