"""
Create the global system administrator.

Usage:
    python scripts/create_sysadmin.py --email sysadmin@educore.com
    EDUCORE_SYSADMIN_PASSWORD=... python scripts/create_sysadmin.py
"""

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from educore.core.database import Base, db_manager
from educore.core.security import hash_password, normalize_email
from educore.models.user import Role, User


async def create_sysadmin(email: str, password: str, full_name: str) -> None:
    """Create the sys_admin user unless one already exists."""
    db_manager.init()

    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with db_manager.session_factory() as db:
        existing = await db.scalar(select(User).where(User.role == Role.SYS_ADMIN.value))
        if existing:
            print(f"ℹ️  Sys admin already exists: {existing.email} (ID: {existing.id})")
        else:
            sys_admin = User(
                email=normalize_email(email),
                hashed_password=hash_password(password),
                full_name=full_name,
                role=Role.SYS_ADMIN.value,
                tenant_id=None,
                is_active=True,
            )
            db.add(sys_admin)
            await db.commit()
            print(f"✅ Sys admin created: {sys_admin.email} (ID: {sys_admin.id})")

    await db_manager.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the EduCore system administrator")
    parser.add_argument("--email", default="sysadmin@educore.com")
    parser.add_argument("--full-name", default="System Administrator")
    args = parser.parse_args()

    password = os.environ.get("EDUCORE_SYSADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < 6:
        sys.exit("Password must be at least 6 characters")

    asyncio.run(create_sysadmin(args.email, password, args.full_name))


if __name__ == "__main__":
    main()
