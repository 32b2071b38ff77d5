"""
Seed database with a demo school.

Registers one tenant through the normal lifecycle path, approves it and adds
a teacher and two students.
"""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from educore.core.database import Base, db_manager
from educore.core.security import hash_password
from educore.features.auth.identity import Identity
from educore.features.tenants.lifecycle import tenant_lifecycle
from educore.features.tenants.quota import quota_enforcer
from educore.models.tenant import Plan
from educore.models.user import Role, User
from educore.schemas.tenant import AdminInfo, PlanInfo, TenantInfo

# Local operator identity for the approval step
SEED_OPERATOR = Identity(
    user_id="seed-script",
    tenant_id=None,
    role=Role.SYS_ADMIN,
    issued_at=datetime.now(timezone.utc),
    expires_at=datetime.now(timezone.utc),
)


async def seed_data() -> None:
    """Create initial demo data."""
    print("🌱 Seeding database...")

    db_manager.init()

    async with db_manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with db_manager.session_factory() as db:
        if await db.scalar(select(User.id).where(User.email == "admin@alpha.edu")):
            print("⚠️  Demo school already exists. Skipping seed.")
            await db_manager.close()
            return

        tenant = await tenant_lifecycle.register_tenant(
            db,
            TenantInfo(name="Alpha School", contact_email="office@alpha.edu"),
            AdminInfo(email="admin@alpha.edu", password="Admin123!", full_name="Alpha Admin"),
            PlanInfo(plan=Plan.SMALL),
        )
        await tenant_lifecycle.approve(db, tenant.id, SEED_OPERATOR)

        users = [
            User(
                email="teacher@alpha.edu",
                hashed_password=hash_password("Teacher123!"),
                full_name="Tina Teacher",
                role=Role.TEACHER.value,
            ),
            User(
                email="student1@alpha.edu",
                hashed_password=hash_password("Student123!"),
                full_name="Sam Student",
                role=Role.STUDENT.value,
            ),
            User(
                email="student2@alpha.edu",
                hashed_password=hash_password("Student123!"),
                full_name="Sara Student",
                role=Role.STUDENT.value,
            ),
        ]
        await quota_enforcer.admit_users(db, tenant.id, users)

        print(f"✅ Created tenant: {tenant.name} ({tenant.id})")
        print("✅ Created admin: admin@alpha.edu (password: Admin123!)")
        print(f"✅ Created {len(users)} users")

    await db_manager.close()
    print("🎉 Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
