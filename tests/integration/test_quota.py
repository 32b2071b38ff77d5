"""
Integration tests for student seat enforcement.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from educore.core.exceptions import (
    ConflictError,
    NotFoundError,
    QuotaExceeded,
    StoreUnavailable,
    TenantInactive,
    ValidationError,
)
from educore.core.security import hash_password
from educore.features.tenants import quota as quota_module
from educore.features.tenants.quota import QuotaEnforcer, quota_enforcer
from educore.models import Role, Tenant, TenantStatus, User
from tests.factories import TenantFactory, UserFactory

PASSWORD_HASH = hash_password("secret1")


def new_user(email: str, role: Role = Role.STUDENT) -> User:
    return User(email=email, hashed_password=PASSWORD_HASH, role=role.value, is_active=True)


async def student_count(db, tenant_id: str) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(User)
        .where(User.tenant_id == tenant_id, User.role == Role.STUDENT.value)
    )


@pytest.mark.integration
class TestCanAddStudents:

    async def test_full_tenant(self, db_session):
        tenant = await TenantFactory.create(db_session, max_students=2)
        await UserFactory.create_batch(db_session, tenant, count=2, role=Role.STUDENT.value)

        check = await quota_enforcer.can_add_students(db_session, tenant.id, 1)

        assert check.can_add is False
        assert check.current_count == 2
        assert check.max_allowed == 2
        assert check.new_total == 3
        assert check.remaining == 0

    async def test_room_left(self, db_session):
        tenant = await TenantFactory.create(db_session, max_students=10)
        await UserFactory.create_batch(db_session, tenant, count=3, role=Role.STUDENT.value)
        await UserFactory.create(db_session, tenant, role=Role.TEACHER.value)

        check = await quota_enforcer.can_add_students(db_session, tenant.id, 7)

        assert check.can_add is True
        assert check.current_count == 3
        assert check.new_total == 10
        assert check.remaining == 7

    async def test_count_must_be_positive(self, db_session, active_tenant):
        with pytest.raises(ValidationError):
            await quota_enforcer.can_add_students(db_session, active_tenant.id, 0)

    async def test_unknown_tenant(self, db_session):
        with pytest.raises(NotFoundError):
            await quota_enforcer.can_add_students(db_session, "missing", 1)

    async def test_store_failure_fails_closed(self, db_session, active_tenant, monkeypatch):
        async def unavailable(awaitable, operation):
            awaitable.close()
            raise StoreUnavailable(f"Store timeout during {operation}")

        monkeypatch.setattr(quota_module, "store_call", unavailable)

        with pytest.raises(QuotaExceeded):
            await quota_enforcer.can_add_students(db_session, active_tenant.id, 1)


@pytest.mark.integration
class TestAdmitUsers:

    async def test_admits_within_limit(self, db_session):
        tenant = await TenantFactory.create(db_session, max_students=3)

        created = await quota_enforcer.admit_users(
            db_session, tenant.id, [new_user("s1@alpha.edu"), new_user("s2@alpha.edu")]
        )

        assert len(created) == 2
        assert all(user.tenant_id == tenant.id for user in created)
        assert await student_count(db_session, tenant.id) == 2
        assert (await db_session.get(Tenant, tenant.id, populate_existing=True)).student_count == 2

    async def test_rejects_batch_that_does_not_fit(self, db_session):
        tenant = await TenantFactory.create(db_session, max_students=2)
        await UserFactory.create(db_session, tenant, role=Role.STUDENT.value)
        tenant_id = tenant.id

        with pytest.raises(QuotaExceeded) as exc_info:
            await quota_enforcer.admit_users(
                db_session, tenant_id, [new_user("s2@alpha.edu"), new_user("s3@alpha.edu")]
            )

        assert exc_info.value.details["max_allowed"] == 2
        assert await student_count(db_session, tenant_id) == 1
        assert (await db_session.get(Tenant, tenant_id, populate_existing=True)).student_count == 1

    async def test_staff_do_not_take_seats(self, db_session):
        tenant = await TenantFactory.create(db_session, max_students=1)
        await UserFactory.create(db_session, tenant, role=Role.STUDENT.value)

        created = await quota_enforcer.admit_users(
            db_session, tenant.id, [new_user("t1@alpha.edu", Role.TEACHER)]
        )

        assert created[0].role == Role.TEACHER.value

    @pytest.mark.parametrize(
        "status",
        [TenantStatus.PENDING, TenantStatus.SUSPENDED, TenantStatus.REJECTED],
    )
    async def test_inactive_tenant(self, db_session, status):
        tenant = await TenantFactory.create(db_session, status=status.value)

        with pytest.raises(TenantInactive):
            await quota_enforcer.admit_users(db_session, tenant.id, [new_user("s1@alpha.edu")])

    async def test_lapsed_trial(self, db_session):
        tenant = await TenantFactory.create(
            db_session,
            status=TenantStatus.TRIAL.value,
            trial_end_date=datetime.now(timezone.utc) - timedelta(days=1),
        )

        with pytest.raises(TenantInactive):
            await quota_enforcer.admit_users(db_session, tenant.id, [new_user("s1@alpha.edu")])

    async def test_unknown_tenant(self, db_session):
        with pytest.raises(NotFoundError):
            await quota_enforcer.admit_users(db_session, "missing", [new_user("s1@alpha.edu")])

    async def test_duplicate_email_rolls_back_seats(self, db_session):
        tenant = await TenantFactory.create(db_session, max_students=5)
        await UserFactory.create(db_session, tenant, role=Role.TEACHER.value, email="taken@alpha.edu")
        tenant_id = tenant.id

        with pytest.raises(ConflictError):
            await quota_enforcer.admit_users(
                db_session, tenant_id, [new_user("s1@alpha.edu"), new_user("taken@alpha.edu")]
            )

        assert await student_count(db_session, tenant_id) == 0
        assert (await db_session.get(Tenant, tenant_id, populate_existing=True)).student_count == 0


@pytest.mark.integration
class TestQuotaUnderConcurrency:

    async def test_concurrent_admissions_never_exceed_limit(self, session_factory, db_session):
        tenant = await TenantFactory.create(db_session, max_students=5)

        async def admit(n: int):
            async with session_factory() as db:
                return await quota_enforcer.admit_users(db, tenant.id, [new_user(f"s{n}@alpha.edu")])

        results = await asyncio.gather(*(admit(n) for n in range(10)), return_exceptions=True)

        admitted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]

        assert len(admitted) == 5
        assert all(isinstance(r, QuotaExceeded) for r in rejected)
        assert await student_count(db_session, tenant.id) == 5

    async def test_stale_advisory_check_does_not_allow_overfill(self, session_factory, db_session):
        tenant = await TenantFactory.create(db_session, max_students=2)
        await UserFactory.create(db_session, tenant, role=Role.STUDENT.value)

        first = await quota_enforcer.can_add_students(db_session, tenant.id, 1)
        second = await quota_enforcer.can_add_students(db_session, tenant.id, 1)
        assert first.can_add and second.can_add

        async def admit(email: str):
            async with session_factory() as db:
                return await quota_enforcer.admit_users(db, tenant.id, [new_user(email)])

        results = await asyncio.gather(
            admit("a@alpha.edu"), admit("b@alpha.edu"), return_exceptions=True
        )

        assert sum(1 for r in results if isinstance(r, QuotaExceeded)) == 1
        assert await student_count(db_session, tenant.id) == 2

    async def test_conditional_update_holds_without_the_process_lock(self, session_factory, db_session):
        """Each task gets its own enforcer, as separate worker processes would."""
        tenant = await TenantFactory.create(db_session, max_students=3)
        tenant_id = tenant.id

        async def admit(n: int):
            async with session_factory() as db:
                return await QuotaEnforcer().admit_users(db, tenant_id, [new_user(f"w{n}@alpha.edu")])

        results = await asyncio.gather(*(admit(n) for n in range(8)), return_exceptions=True)

        admitted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, Exception)]

        assert len(admitted) == 3
        assert len(rejected) == 5
        assert all(isinstance(r, QuotaExceeded) for r in rejected)
        assert await student_count(db_session, tenant_id) == 3
        assert (await db_session.get(Tenant, tenant_id, populate_existing=True)).student_count == 3
