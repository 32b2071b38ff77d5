"""
Unit tests for role and tenant-scope authorization.
"""

from datetime import datetime, timedelta, timezone

import pytest

from educore.core.exceptions import Forbidden
from educore.features.auth.guard import ensure_tenant_access, has_role, normalize_roles
from educore.features.auth.identity import Identity
from educore.models.user import Role


def make_identity(role: Role, tenant_id: str | None = "tenant-a") -> Identity:
    now = datetime.now(timezone.utc)
    return Identity(
        user_id="user-1",
        tenant_id=None if role == Role.SYS_ADMIN else tenant_id,
        role=role,
        issued_at=now,
        expires_at=now + timedelta(hours=1),
    )


@pytest.mark.unit
class TestNormalizeRoles:

    def test_single_role(self):
        assert normalize_roles(Role.TEACHER) == frozenset({Role.TEACHER})

    def test_role_name(self):
        assert normalize_roles("school_admin") == frozenset({Role.SCHOOL_ADMIN})

    def test_collection(self):
        assert normalize_roles(["student", Role.PARENT]) == frozenset({Role.STUDENT, Role.PARENT})

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            normalize_roles("principal")


@pytest.mark.unit
class TestHasRole:
    """The role model is flat: no role implies another."""

    @pytest.mark.parametrize("caller", list(Role))
    @pytest.mark.parametrize("required", list(Role))
    def test_membership_only(self, caller, required):
        assert has_role(make_identity(caller), required) is (caller == required)

    def test_sys_admin_is_not_implicitly_school_admin(self):
        assert has_role(make_identity(Role.SYS_ADMIN), Role.SCHOOL_ADMIN) is False

    def test_any_of_several(self):
        identity = make_identity(Role.TEACHER)
        assert has_role(identity, [Role.SCHOOL_ADMIN, Role.TEACHER]) is True
        assert has_role(identity, [Role.SCHOOL_ADMIN, Role.PARENT]) is False


@pytest.mark.unit
class TestTenantScope:

    def test_same_tenant(self):
        ensure_tenant_access(make_identity(Role.TEACHER, "tenant-a"), "tenant-a")

    def test_other_tenant_forbidden(self):
        with pytest.raises(Forbidden):
            ensure_tenant_access(make_identity(Role.SCHOOL_ADMIN, "tenant-a"), "tenant-b")

    def test_sys_admin_reaches_any_tenant(self):
        ensure_tenant_access(make_identity(Role.SYS_ADMIN), "tenant-b")
