"""
End-to-end flows through the public API.
"""

import pytest
from httpx import AsyncClient


async def register(client: AsyncClient, name: str, email: str) -> str:
    response = await client.post(
        "/api/v1/tenant/register",
        json={
            "tenantInfo": {"name": name},
            "adminInfo": {"email": email, "password": "secret1", "full_name": "School Admin"},
            "planInfo": {"plan": "small"},
        },
    )
    assert response.status_code == 201
    return response.json()["data"]["tenant_id"]


async def login(client: AsyncClient, email: str, password: str = "secret1"):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


@pytest.mark.api
class TestScenarios:

    async def test_register_approve_login(self, client: AsyncClient, sys_admin_headers):
        tenant_id = await register(client, "THPT Alpha", "admin@alpha.edu")

        response = await client.put(f"/api/v1/tenant/{tenant_id}/approve", headers=sys_admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["max_students"] == 300

        response = await login(client, "admin@alpha.edu")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["role"] == "school_admin"
        assert data["tenant"]["status"] == "active"

    async def test_rejected_school_cannot_log_in(self, client: AsyncClient, sys_admin_headers):
        tenant_id = await register(client, "THPT Beta", "admin@beta.edu")

        response = await client.put(
            f"/api/v1/tenant/{tenant_id}/reject",
            json={"reason": "duplicate school code"},
            headers=sys_admin_headers,
        )
        assert response.json()["data"]["status"] == "rejected"

        response = await login(client, "admin@beta.edu")
        assert response.status_code == 403
        assert response.json()["message"] == "Tenant is not active"

        response = await client.put(f"/api/v1/tenant/{tenant_id}/approve", headers=sys_admin_headers)
        assert response.status_code == 409

    async def test_admin_fills_seats_until_the_limit(self, client: AsyncClient, sys_admin_headers):
        tenant_id = await register(client, "THPT Gamma", "admin@gamma.edu")
        await client.put(f"/api/v1/tenant/{tenant_id}/approve", headers=sys_admin_headers)
        token = (await login(client, "admin@gamma.edu")).json()["data"]["token"]
        headers = {"Authorization": f"Bearer {token}"}

        response = await client.get(
            f"/api/v1/tenant/{tenant_id}/check-limit",
            params={"count": 301},
            headers=headers,
        )
        data = response.json()["data"]
        assert data["can_add"] is False
        assert data["remaining"] == 300

        response = await client.post(
            "/api/v1/users",
            json={"users": [
                {"email": f"student{n}@gamma.edu", "password": "secret1"} for n in range(3)
            ]},
            headers=headers,
        )
        assert response.status_code == 201

        response = await client.get(f"/api/v1/tenant/{tenant_id}/stats", headers=headers)
        assert response.json()["data"]["limits"]["students_used"] == 3
