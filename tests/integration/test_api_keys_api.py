"""Integration tests for API key management and service-to-service auth."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from nest_auth.config import settings
from nest_auth.core.security import create_access_token, hash_api_key
from nest_auth.models.base import utcnow
from nest_auth.models.user import User
from nest_auth.repositories.api_key import ApiKeyRepository


async def create_key(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"name": "ci", "client_name": "ci-runner", "permissions": ["read", "write"]}
    payload.update(overrides)
    response = await client.post("/api/v1/api-keys", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


async def whoami(client: AsyncClient, key: str):
    return await client.get("/api/v1/service/whoami", headers={settings.api_key_header: key})


class TestApiKeyLifecycle:
    @pytest.mark.asyncio
    async def test_create_returns_secret_once(
        self, client: AsyncClient, db_session: AsyncSession, test_user: User, auth_headers
    ):
        created = await create_key(client, auth_headers)

        assert created["api_key"].startswith("nak_")
        assert created["user_id"] == str(test_user.id)
        assert created["permissions"] == ["read", "write"]
        assert created["is_active"] is True

        stored = await ApiKeyRepository(db_session).get_by_hash(hash_api_key(created["api_key"]))
        assert stored is not None
        assert stored.key != created["api_key"]

        listed = await client.get("/api/v1/api-keys", headers=auth_headers)
        assert [item["id"] for item in listed.json()] == [created["id"]]
        assert "api_key" not in listed.json()[0]

        fetched = await client.get(f"/api/v1/api-keys/{created['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert "api_key" not in fetched.json()

    @pytest.mark.asyncio
    async def test_fresh_key_validates(self, client: AsyncClient, auth_headers):
        created = await create_key(client, auth_headers)

        response = await whoami(client, created["api_key"])

        assert response.status_code == 200
        data = response.json()
        assert data["api_key_id"] == created["id"]
        assert data["client_name"] == "ci-runner"
        assert data["permissions"] == ["read", "write"]

    @pytest.mark.asyncio
    async def test_validation_records_last_use(
        self, client: AsyncClient, db_session: AsyncSession, auth_headers
    ):
        created = await create_key(client, auth_headers)
        assert created["last_used_at"] is None

        await whoami(client, created["api_key"])

        fetched = await client.get(f"/api/v1/api-keys/{created['id']}", headers=auth_headers)
        assert fetched.json()["last_used_at"] is not None

    @pytest.mark.asyncio
    async def test_usage_recording_failure_does_not_fail_request(
        self, client: AsyncClient, auth_headers, monkeypatch
    ):
        created = await create_key(client, auth_headers)

        async def broken_touch(self, api_key):
            raise RuntimeError("write failed")

        monkeypatch.setattr(ApiKeyRepository, "touch_last_used", broken_touch)

        response = await whoami(client, created["api_key"])

        assert response.status_code == 200
        assert response.json()["api_key_id"] == created["id"]
        assert response.json()["client_name"] == "ci-runner"

    @pytest.mark.asyncio
    async def test_deactivated_key_rejected(self, client: AsyncClient, auth_headers):
        created = await create_key(client, auth_headers)

        response = await client.put(
            f"/api/v1/api-keys/{created['id']}/deactivate", headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        assert (await whoami(client, created["api_key"])).status_code == 401

    @pytest.mark.asyncio
    async def test_expired_key_rejected(self, client: AsyncClient, auth_headers):
        created = await create_key(
            client, auth_headers, expires_at=(utcnow() - timedelta(minutes=1)).isoformat()
        )

        assert (await whoami(client, created["api_key"])).status_code == 401

    @pytest.mark.asyncio
    async def test_future_expiry_accepted(self, client: AsyncClient, auth_headers):
        created = await create_key(
            client, auth_headers, expires_at=(utcnow() + timedelta(days=1)).isoformat()
        )

        assert (await whoami(client, created["api_key"])).status_code == 200

    @pytest.mark.asyncio
    async def test_deleted_key_rejected(self, client: AsyncClient, auth_headers):
        created = await create_key(client, auth_headers)

        response = await client.delete(f"/api/v1/api-keys/{created['id']}", headers=auth_headers)
        assert response.status_code == 200

        assert (await whoami(client, created["api_key"])).status_code == 401
        missing = await client.get(f"/api/v1/api-keys/{created['id']}", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_regenerate_invalidates_old_secret(self, client: AsyncClient, auth_headers):
        created = await create_key(client, auth_headers)

        response = await client.put(
            f"/api/v1/api-keys/{created['id']}/regenerate", headers=auth_headers
        )
        assert response.status_code == 200
        new_secret = response.json()["api_key"]
        assert new_secret != created["api_key"]
        assert response.json()["id"] == created["id"]

        assert (await whoami(client, created["api_key"])).status_code == 401
        assert (await whoami(client, new_secret)).status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_and_missing_key(self, client: AsyncClient, setup_database):
        assert (await whoami(client, "nak_" + "0" * 64)).status_code == 401
        response = await client.get("/api/v1/service/whoami")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_static_key_is_not_a_service_key(self, client: AsyncClient, setup_database):
        assert (await whoami(client, settings.api_key)).status_code == 401


class TestApiKeyOwnership:
    """Other users' keys look like they do not exist."""

    @pytest.mark.asyncio
    async def test_foreign_key_is_not_found(
        self, client: AsyncClient, auth_headers, admin_user: User, api_key_headers
    ):
        created = await create_key(client, auth_headers)
        other = {
            **api_key_headers,
            "Authorization": f"Bearer {create_access_token(admin_user.id)}",
        }
        key_url = f"/api/v1/api-keys/{created['id']}"

        assert (await client.get(key_url, headers=other)).status_code == 404
        assert (await client.put(f"{key_url}/regenerate", headers=other)).status_code == 404
        assert (await client.put(f"{key_url}/deactivate", headers=other)).status_code == 404
        assert (await client.delete(key_url, headers=other)).status_code == 404
        assert (await client.get("/api/v1/api-keys", headers=other)).json() == []

        # Untouched by the failed attempts
        assert (await whoami(client, created["api_key"])).status_code == 200

    @pytest.mark.asyncio
    async def test_management_requires_session(self, client: AsyncClient, api_key_headers, setup_database):
        response = await client.post(
            "/api/v1/api-keys",
            json={"name": "ci", "client_name": "ci-runner"},
            headers=api_key_headers,
        )

        assert response.status_code == 401
