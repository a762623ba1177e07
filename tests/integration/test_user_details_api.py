"""Integration tests for user details endpoints."""

import pytest
from httpx import AsyncClient

from nest_auth.models.user import User, UserRole
from nest_auth.repositories.user import UserRepository

DETAILS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address_line_1": "12 St James's Square",
    "city": "London",
    "state": "London",
    "postal_code": "SW1Y 4JH",
    "country": "UK",
    "mobile_number": "+441234567890",
}


class TestUserDetails:
    @pytest.mark.asyncio
    async def test_crud(self, client: AsyncClient, test_user: User, cookie_headers):
        created = await client.post(
            "/api/v1/users/me/details", json={**DETAILS, "is_default": True}, headers=cookie_headers
        )
        assert created.status_code == 201
        details_id = created.json()["id"]
        assert created.json()["user_id"] == str(test_user.id)

        listed = await client.get("/api/v1/users/me/details", headers=cookie_headers)
        assert [row["id"] for row in listed.json()] == [details_id]

        updated = await client.patch(
            f"/api/v1/users/me/details/{details_id}", json={"city": "Oxford"}, headers=cookie_headers
        )
        assert updated.json()["city"] == "Oxford"
        assert updated.json()["first_name"] == "Ada"

        deleted = await client.delete(
            f"/api/v1/users/me/details/{details_id}", headers=cookie_headers
        )
        assert deleted.status_code == 200

        missing = await client.get(
            f"/api/v1/users/me/details/{details_id}", headers=cookie_headers
        )
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_single_default(self, client: AsyncClient, cookie_headers):
        first = await client.post(
            "/api/v1/users/me/details", json={**DETAILS, "is_default": True}, headers=cookie_headers
        )
        second = await client.post(
            "/api/v1/users/me/details", json={**DETAILS, "city": "Bath"}, headers=cookie_headers
        )

        default = await client.get("/api/v1/users/me/details/default", headers=cookie_headers)
        assert default.json()["id"] == first.json()["id"]

        moved = await client.patch(
            f"/api/v1/users/me/details/{second.json()['id']}/set-default", headers=cookie_headers
        )
        assert moved.status_code == 200
        assert moved.json()["is_default"] is True

        listed = (await client.get("/api/v1/users/me/details", headers=cookie_headers)).json()
        defaults = [row["id"] for row in listed if row["is_default"]]
        assert defaults == [second.json()["id"]]

    @pytest.mark.asyncio
    async def test_no_default(self, client: AsyncClient, cookie_headers):
        response = await client.get("/api/v1/users/me/details/default", headers=cookie_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_rows_not_found(
        self, client: AsyncClient, cookie_headers, admin_cookie_headers
    ):
        created = await client.post(
            "/api/v1/users/me/details", json=DETAILS, headers=cookie_headers
        )
        url = f"/api/v1/users/me/details/{created.json()['id']}"

        assert (await client.get(url, headers=admin_cookie_headers)).status_code == 404
        assert (
            await client.patch(url, json={"city": "Hijack"}, headers=admin_cookie_headers)
        ).status_code == 404
        assert (await client.delete(url, headers=admin_cookie_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_editor_role_forbidden(self, client: AsyncClient, db_session, test_user: User, cookie_headers):
        await UserRepository(db_session).update(test_user.id, {"role": UserRole.EDITOR})

        response = await client.get("/api/v1/users/me/details", headers=cookie_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_validation(self, client: AsyncClient, cookie_headers):
        response = await client.post(
            "/api/v1/users/me/details", json={"first_name": "Ada"}, headers=cookie_headers
        )

        assert response.status_code == 400
