"""
Integration tests for staff profile and password changes.

Tests cover:
- PATCH /dtdo/profile and /da/profile
- POST /dtdo/change-password with current password check
- Role scoping of each prefix
"""

import pytest


@pytest.mark.anyio
class TestProfile:
    async def test_dtdo_updates_contact(self, client, dtdo, auth_headers):
        # Act
        response = await client.patch(
            "/api/v1/dtdo/profile",
            json={"fullName": "  Meera Thakur ", "mobile": "9418000001"},
            headers=auth_headers(dtdo),
        )

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["fullName"] == "Meera Thakur"
        assert data["mobile"] == "9418000001"
        assert data["district"] == dtdo.district
        assert data["role"] == dtdo.role

    async def test_role_and_district_not_editable(self, client, dealing_assistant, auth_headers):
        response = await client.patch(
            "/api/v1/da/profile",
            json={"role": "admin", "district": "Kullu", "email": "da@hp.gov.in"},
            headers=auth_headers(dealing_assistant),
        )

        assert response.status_code == 200
        assert response.json()["role"] == "dealing_assistant"
        assert response.json()["district"] == dealing_assistant.district
        assert response.json()["email"] == "da@hp.gov.in"

    async def test_blank_name_rejected(self, client, dtdo, auth_headers):
        response = await client.patch(
            "/api/v1/dtdo/profile", json={"fullName": "   "}, headers=auth_headers(dtdo)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Full name cannot be empty"

    async def test_bad_mobile_rejected(self, client, dtdo, auth_headers):
        response = await client.patch(
            "/api/v1/dtdo/profile", json={"mobile": "12345"}, headers=auth_headers(dtdo)
        )

        assert response.status_code == 422

    async def test_da_cannot_use_dtdo_prefix(self, client, dealing_assistant, auth_headers):
        response = await client.patch(
            "/api/v1/dtdo/profile", json={"fullName": "X"}, headers=auth_headers(dealing_assistant)
        )

        assert response.status_code == 403


@pytest.mark.anyio
class TestChangePassword:
    async def test_change_then_login(self, client, dtdo, auth_headers):
        # Act
        response = await client.post(
            "/api/v1/dtdo/change-password",
            json={"currentPassword": "testpass123", "newPassword": "kangra-valley-9"},
            headers=auth_headers(dtdo),
        )

        # Assert
        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully"
        login = await client.post(
            "/api/v1/auth/token",
            data={"username": dtdo.username, "password": "kangra-valley-9"},
        )
        assert login.status_code == 200

    async def test_wrong_current_password(self, client, dtdo, auth_headers):
        response = await client.post(
            "/api/v1/dtdo/change-password",
            json={"currentPassword": "not-my-password", "newPassword": "kangra-valley-9"},
            headers=auth_headers(dtdo),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"

    async def test_same_password_rejected(self, client, dtdo, auth_headers):
        response = await client.post(
            "/api/v1/dtdo/change-password",
            json={"currentPassword": "testpass123", "newPassword": "testpass123"},
            headers=auth_headers(dtdo),
        )

        assert response.status_code == 400

    async def test_short_password_rejected(self, client, dealing_assistant, auth_headers):
        response = await client.post(
            "/api/v1/da/change-password",
            json={"currentPassword": "testpass123", "newPassword": "short"},
            headers=auth_headers(dealing_assistant),
        )

        assert response.status_code == 422
