"""
Integration tests for unauthenticated public endpoints.
"""

import pytest

from app.models.application import HomestayApplication
from app.services.certificates import issue_certificate

BASE = "/api/v1/public"


@pytest.fixture
async def approved_application(db_session, owner, submit_application):
    """A submitted application with a freshly issued certificate."""
    data = await submit_application(owner)
    application = await db_session.get(HomestayApplication, data["id"])
    number = await issue_certificate(db_session, application, actor_id=None)
    await db_session.commit()
    return {**data, "certificateNumber": number}


@pytest.mark.anyio
class TestTracking:
    """Status lookup with personal data masked."""

    async def test_track_by_application_number(self, client, owner, submit_application):
        # Arrange
        submitted = await submit_application(owner)

        # Act
        response = await client.get(
            f"{BASE}/track", params={"applicationNumber": submitted["applicationNumber"]}
        )

        # Assert
        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["applicationNumber"] == submitted["applicationNumber"]
        assert result["displayStatus"] == "submitted"
        assert result["displayLabel"] == "Submitted"
        assert result["ownerName"] == "R** L**"
        assert result["ownerAadhaar"] == "XXXXXXXX9012"
        assert result["ownerMobile"] == "XXXXXX2345"

    async def test_track_by_full_aadhaar(self, client, owner, submit_application):
        submitted = await submit_application(owner)

        response = await client.get(f"{BASE}/track", params={"aadhaar": "123456789012"})

        assert response.status_code == 200
        assert [r["applicationNumber"] for r in response.json()["results"]] == [
            submitted["applicationNumber"]
        ]

    async def test_partial_aadhaar_rejected(self, client):
        """Only a full 12-digit Aadhaar number is accepted."""
        response = await client.get(f"{BASE}/track", params={"aadhaar": "9012"})

        assert response.status_code == 422

    async def test_track_by_phone(self, client, owner, submit_application):
        await submit_application(owner)

        response = await client.get(f"{BASE}/track", params={"phone": "9816012345"})

        assert response.status_code == 200
        assert len(response.json()["results"]) == 1

    async def test_missing_parameters(self, client):
        response = await client.get(f"{BASE}/track")

        assert response.status_code == 400

    async def test_unknown_application(self, client):
        response = await client.get(f"{BASE}/track", params={"applicationNumber": "HP-HS-1999-SML-999999"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Application not found"


@pytest.mark.anyio
class TestCertificateVerification:
    async def test_valid_certificate(self, client, approved_application):
        # Act
        response = await client.get(f"{BASE}/certificates/{approved_application['certificateNumber']}")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["validity"] == "valid"
        assert data["district"] == "Shimla"
        assert data["category"] == "silver"
        assert data["expiryDate"] > data["issuedDate"]

    async def test_unknown_certificate(self, client):
        response = await client.get(f"{BASE}/certificates/HP-HST-2025-00000")

        assert response.status_code == 404
        assert response.json()["detail"] == "Certificate not found"


@pytest.mark.anyio
class TestDirectory:
    async def test_only_approved_properties_listed(self, client, make_user, auth_headers, approved_application, application_form):
        """Drafts and in-flight applications stay out of the directory."""
        # Arrange
        other = await make_user("owner_kullu", "property_owner")
        await client.post(
            "/api/v1/applications/draft",
            json=application_form(district="Kullu", propertyName="River Bend"),
            headers=auth_headers(other),
        )

        # Act
        response = await client.get(f"{BASE}/properties")

        # Assert
        assert response.status_code == 200
        properties = response.json()
        assert [p["certificateNumber"] for p in properties] == [approved_application["certificateNumber"]]

    async def test_district_filter(self, client, approved_application):
        shimla = await client.get(f"{BASE}/properties", params={"district": "Shimla"})
        kangra = await client.get(f"{BASE}/properties", params={"district": "Kangra"})

        assert len(shimla.json()) == 1
        assert kangra.json() == []


@pytest.mark.anyio
class TestFeatureFlags:
    async def test_flags_default_off(self, client):
        response = await client.get(f"{BASE}/features")

        assert response.status_code == 200
        flags = response.json()["flags"]
        assert flags["SHOW_ADVANCED_ROOM_CONFIG"] is False
        assert set(flags) >= {"SHOW_AMENITIES_SELECTION", "SHOW_TOURISM_MARKETING_MODULE"}
