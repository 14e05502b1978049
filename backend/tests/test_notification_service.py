"""
Tests for the notification service.

Tests cover:
- Template rendering with missing placeholders
- Per-recipient values when one event reaches several officers
- Webhook relay held back until the transaction commits
"""

import pytest

from app.core.config import settings
from app.core.security import DISTRICT_TOURISM_OFFICER
from app.services import notifications
from app.services.notifications import NotificationService, render


class TestRender:
    def test_missing_placeholders_render_empty(self):
        title, message = render("payment_received", {})

        assert title == "Payment received"
        assert message == "We received your payment for ."

    def test_unknown_event(self):
        with pytest.raises(KeyError):
            render("no_such_event", {})


@pytest.fixture
def relayed(monkeypatch):
    """Webhook configured; scheduled payloads are captured instead of posted."""
    sent = []
    monkeypatch.setattr(settings, "notification_webhook_url", "http://relay.test/notify")
    monkeypatch.setattr(notifications, "schedule_delivery", sent.append)
    return sent


@pytest.fixture
async def district_officers(make_user):
    first = await make_user("dtdo_one", DISTRICT_TOURISM_OFFICER, district="Shimla", full_name="Asha Verma")
    second = await make_user("dtdo_two", DISTRICT_TOURISM_OFFICER, district="Shimla", full_name="Vikram Negi")
    return [first, second]


@pytest.mark.anyio
class TestQueue:
    async def test_each_recipient_addressed_by_name(self, db_session, district_officers):
        """The second officer's message carries their own name, not the first one's."""
        # Act
        created = await NotificationService(db_session).queue(
            "send_back_otp", district_officers, extras={"OTP": "482913", "OTP_TTL": 10}
        )

        # Assert
        assert created[0].message.startswith("Asha Verma, OTP 482913")
        assert created[1].message.startswith("Vikram Negi, OTP 482913")

    async def test_none_recipients_skipped(self, db_session, owner):
        created = await NotificationService(db_session).queue("payment_received", [None, owner])

        assert [n.user_id for n in created] == [owner.id]

    async def test_relay_waits_for_commit(self, db_session, owner, relayed):
        # Arrange
        await NotificationService(db_session).queue("payment_received", [owner])
        assert relayed == []

        # Act
        await db_session.commit()

        # Assert
        assert len(relayed) == 1
        assert relayed[0]["event"] == "payment_received"
        assert relayed[0]["mobile"] == "9816012345"

    async def test_rollback_drops_relay(self, db_session, owner, relayed):
        """A workflow step that fails sends nothing outside the portal."""
        # Arrange
        await NotificationService(db_session).queue("payment_received", [owner])

        # Act
        await db_session.rollback()
        await db_session.commit()

        # Assert
        assert relayed == []

    async def test_channels_record_webhook(self, db_session, owner, relayed):
        created = await NotificationService(db_session).queue("payment_received", [owner])

        assert created[0].get_channels() == ["in_app", "webhook"]
