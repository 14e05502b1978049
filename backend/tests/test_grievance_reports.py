"""
Integration tests for grievance reports.

Tests cover:
- Counts per category, status and priority
- Summary totals and average resolution time
- Monthly trend window
- CSV export
- Officer-only access
"""

import csv
from datetime import datetime, timedelta, timezone
from io import StringIO

import pytest

from app.models.grievance import Grievance
from app.services.grievance_reports import GrievanceReportService, month_floor

BASE = "/api/v1/grievances/reports"

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def seed_grievance(db_session, owner):
    """Factory inserting a ticket with fixed timestamps."""
    counter = {"n": 0}

    async def _seed(created_at, category="application", status="open", priority="medium",
                    resolved_at=None, description="Inspection still pending", subject="Delay"):
        counter["n"] += 1
        grievance = Grievance(
            ticket_number=f"GRV-2026-T{counter['n']:05d}",
            user_id=owner.id,
            category=category,
            status=status,
            priority=priority,
            subject=subject,
            description=description,
            created_at=created_at.isoformat(),
            resolved_at=resolved_at.isoformat() if resolved_at else None,
        )
        db_session.add(grievance)
        await db_session.commit()
        return grievance

    return _seed


@pytest.fixture
async def seeded(seed_grievance):
    await seed_grievance(NOW - timedelta(days=2), category="payment", priority="high")
    await seed_grievance(NOW - timedelta(days=5), category="application", status="in_progress")
    await seed_grievance(
        NOW - timedelta(days=10),
        category="payment",
        status="resolved",
        resolved_at=NOW - timedelta(days=8),
    )
    await seed_grievance(
        NOW - timedelta(days=90),
        category="technical",
        status="closed",
        priority="low",
        resolved_at=NOW - timedelta(days=86),
    )


class TestMonthFloor:
    def test_same_year(self):
        assert month_floor(NOW, 5) == datetime(2025, 12, 1, tzinfo=timezone.utc)

    def test_current_month(self):
        assert month_floor(NOW, 0) == datetime(2026, 5, 1, tzinfo=timezone.utc)

    def test_crosses_two_years(self):
        assert month_floor(datetime(2026, 1, 15, tzinfo=timezone.utc), 13) == datetime(
            2024, 12, 1, tzinfo=timezone.utc
        )


@pytest.mark.anyio
class TestReportService:
    async def test_summary_totals(self, db_session, seeded):
        # Act
        summary = await GrievanceReportService(db_session).summary(now=NOW)

        # Assert
        assert summary["totals"] == {
            "open": 1,
            "in_progress": 1,
            "resolved": 1,
            "closed": 1,
            "total": 4,
        }
        # Two days and four days to resolution.
        assert summary["average_resolution_days"] == 3.0
        assert summary["last_30_days"] == {"new_tickets": 3, "resolved_tickets": 1}

    async def test_summary_empty(self, db_session):
        summary = await GrievanceReportService(db_session).summary(now=NOW)

        assert summary["totals"]["total"] == 0
        assert summary["average_resolution_days"] == 0.0

    async def test_monthly_trend_window(self, db_session, seed_grievance):
        # Arrange
        await seed_grievance(datetime(2025, 11, 30, tzinfo=timezone.utc))
        await seed_grievance(datetime(2025, 12, 1, 9, 0, tzinfo=timezone.utc))
        await seed_grievance(datetime(2026, 5, 3, tzinfo=timezone.utc))
        await seed_grievance(datetime(2026, 5, 19, tzinfo=timezone.utc))

        # Act
        trend = await GrievanceReportService(db_session).monthly_trend(now=NOW)

        # Assert
        assert trend == [
            {"month": "2025-12", "count": 1},
            {"month": "2026-05", "count": 2},
        ]


@pytest.mark.anyio
class TestReportEndpoints:
    async def test_counts_by_category(self, client, dtdo, auth_headers, seeded):
        response = await client.get(f"{BASE}/by-category", headers=auth_headers(dtdo))

        assert response.status_code == 200
        assert response.json() == [
            {"category": "application", "count": 1},
            {"category": "payment", "count": 2},
            {"category": "technical", "count": 1},
        ]

    async def test_counts_by_status_and_priority(self, client, dealing_assistant, auth_headers, seeded):
        # Act
        by_status = await client.get(f"{BASE}/by-status", headers=auth_headers(dealing_assistant))
        by_priority = await client.get(f"{BASE}/by-priority", headers=auth_headers(dealing_assistant))

        # Assert
        assert {row["status"]: row["count"] for row in by_status.json()} == {
            "closed": 1,
            "in_progress": 1,
            "open": 1,
            "resolved": 1,
        }
        assert {row["priority"]: row["count"] for row in by_priority.json()} == {
            "high": 1,
            "low": 1,
            "medium": 2,
        }

    async def test_summary_camel_case(self, client, admin, auth_headers, seeded):
        response = await client.get(f"{BASE}/summary", headers=auth_headers(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["totals"]["total"] == 4
        assert data["totals"]["inProgress"] == 1
        assert "averageResolutionDays" in data
        assert set(data["last30Days"]) == {"newTickets", "resolvedTickets"}

    async def test_owner_forbidden(self, client, owner, auth_headers):
        for path in ("/summary", "/by-category", "/monthly-trend", "/export"):
            response = await client.get(f"{BASE}{path}", headers=auth_headers(owner))

            assert response.status_code == 403

    async def test_export_csv(self, client, dtdo, auth_headers, seed_grievance):
        # Arrange
        await seed_grievance(NOW - timedelta(days=3), subject="Older", description="x" * 300)
        await seed_grievance(
            NOW - timedelta(days=1),
            subject="Newer",
            status="resolved",
            resolved_at=NOW,
        )

        # Act
        response = await client.get(f"{BASE}/export", headers=auth_headers(dtdo))

        # Assert
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="grievances-report-')
        assert disposition.endswith('.csv"')

        rows = list(csv.reader(StringIO(response.text)))
        assert rows[0][0] == "Ticket Number"
        assert len(rows[0]) == 9
        assert [row[1] for row in rows[1:]] == ["Newer", "Older"]
        assert rows[1][8] == NOW.isoformat()
        assert len(rows[2][5]) == 200
        assert rows[2][8] == ""
