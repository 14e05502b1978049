"""
Grievance reporting for officers.

Counts are grouped in SQL. Timestamps are stored as ISO-8601 UTC
strings, so date windows compare lexically and the month bucket is the
first seven characters (``YYYY-MM``).
"""

import csv
import logging
from datetime import datetime, timedelta
from io import StringIO
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import parse_iso, utc_now
from app.models.grievance import Grievance
from app.services.grievances import STATUSES

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Ticket Number",
    "Subject",
    "Category",
    "Priority",
    "Status",
    "Description",
    "Resolution Notes",
    "Created At",
    "Resolved At",
]
EXPORT_DESCRIPTION_CHARS = 200
TREND_MONTHS = 6


def month_floor(now: datetime, months_back: int) -> datetime:
    """First instant of the month ``months_back`` months before ``now``."""
    year, month = now.year, now.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


class GrievanceReportService:
    """
    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _count_by(self, column, default: str) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(column, func.count(Grievance.id))
            .group_by(column)
            .order_by(column)
        )
        return [{"key": key or default, "count": count} for key, count in result.all()]

    async def by_category(self) -> List[Dict[str, Any]]:
        return await self._count_by(Grievance.category, "general")

    async def by_status(self) -> List[Dict[str, Any]]:
        return await self._count_by(Grievance.status, "open")

    async def by_priority(self) -> List[Dict[str, Any]]:
        return await self._count_by(Grievance.priority, "medium")

    async def summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Ticket totals per status, average days to resolution and the
        last 30 days of intake.
        """
        now = now or utc_now()
        totals = {name: 0 for name in STATUSES}
        for row in await self.by_status():
            totals[row["key"]] = row["count"]
        totals["total"] = sum(totals.values())

        resolved = await self.session.execute(
            select(Grievance.created_at, Grievance.resolved_at).where(
                Grievance.resolved_at.is_not(None)
            )
        )
        durations = []
        for created_at, resolved_at in resolved.all():
            opened, closed = parse_iso(created_at), parse_iso(resolved_at)
            if opened and closed:
                durations.append((closed - opened).total_seconds() / 86400)
        average_days = round(sum(durations) / len(durations), 1) if durations else 0.0

        since = (now - timedelta(days=30)).isoformat()
        recent = await self.session.execute(
            select(
                func.count(Grievance.id),
                func.count(Grievance.resolved_at),
            ).where(Grievance.created_at >= since)
        )
        new_tickets, resolved_tickets = recent.one()

        return {
            "totals": totals,
            "average_resolution_days": average_days,
            "last_30_days": {
                "new_tickets": new_tickets,
                "resolved_tickets": resolved_tickets,
            },
        }

    async def monthly_trend(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Tickets opened per month, oldest first, for the current and previous five months."""
        now = now or utc_now()
        since = month_floor(now, TREND_MONTHS - 1).isoformat()
        month = func.substr(Grievance.created_at, 1, 7)
        result = await self.session.execute(
            select(month, func.count(Grievance.id))
            .where(Grievance.created_at >= since)
            .group_by(month)
            .order_by(month)
        )
        return [{"month": key, "count": count} for key, count in result.all()]

    async def export_csv(self) -> str:
        """Every ticket, newest first, as CSV text."""
        result = await self.session.execute(
            select(Grievance).order_by(Grievance.created_at.desc())
        )
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(EXPORT_HEADERS)
        count = 0
        for grievance in result.scalars().all():
            writer.writerow([
                grievance.ticket_number,
                grievance.subject or "",
                grievance.category,
                grievance.priority or "medium",
                grievance.status or "open",
                (grievance.description or "")[:EXPORT_DESCRIPTION_CHARS],
                grievance.resolution_notes or "",
                grievance.created_at or "",
                grievance.resolved_at or "",
            ])
            count += 1
        logger.info("Grievance report exported", extra={"count": count})
        return output.getvalue()
