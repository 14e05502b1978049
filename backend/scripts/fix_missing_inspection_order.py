"""
Restore an inspection that lost its order row.

Puts the application back in ``inspection_scheduled`` with the given DA
and date, and creates the inspection order when none exists. The order
is attributed to the application's DTDO (or the owner when no DTDO is
recorded).

Usage:
    python scripts/fix_missing_inspection_order.py \\
        --application-id 4b1f... --da-id 9c2e... --inspection-date 2025-12-01T10:00:00+05:30
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core import workflow
from app.core.database import get_db_context
from app.models.base import utc_now_iso
from app.models.inspection import InspectionOrder
from app.repositories.applications import ApplicationRepository
from app.repositories.users import UserRepository


async def fix(application_id: str, da_id: str, inspection_date: str) -> bool:
    async with get_db_context() as db:
        repo = ApplicationRepository(db)
        application = await repo.get(application_id)
        if application is None:
            print(f"Application {application_id} not found")
            return False
        if await UserRepository(db).get(da_id) is None:
            print(f"Dealing assistant {da_id} not found")
            return False

        application.assigned_dealing_assistant_id = da_id
        application.inspection_date = inspection_date
        application.inspection_status = "pending"
        if application.status != workflow.INSPECTION_SCHEDULED:
            await workflow.record_transition(
                db,
                application,
                workflow.INSPECTION_SCHEDULED,
                actor_id=None,
                action="inspection_restored",
                feedback="Inspection order restored by maintenance script",
            )

        order = await repo.latest_inspection_order(application.id)
        if order is None:
            now = utc_now_iso()
            order = InspectionOrder(
                application_id=application.id,
                scheduled_by=application.dtdo_id or application.user_id,
                scheduled_date=now,
                assigned_to=da_id,
                assigned_date=now,
                inspection_date=inspection_date,
                inspection_address=application.address,
                special_instructions=application.dtdo_remarks or "Restored inspection order",
                status="scheduled",
            )
            db.add(order)
            print("Created inspection order")
        else:
            print(f"Inspection order {order.id} already exists; application fields restored only")

        try:
            await db.commit()
        except Exception as e:
            await db.rollback()
            print(f"Error restoring inspection: {e}")
            return False

        print(f"{application.application_number}: {application.status}, inspection on {inspection_date}")
        return True


def iso_datetime(value: str) -> str:
    try:
        return datetime.fromisoformat(value).isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Recreate a missing inspection order")
    parser.add_argument("--application-id", required=True)
    parser.add_argument("--da-id", required=True)
    parser.add_argument("--inspection-date", required=True, type=iso_datetime)
    args = parser.parse_args()

    if not asyncio.run(fix(args.application_id, args.da_id, args.inspection_date)):
        sys.exit(1)


if __name__ == "__main__":
    main()
