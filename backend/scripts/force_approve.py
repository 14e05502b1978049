"""
Force-approve an application whose payment was settled outside the portal.

Marks the application paid (payment date now), issues a certificate and
records a ``force_approved`` action. Any pending rejection reason or
clarification request is cleared.

Usage:
    python scripts/force_approve.py --application-number HP-HS-2025-SML-000123
    python scripts/force_approve.py --application-number HP-HS-2025-SML-000123 --fee 3000.00
"""

import argparse
import asyncio
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.database import get_db_context
from app.models.base import utc_now_iso
from app.repositories.applications import ApplicationRepository
from app.services.certificates import issue_certificate


async def force_approve(application_number: str, fee: Decimal | None) -> bool:
    async with get_db_context() as db:
        application = await ApplicationRepository(db).get_by_number(application_number)
        if application is None:
            print(f"Application {application_number} not found")
            return False

        print(f"Found {application.application_number} ({application.property_name}), status {application.status}")

        amount = fee if fee is not None else application.total_fee
        application.payment_status = "paid"
        application.payment_amount = amount
        application.payment_date = utc_now_iso()
        application.rejection_reason = None
        application.clarification_requested = None

        try:
            number = await issue_certificate(
                db,
                application,
                actor_id=None,
                feedback="Force approved by maintenance script",
                action="force_approved",
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            print(f"Error approving application: {e}")
            return False

        print(f"Approved. Certificate {number}, payment amount {amount}")
        return True


def parse_fee(value: str) -> Decimal:
    try:
        return Decimal(value).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid fee: {value}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Mark an application paid and approve it")
    parser.add_argument("--application-number", required=True)
    parser.add_argument("--fee", type=parse_fee, default=None, help="Amount paid (defaults to the total fee)")
    args = parser.parse_args()

    if not asyncio.run(force_approve(args.application_number, args.fee)):
        sys.exit(1)


if __name__ == "__main__":
    main()
