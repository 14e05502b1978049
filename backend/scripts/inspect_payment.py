"""
Print an application together with its recorded payments.

Usage:
    python scripts/inspect_payment.py --application-number HP-HS-2025-SML-000123
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import select

from app.core.database import get_db_context
from app.models.payment import Payment
from app.repositories.applications import ApplicationRepository


async def inspect(application_number: str) -> bool:
    async with get_db_context() as db:
        application = await ApplicationRepository(db).get_by_number(application_number)
        if application is None:
            print(f"Application {application_number} not found")
            return False

        print(f"Application {application.application_number} ({application.id})")
        print(f"  property:       {application.property_name}")
        print(f"  status:         {application.status}")
        print(f"  payment status: {application.payment_status or '-'}")
        print(f"  payment amount: {application.payment_amount or '-'}")
        print(f"  payment date:   {application.payment_date or '-'}")
        print(f"  certificate:    {application.certificate_number or '-'}")

        result = await db.execute(
            select(Payment)
            .where(Payment.application_id == application.id)
            .order_by(Payment.created_at)
        )
        payments = list(result.scalars().all())
        print(f"\nPayments ({len(payments)}):")
        for payment in payments:
            print(
                f"  {payment.created_at}  {payment.amount}  {payment.payment_status}  "
                f"{payment.payment_method}  {payment.gateway_transaction_id or '-'}"
            )
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect recorded payments for an application")
    parser.add_argument("--application-number", required=True)
    args = parser.parse_args()

    if not asyncio.run(inspect(args.application_number)):
        sys.exit(1)


if __name__ == "__main__":
    main()
