"""
Print the HimKosh state of an application.

Shows the application status, payment status and total fee, every
transaction for it, and the five most recent transactions across the
portal. With --verify each of the application's transactions is also
double-verified against the treasury.

Usage:
    python scripts/inspect_himkosh.py --application-number HP-HS-2025-SML-000123 [--verify]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import desc, select

from app.core.database import get_db_context
from app.core.errors import GatewayError
from app.models.payment import HimkoshTransaction
from app.repositories.applications import ApplicationRepository
from app.services.payments import PaymentService


def describe(txn: HimkoshTransaction) -> str:
    return (
        f"  {txn.app_ref_no}  {txn.transaction_status:<18} amount={txn.total_amount} "
        f"statusCd={txn.status_cd or '-'} echTxnId={txn.ech_txn_id or '-'} "
        f"verified={'yes' if txn.is_double_verified else 'no'} created={txn.created_at}"
    )


async def inspect(application_number: str, verify: bool) -> bool:
    async with get_db_context() as db:
        application = await ApplicationRepository(db).get_by_number(application_number)
        if application is None:
            print(f"Application {application_number} not found")
            return False

        print(f"Application {application.application_number}")
        print(f"  status:         {application.status}")
        print(f"  payment status: {application.payment_status or '-'}")
        print(f"  total fee:      {application.total_fee}")

        result = await db.execute(
            select(HimkoshTransaction)
            .where(HimkoshTransaction.application_id == application.id)
            .order_by(desc(HimkoshTransaction.created_at))
        )
        transactions = list(result.scalars().all())
        print(f"\nTransactions ({len(transactions)}):")
        for txn in transactions:
            print(describe(txn))

        recent = await db.execute(
            select(HimkoshTransaction).order_by(desc(HimkoshTransaction.created_at)).limit(5)
        )
        print("\nMost recent transactions (all applications):")
        for txn in recent.scalars().all():
            print(describe(txn))

        if verify and transactions:
            print("\nDouble verification:")
            service = PaymentService(db)
            for txn in transactions:
                try:
                    outcome = await service.verify_transaction(txn.app_ref_no)
                except GatewayError as e:
                    print(f"  {txn.app_ref_no}: {e}")
                    continue
                status = outcome["gateway_status"]
                print(f"  {txn.app_ref_no}: StatusCD={status.get('StatusCD', '-')} matches={outcome['matches']}")
            await db.commit()

    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect HimKosh transactions for an application")
    parser.add_argument("--application-number", required=True)
    parser.add_argument("--verify", action="store_true", help="Double-verify with the treasury")
    args = parser.parse_args()

    if not asyncio.run(inspect(args.application_number, args.verify)):
        sys.exit(1)


if __name__ == "__main__":
    main()
