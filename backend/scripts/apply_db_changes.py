"""
Apply schema additions that predate managed migrations.

Creates the grievance lookup indexes and the ``session`` table used by
the portal's session store, and adds the send-back OTP attempt counter.
Every statement is ``IF NOT EXISTS``, so the script can be re-run safely.

Usage:
    python scripts/apply_db_changes.py
"""

import asyncio
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlalchemy import text

from app.core.database import get_db_context

STATEMENTS = [
    "CREATE INDEX IF NOT EXISTS idx_grievances_ticket_number ON grievances (ticket_number)",
    "CREATE INDEX IF NOT EXISTS idx_grievances_user_id ON grievances (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_grievances_status ON grievances (status)",
    "CREATE INDEX IF NOT EXISTS idx_grievances_category ON grievances (category)",
    "CREATE INDEX IF NOT EXISTS idx_grievances_created_at ON grievances (created_at)",
    (
        "CREATE TABLE IF NOT EXISTS session ("
        "sid VARCHAR NOT NULL PRIMARY KEY, "
        "sess TEXT NOT NULL, "
        "expire TIMESTAMP NOT NULL)"
    ),
    "CREATE INDEX IF NOT EXISTS idx_session_expire ON session (expire)",
    "ALTER TABLE send_back_otps ADD COLUMN IF NOT EXISTS failed_attempts INTEGER NOT NULL DEFAULT 0",
]


async def apply_changes() -> bool:
    async with get_db_context() as db:
        try:
            for statement in STATEMENTS:
                print(f"-> {statement}")
                await db.execute(text(statement))
            await db.commit()
        except Exception as e:
            await db.rollback()
            print(f"Error applying database changes: {e}")
            return False
    return True


if __name__ == "__main__":
    print("Applying database changes...")
    if not asyncio.run(apply_changes()):
        sys.exit(1)
    print("Done!")
