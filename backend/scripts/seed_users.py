"""
Seed portal users.

Creates a super admin with username "admin" and password "changeme123".
With --with-demo it also creates one dealing assistant and one district
tourism officer for the given district so the scrutiny and review queues
can be exercised locally.

This script is idempotent - existing usernames are skipped.

Usage:
    python scripts/seed_users.py
    python scripts/seed_users.py --with-demo --district Shimla

Security:
    IMPORTANT: Change the default passwords immediately after first login!
    The default credentials are publicly known and insecure.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.database import get_db_context
from app.core.security import DEALING_ASSISTANT, DISTRICT_TOURISM_OFFICER, SUPER_ADMIN
from app.repositories.users import UserRepository

DEFAULT_PASSWORD = "changeme123"


def demo_officers(district: str) -> list:
    slug = district.lower().replace(" ", "_")
    return [
        {
            "username": f"da_{slug}",
            "role": DEALING_ASSISTANT,
            "full_name": f"Dealing Assistant {district}",
            "district": district,
        },
        {
            "username": f"dtdo_{slug}",
            "role": DISTRICT_TOURISM_OFFICER,
            "full_name": f"District Tourism Officer {district}",
            "district": district,
        },
    ]


async def seed_users(with_demo: bool, district: str) -> int:
    """
    Create the admin and, optionally, demo officers.

    Returns:
        Number of users created
    """
    wanted = [{"username": "admin", "role": SUPER_ADMIN, "full_name": "Administrator", "district": None}]
    if with_demo:
        wanted.extend(demo_officers(district))

    created = 0
    async with get_db_context() as db:
        repo = UserRepository(db)
        try:
            for account in wanted:
                if await repo.username_exists(account["username"]):
                    print(f"User '{account['username']}' already exists. Skipping...")
                    continue
                await repo.create_user(password=DEFAULT_PASSWORD, **account)
                created += 1
                print(f"Created {account['role']}: {account['username']}")
            await db.commit()
        except Exception as e:
            await db.rollback()
            print(f"Error seeding users: {e}")
            raise

    if created:
        print("")
        print(f"Password for new users: {DEFAULT_PASSWORD}")
        print("WARNING: Please change these passwords immediately after first login!")
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the admin user and optional demo officers")
    parser.add_argument("--with-demo", action="store_true", help="Also create a demo DA and DTDO")
    parser.add_argument("--district", default="Shimla", help="District for the demo officers")
    args = parser.parse_args()

    print("Seeding users...")
    try:
        asyncio.run(seed_users(args.with_demo, args.district))
    except Exception:
        sys.exit(1)
    print("Done!")


if __name__ == "__main__":
    main()
