"""
Find dealing assistants by name or username.

Usage:
    python scripts/find_da.py --search sharma
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.database import get_db_context
from app.repositories.users import UserRepository


async def find(term: str) -> int:
    async with get_db_context() as db:
        users = await UserRepository(db).search_dealing_assistants(term)

    if not users:
        print(f"No dealing assistant matches '{term}'")
        return 0

    for user in users:
        state = "active" if user.is_active else "disabled"
        print(f"{user.id}  {user.username:<20} {user.full_name or '-':<30} {user.district or '-':<15} {state}")
    return len(users)


def main() -> None:
    parser = argparse.ArgumentParser(description="Search dealing assistants")
    parser.add_argument("--search", required=True, help="Part of the full name or username")
    args = parser.parse_args()

    if not asyncio.run(find(args.search)):
        sys.exit(1)


if __name__ == "__main__":
    main()
