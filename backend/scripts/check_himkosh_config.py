"""
Print the HimKosh gateway configuration the portal will use.

Reads the ``himkosh_gateway`` system setting, merges it with the
environment, and reports missing fields and whether the key file is in
place. Exits non-zero when the gateway is not usable.

Usage:
    python scripts/check_himkosh_config.py
"""

import asyncio
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.config import settings
from app.core.database import get_db_context
from app.repositories.settings import SettingsRepository
from app.services.himkosh import key_file_present, resolve_gateway_config


async def check() -> bool:
    async with get_db_context() as db:
        override = await SettingsRepository(db).get_himkosh_gateway()

    config = resolve_gateway_config(override)
    print(f"Source: {config.source}")
    for name, value in config.masked().items():
        if name == "source":
            continue
        print(f"  {name:<14} {value if value not in (None, '') else '-'}")

    missing = config.missing_fields()
    key_present = key_file_present(settings.himkosh_key_file)
    print(f"\nKey file {settings.himkosh_key_file}: {'present' if key_present else 'MISSING'}")
    if missing:
        print(f"Missing fields: {', '.join(missing)}")
    return key_present and not missing


if __name__ == "__main__":
    if not asyncio.run(check()):
        sys.exit(1)
