"""
Delete expired email confirmation codes.

Expiry is already enforced when a code is confirmed; this removes the dead
rows. Run it from cron, e.g. hourly.

Usage:
    python scripts/purge_email_codes.py
"""
import asyncio
import sys

sys.path.insert(0, ".")

from civictrust.database import async_session_maker, close_db
from civictrust.kernel.identity import purge_expired_email_codes
from civictrust.logging_config import configure_logging


async def main() -> None:
    configure_logging()
    try:
        purged = await purge_expired_email_codes(async_session_maker)
    finally:
        await close_db()
    print(f"Purged {purged} expired email code(s)")


if __name__ == "__main__":
    asyncio.run(main())
