"""Seed script: Insert the default notification templates into the database.

Usage:
    python scripts/seed_templates.py                # Incremental: insert missing templates
    python scripts/seed_templates.py --force-reset  # Clear all templates, then insert defaults
    python scripts/seed_templates.py --list         # Print the active templates and exit
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete  # noqa: E402

from core.config import get_settings  # noqa: E402
from database import Database  # noqa: E402
from database.models import NotificationTemplate  # noqa: E402
from database.repositories import TemplateRepository  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def clear_templates(session) -> int:
    """Delete all existing templates.

    Notifications already sent keep their rendered text; only future
    template sends are affected. Only use with --force-reset flag.
    """
    result = await session.execute(delete(NotificationTemplate))
    count = result.rowcount
    await session.flush()
    logger.info("Cleared %d existing templates", count)
    return count


async def list_templates(session) -> None:
    templates = await TemplateRepository(session).list_active()
    for template in templates:
        channels = ", ".join(template.default_channels or [])
        print(f"{template.name:<24} {template.type:<16} {template.default_priority:<8} [{channels}]")
    print(f"\n{len(templates)} active templates.")


async def main(args) -> None:
    """Main entry point.

    Default mode is incremental: templates are matched by name and existing
    ones (including edited text) are left alone.
    """
    database = Database.from_settings(get_settings())
    try:
        async with database.session() as session:
            if args.list:
                await list_templates(session)
                return

            if args.force_reset:
                cleared = await clear_templates(session)
                if cleared:
                    print(f"Force-reset: cleared {cleared} existing templates.")

            inserted = await TemplateRepository(session).seed_defaults()
            logger.info("Inserted %d new templates", inserted)
            print(f"Seeded {inserted} new notification templates.")
    finally:
        await database.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed notification templates")
    parser.add_argument(
        "--force-reset",
        action="store_true",
        help="WARNING: Clear ALL templates before seeding (drops any edited template text)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Only print the active templates",
    )
    args = parser.parse_args()

    if args.list and args.force_reset:
        print("ERROR: --list and --force-reset are mutually exclusive")
        sys.exit(1)

    asyncio.run(main(args))
