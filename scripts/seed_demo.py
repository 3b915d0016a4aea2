#!/usr/bin/env python3
"""
Create tables and load the demo catalog into the configured database.
Usage: python scripts/seed_demo.py
"""

import asyncio

from app.config import settings
from app.database import create_all, create_engine, create_session_factory
from app.logging_config import get_logger, setup_logging
from app.services.catalog_service import seed_demo_catalog

logger = get_logger("seed_demo")


async def main() -> None:
    engine = create_engine(settings.database_url)
    try:
        await create_all(engine)
        session_factory = create_session_factory(engine)
        async with session_factory() as db:
            counts = await seed_demo_catalog(db)
            await db.commit()
        print(f"Seeded: {counts}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging(settings.log_level)
    asyncio.run(main())
