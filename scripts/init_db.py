#!/usr/bin/env python
"""
Create the interaction tables.

Usage:
    python scripts/init_db.py
    DATABASE_URL=sqlite+aiosqlite:///./curator.db python scripts/init_db.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from artcurator.db.database import create_engine, init_db
from artcurator.logging import configure_logging

logger = logging.getLogger(__name__)


async def main():
    engine = create_engine()
    try:
        await init_db(engine)
        logger.info(f"Tables created on {engine.url.render_as_string(hide_password=True)}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
