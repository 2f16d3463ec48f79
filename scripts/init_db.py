"""
Database initialization script - seats, settings and indexes

Run once against a fresh database:
    python scripts/init_db.py

Creates the indexes, seats 1..TOTAL_SEATS and the default settings document.
Safe to re-run; existing seats and settings are left alone.
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.core.config import settings
from app.db.mongo import connect_to_mongo, close_mongo_connection
from app.db.indexes import create_indexes
from app.db.repository import MongoRepository
from app.services.consistency import check_invariants
from app.services.store import SeatStore

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def init_db():
    logger.info(f"🔌 Connecting to MongoDB: {settings.MONGODB_DB_NAME}")
    await connect_to_mongo()

    try:
        await create_indexes()

        store = SeatStore(MongoRepository())
        await store.load()

        logger.info("\n" + "=" * 50)
        logger.info("✅ DATABASE INITIALIZATION COMPLETE")
        logger.info("=" * 50)
        logger.info(f"  Seats: {len(store.seats)}")
        logger.info(f"  Users: {len(store.users)}")
        logger.info(f"  Slots: {', '.join(store.library_settings.slots)}")
        logger.info(f"  Audit records: {len(store.audit)}")

        problems = check_invariants(store.users, store.seats)
        if problems:
            logger.warning(f"⚠️ {len(problems)} consistency problem(s):")
            for problem in problems:
                logger.warning(f"  - {problem}")

    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(init_db())
