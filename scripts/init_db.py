"""
Database initialization script for the SMS wallet

Run once to create the users collection indexes:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
import logging

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables before settings are read
load_dotenv()

from smswallet.core.config import settings
from smswallet.db.mongo import connect_to_mongo, close_mongo_connection, get_users_collection
from smswallet.db.indexes import create_indexes, list_indexes

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main():
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  SMS Wallet Database Setup")
    logger.info("=" * 60)

    logger.info(f"Connecting to MongoDB: {settings.MONGODB_DB_NAME}")
    await connect_to_mongo()

    try:
        await create_indexes()

        indexes = await list_indexes()
        for idx_name in indexes:
            if idx_name != "_id_":
                logger.info(f"  index: {idx_name}")

        users = await get_users_collection().count_documents({})
        logger.info(f"Users: {users}")
        logger.info("Database initialization complete")

    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
