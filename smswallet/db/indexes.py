"""
smswallet/db/indexes.py

Purpose: Database index management

- Unique phone number index (one user document per number)
- Session step index for support queries (e.g. locked accounts)
"""

from pymongo.errors import PyMongoError

from smswallet.db.mongo import get_users_collection
from smswallet.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()

        logger.info("Creating database indexes...")

        # Unique index on phone_number (natural key, makes upserts race-safe)
        await users.create_index("phone_number", unique=True, name="phone_number_unique")
        logger.debug("Created unique index on users.phone_number")

        # Index on session step for state-based queries
        await users.create_index("session_state.step", name="session_step_idx")
        logger.debug("Created index on users.session_state.step")

        # Index on last_interaction for activity queries
        await users.create_index("last_interaction", name="last_interaction_idx")
        logger.debug("Created index on users.last_interaction")

        logger.info("Database indexes created successfully")

    except PyMongoError as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


async def list_indexes():
    """
    Lists all indexes on the users collection (for debugging).
    """
    users = get_users_collection()
    indexes = await users.index_information()
    logger.info(f"users indexes: {list(indexes.keys())}")
    return indexes
