"""Database connection and initialization."""

import logging

from beanie import init_beanie
from fastapi_users_db_beanie import BeanieUserDatabase
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from sitfit.config import DatabaseSettings
from sitfit.schemas.users import Account

logger = logging.getLogger(__name__)


async def get_user_db():
    yield BeanieUserDatabase(Account)  # type: ignore


def create_client(database_settings: DatabaseSettings) -> AsyncIOMotorClient:
    """Create the MongoDB client. The caller owns it and must close it.

    Args:
        database_settings: Connection settings

    Returns:
        AsyncIOMotorClient: The MongoDB client
    """
    return AsyncIOMotorClient(
        database_settings.mongodb_uri,
        serverSelectionTimeoutMS=database_settings.server_selection_timeout_ms,
        tz_aware=False,
    )


async def init_db(client: AsyncIOMotorClient, database_settings: DatabaseSettings) -> AsyncIOMotorDatabase:
    """Initialize the document models and return the application database."""
    database = client[database_settings.database_name]
    logger.info(f"Initializing Beanie with database: {database_settings.database_name}")

    try:
        await init_beanie(database=database, document_models=[Account])
        logger.info("Database initialization successful")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    return database


async def check_connection(client: AsyncIOMotorClient) -> bool:
    """Check if the database connection is healthy.

    Returns:
        bool: True if connection is healthy, False otherwise
    """
    try:
        await client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
