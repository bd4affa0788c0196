# app/db/database.py
import logging
from typing import Optional

import motor.motor_asyncio
from beanie import init_beanie

from app.core.config import MONGODB_URL, DATABASE_NAME
from app.models.book import Book
from app.models.loan import Loan
from app.models.notification import Notification
from app.models.reservation import Reservation
from app.models.user import User

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [User, Book, Loan, Reservation, Notification]

_client = None


def get_client():
    return _client


async def init_db(client=None, database_name: Optional[str] = None):
    """Connect to MongoDB and initialise Beanie for every document model.

    ``client`` lets callers hand in an already constructed motor-compatible
    client (the test suite passes an in-memory one).
    """
    global _client
    if client is None:
        logger.info("Connecting to MongoDB...")
        client = motor.motor_asyncio.AsyncIOMotorClient(MONGODB_URL, tz_aware=True)
    _client = client

    database = client[database_name or DATABASE_NAME]
    logger.info(f"Using database: {database_name or DATABASE_NAME}")

    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    logger.info("Beanie initialization complete for all models.")
    return database


def close_db():
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed.")
