"""
MongoDB connection manager for the race weather service

This module provides functions for managing MongoDB connections,
including retrying the first connect and reconnecting after a closure.
"""
import time
import logging
from pymongo import MongoClient
from pymongo.errors import InvalidOperation, PyMongoError

from ..config import get_settings

# Configure logging
logger = logging.getLogger("racewx.database")

# Global client reference
_mongo_client = None


def connect_to_mongodb(mongo_uri, max_retries=5, retry_interval=5):
    """Connect to MongoDB with retry logic"""
    retry_count = 0
    while True:
        try:
            logger.info(f"Connecting to MongoDB at {mongo_uri}")
            mongo_client = MongoClient(mongo_uri, serverSelectionTimeoutMS=5000)
            # Force a connection to verify it works
            mongo_client.server_info()
            logger.info("Successfully connected to MongoDB")
            return mongo_client
        except PyMongoError as e:
            retry_count += 1
            if retry_count >= max_retries:
                raise ConnectionError(f"Failed to connect to MongoDB after {max_retries} attempts: {e}") from e
            logger.warning(f"MongoDB connection attempt {retry_count} failed: {e}. Retrying in {retry_interval} seconds...")
            time.sleep(retry_interval)


def get_database(settings=None):
    """
    Get or create the MongoDB connection and return the database

    Returns:
        MongoDB database object
    """
    global _mongo_client
    settings = settings or get_settings()

    if _mongo_client is None:
        logger.info(f"Creating new MongoDB connection to {settings.mongo_db}")
        _mongo_client = connect_to_mongodb(settings.mongo_uri)
        return _mongo_client[settings.mongo_db]

    # Test if connection is still alive
    try:
        _mongo_client.admin.command('ping')
        return _mongo_client[settings.mongo_db]
    except (PyMongoError, InvalidOperation) as e:
        logger.warning(f"MongoDB connection check failed: {str(e)}")
        _close_quietly()
        logger.info("Reconnecting to MongoDB")
        _mongo_client = connect_to_mongodb(settings.mongo_uri)
        return _mongo_client[settings.mongo_db]


def _close_quietly():
    global _mongo_client
    try:
        if _mongo_client:
            _mongo_client.close()
    except PyMongoError as close_error:
        logger.warning(f"Error closing MongoDB connection: {str(close_error)}")
    _mongo_client = None


def close_connection():
    """Close the MongoDB connection if it exists"""
    if _mongo_client:
        _close_quietly()
        logger.info("MongoDB connection closed")
