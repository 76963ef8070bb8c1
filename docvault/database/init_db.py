"""
Database Initialization - Create tables for the durable backend.

This module provides functions to create and drop the entity tables.
"""
from typing import Optional

from docvault.core.logging_config import get_logger
from docvault.database.connection import DatabaseConnection, get_database
from docvault.database.models import Base

logger = get_logger(__name__)


def init_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Create entity tables if they don't exist.

    This should be called once during service startup when the durable
    backend is enabled.

    Args:
        db: Connection to use. Defaults to the singleton connection.

    Returns:
        True if tables were created successfully
    """
    try:
        db = db or get_database()
        Base.metadata.create_all(db.engine)

        logger.info("Entity tables initialized successfully")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize entity tables: {e}")
        raise


def drop_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Drop entity tables (use with caution!).

    This is mainly for testing/development purposes.

    Returns:
        True if tables were dropped successfully
    """
    try:
        db = db or get_database()
        Base.metadata.drop_all(db.engine)

        logger.warning("Entity tables dropped")
        return True

    except Exception as e:
        logger.error(f"Failed to drop entity tables: {e}")
        raise


if __name__ == "__main__":
    from docvault.core.logging_config import setup_logging

    setup_logging()
    print("Initializing entity tables...")
    init_tables()
    print("Done!")
