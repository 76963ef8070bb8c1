"""
Database module - SQLAlchemy connection, ORM models and table setup.

This module provides:
- connection.py : Engine and session management
- models.py     : ORM records for every entity table
- init_db.py    : Table creation helpers
"""
from docvault.database.connection import (
    DatabaseConnection,
    get_database,
    reset_database,
)
from docvault.database.models import (
    Base,
    UserRecord,
    DocumentRecord,
    ConversationRecord,
    MessageRecord,
    RewriteRecord,
    ProfileRecord,
)
from docvault.database.init_db import init_tables, drop_tables

__all__ = [
    "DatabaseConnection",
    "get_database",
    "reset_database",
    "Base",
    "UserRecord",
    "DocumentRecord",
    "ConversationRecord",
    "MessageRecord",
    "RewriteRecord",
    "ProfileRecord",
    "init_tables",
    "drop_tables",
]
