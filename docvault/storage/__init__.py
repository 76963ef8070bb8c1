"""
Storage Package - Entity persistence with durable-first fallback.

This package provides two backends behind one contract:

## Durable backend (SQLAlchemy)
- Authoritative when reachable
- Survives restarts

## Volatile backend (in-memory)
- Always available
- Lost on restart

`ResilientStore` tries the durable backend first and falls back to the
volatile one on any failure. Use `get_store()` to get the process-wide
store built from configuration.

Example:
    >>> from docvault.storage import get_store
    >>> store = get_store()
    >>> conversation = store.create_conversation(
    ...     NewConversation(user_id=1, title="Chapter notes")
    ... )
"""
from typing import Optional

from docvault.core.logging_config import setup_logging
from docvault.storage.base import EntityStore
from docvault.storage.bootstrap import build_store, ensure_default_user, initialize_store
from docvault.storage.database import DatabaseStore
from docvault.storage.health import BackendCoordinator
from docvault.storage.memory import MemoryStore
from docvault.storage.resilient import ResilientStore
from docvault.storage.result import BackendResult, DURABLE, VOLATILE

# Singleton instance
_store: Optional[EntityStore] = None


def get_store() -> EntityStore:
    """Get or build and initialize the process-wide store."""
    global _store
    if _store is None:
        setup_logging()
        store = build_store()
        initialize_store(store)
        _store = store
    return _store


def reset_store() -> None:
    """Forget the process-wide store (for testing)."""
    global _store
    _store = None


__all__ = [
    "EntityStore",
    "MemoryStore",
    "DatabaseStore",
    "ResilientStore",
    "BackendCoordinator",
    "BackendResult",
    "DURABLE",
    "VOLATILE",
    "build_store",
    "initialize_store",
    "ensure_default_user",
    "get_store",
    "reset_store",
]
