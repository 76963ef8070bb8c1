"""
Store Bootstrap - Build and initialize the entity store once per process.

Backends never seed data on construction. Service startup calls
``initialize_store`` exactly once: it creates the durable tables (when a
durable backend is configured) and seeds the default user.
"""
from typing import Optional

from docvault.core.config import Settings, get_settings
from docvault.core.logging_config import get_logger
from docvault.database.connection import DatabaseConnection
from docvault.database.init_db import init_tables
from docvault.models.entities import NewUser, User
from docvault.storage.base import EntityStore
from docvault.storage.database import DatabaseStore
from docvault.storage.health import BackendCoordinator
from docvault.storage.memory import MemoryStore
from docvault.storage.resilient import ResilientStore

logger = get_logger(__name__)


def build_store(settings: Optional[Settings] = None) -> EntityStore:
    """
    Build the store described by settings.

    Returns:
        - ResilientStore over a DatabaseStore if STORAGE_DURABLE=true
        - MemoryStore otherwise, reporting HealthState.MEMORY_ONLY
        - MemoryStore reporting HealthState.UNAVAILABLE if the durable
          connection cannot even be configured (bad URL, missing driver)
    """
    settings = settings or get_settings()

    if not settings.storage_durable:
        logger.info("[STORE] Durable storage disabled, using memory store only")
        return MemoryStore()

    try:
        durable = DatabaseStore(DatabaseConnection(settings.database_url))
    except Exception as e:
        logger.error(f"[STORE] Could not configure durable backend, using memory store only: {e}")
        return MemoryStore(unavailable_reason=f"durable backend not configured: {e}")

    coordinator = BackendCoordinator(
        failure_threshold=settings.store_failure_threshold,
        retry_cooldown_seconds=settings.store_retry_cooldown_seconds,
    )
    return ResilientStore(durable, coordinator=coordinator)


def ensure_default_user(store: EntityStore, username: str, password: str) -> User:
    """Return the user with this username, creating it if missing."""
    existing = store.get_user_by_username(username)
    if existing is not None:
        logger.debug(f"[STORE] Default user already present: id={existing.id}")
        return existing

    user = store.create_user(NewUser(username=username, password=password))
    logger.info(f"[STORE] Seeded default user: id={user.id}")
    return user


def initialize_store(store: EntityStore, settings: Optional[Settings] = None) -> Optional[User]:
    """
    One-time startup step for a freshly built store.

    Table creation failures are logged, not raised: the resilient store
    keeps serving from memory until the database is reachable.

    Returns:
        The default user if seeding is enabled, else None
    """
    settings = settings or get_settings()

    durable = getattr(store, "durable", None)
    if isinstance(durable, DatabaseStore):
        try:
            init_tables(durable.db)
        except Exception as e:
            logger.error(f"[STORE] Failed to initialize entity tables: {e}")

    if not settings.seed_default_user:
        return None

    return ensure_default_user(store, settings.default_username, settings.default_password)
