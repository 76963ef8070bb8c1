"""Pytest fixtures for DocVault tests."""

from typing import Callable

import pytest

from docvault.database.connection import DatabaseConnection
from docvault.core.config import Settings
from docvault.database.init_db import init_tables
from docvault.models.entities import (
    NewConversation,
    NewDocument,
    NewMessage,
    NewProfile,
    NewRewrite,
    NewUser,
)
from docvault.storage.database import DatabaseStore
from docvault.storage.health import BackendCoordinator
from docvault.storage.memory import MemoryStore
from docvault.storage.resilient import ResilientStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        app_name="DocVault",
        log_level="DEBUG",
        log_dir=str(tmp_path / "logs"),
        database_url="sqlite://",
        storage_durable=True,
        store_failure_threshold=2,
        store_retry_cooldown_seconds=5,
        seed_default_user=True,
        default_username="user@example.com",
        default_password="password123",
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sqlite_db():
    """In-memory SQLite database with the entity tables created."""
    db = DatabaseConnection("sqlite://")
    init_tables(db)
    yield db
    db.close()


@pytest.fixture
def broken_db():
    """In-memory SQLite database without tables: every query fails."""
    db = DatabaseConnection("sqlite://")
    yield db
    db.close()


@pytest.fixture
def database_store(sqlite_db: DatabaseConnection) -> DatabaseStore:
    return DatabaseStore(sqlite_db)


@pytest.fixture
def coordinator(clock: FakeClock) -> BackendCoordinator:
    return BackendCoordinator(failure_threshold=3, retry_cooldown_seconds=30, clock=clock)


@pytest.fixture
def resilient_store(database_store: DatabaseStore, coordinator: BackendCoordinator) -> ResilientStore:
    """Resilient store over a working durable backend."""
    return ResilientStore(database_store, coordinator=coordinator)


@pytest.fixture
def failing_store(broken_db: DatabaseConnection, coordinator: BackendCoordinator) -> ResilientStore:
    """Resilient store whose durable backend fails every call."""
    return ResilientStore(DatabaseStore(broken_db), coordinator=coordinator)


# ==================== INPUT FACTORIES ====================


@pytest.fixture
def make_user() -> Callable[..., NewUser]:
    def _make(username: str = "ada@example.com", password: str = "secret") -> NewUser:
        return NewUser(username=username, password=password)
    return _make


@pytest.fixture
def make_document() -> Callable[..., NewDocument]:
    def _make(user_id: int = 1, title: str = "Field notes", content: str = "Notes from the field.", **extra) -> NewDocument:
        return NewDocument(
            user_id=user_id,
            title=title,
            content=content,
            excerpt=content[:150],
            model="gpt-4o",
            **extra
        )
    return _make


@pytest.fixture
def make_conversation() -> Callable[..., NewConversation]:
    def _make(user_id: int = 1, title: str = "Reading group", **extra) -> NewConversation:
        return NewConversation(user_id=user_id, title=title, **extra)
    return _make


@pytest.fixture
def make_message() -> Callable[..., NewMessage]:
    def _make(conversation_id: int, content: str = "Hello", role: str = "user", **extra) -> NewMessage:
        return NewMessage(conversation_id=conversation_id, role=role, content=content, **extra)
    return _make


@pytest.fixture
def make_rewrite() -> Callable[..., NewRewrite]:
    def _make(user_id: int = 1, **extra) -> NewRewrite:
        values = {
            "model": "gpt-4o",
            "mode": "formal",
            "original_content": "hey there",
            "rewritten_content": "Good afternoon.",
        }
        values.update(extra)
        return NewRewrite(user_id=user_id, **values)
    return _make


@pytest.fixture
def make_profile() -> Callable[..., NewProfile]:
    def _make(user_id: int = 1, **extra) -> NewProfile:
        values = {
            "profile_type": "writing_style",
            "analysis_type": "tone",
            "input_text": "Sample paragraph.",
            "results": {"tone": "neutral", "score": 0.7},
        }
        values.update(extra)
        return NewProfile(user_id=user_id, **values)
    return _make
