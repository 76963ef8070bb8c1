"""
Database Store - SQLAlchemy implementation of the entity store.

This is the durable backend. Every public operation runs in one session
(one transaction) and converts any SQLAlchemyError into a BackendError
carrying the operation name, so callers see a single failure type.

Document ids are generated here as ``doc_<epoch millis>_<9 base36 chars>``;
every other id comes from the database's autoincrement column.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional
import json
import random
import string
import time

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docvault.core.exceptions import BackendError
from docvault.core.logging_config import get_logger
from docvault.database.connection import DatabaseConnection, get_database
from docvault.database.models import (
    ConversationRecord,
    DocumentRecord,
    MessageRecord,
    ProfileRecord,
    RewriteRecord,
    UserRecord,
)
from docvault.models.entities import (
    CONVERSATION,
    DOCUMENT,
    MESSAGE,
    PROFILE,
    REWRITE,
    USER,
    Conversation,
    Document,
    Message,
    NewConversation,
    NewDocument,
    NewMessage,
    NewProfile,
    NewRewrite,
    NewUser,
    Profile,
    Rewrite,
    User,
    clean_update,
    utcnow,
)
from docvault.models.health import HealthState, StoreHealth
from docvault.storage.base import Changes, EntityStore

logger = get_logger(__name__)

_BASE36 = string.ascii_lowercase + string.digits

# Entity kind -> (ORM record, entity type)
_RECORDS = {
    USER: (UserRecord, User),
    DOCUMENT: (DocumentRecord, Document),
    CONVERSATION: (ConversationRecord, Conversation),
    MESSAGE: (MessageRecord, Message),
    REWRITE: (RewriteRecord, Rewrite),
    PROFILE: (ProfileRecord, Profile),
}

# Fields holding arbitrary JSON supplied by callers
_JSON_FIELDS = ("metadata", "results")


def generate_document_id() -> str:
    """Time-ordered document id with a random suffix."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"doc_{int(time.time() * 1000)}_{suffix}"


def _json_safe(value: Any) -> Any:
    """
    Make a metadata value JSON-serializable.

    Handles datetime objects and other non-serializable types.
    """
    if value is None:
        return None
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        pass

    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    return str(value)


def _columns(values: Dict[str, Any]) -> Dict[str, Any]:
    """Map entity field names onto record attributes."""
    columns = {}
    for key, value in values.items():
        if key in _JSON_FIELDS:
            value = _json_safe(value)
        columns["extra_data" if key == "metadata" else key] = value
    return columns


class DatabaseStore(EntityStore):
    """
    Durable entity store backed by SQLAlchemy.

    Example:
        >>> store = DatabaseStore(DatabaseConnection("sqlite://"))
        >>> init_tables(store.db)
        >>> store.create_user(NewUser(username="ada", password="secret")).id
        1
    """

    def __init__(self, db: Optional[DatabaseConnection] = None):
        """
        Initialize the database store.

        Args:
            db: Connection to use. Defaults to the singleton connection.
        """
        self.db = db or get_database()
        logger.info("[DURABLE] DatabaseStore initialized")

    # ==================== SESSION HELPERS ====================

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        """One session per operation; database errors become BackendError."""
        try:
            with self.db.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            raise BackendError(operation, e) from e

    def _get(self, kind: str, key: Any) -> Optional[Any]:
        record_type, _ = _RECORDS[kind]
        with self._transaction(f"get_{kind}") as session:
            record = session.get(record_type, key)
            return record.to_entity() if record is not None else None

    def _list_by_user(self, kind: str, user_id: int) -> List[Any]:
        record_type, _ = _RECORDS[kind]
        with self._transaction(f"get_{kind}s_by_user") as session:
            records = session.query(record_type).filter(
                record_type.user_id == user_id
            ).order_by(record_type.id).all()
            return [record.to_entity() for record in records]

    def _insert(self, kind: str, values: Dict[str, Any]) -> Any:
        record_type, _ = _RECORDS[kind]
        with self._transaction(f"create_{kind}") as session:
            record = record_type(**_columns(values))
            session.add(record)
            session.flush()  # Assigns autoincrement ids
            entity = record.to_entity()
        logger.debug(f"[DURABLE] Created {kind} {entity.id}")
        return entity

    def _update(self, kind: str, key: Any, changes: Changes) -> Optional[Any]:
        record_type, entity_type = _RECORDS[kind]
        values = clean_update(entity_type, kind, changes)
        with self._transaction(f"update_{kind}") as session:
            record = session.get(record_type, key)
            if record is None:
                return None
            for attribute, value in _columns(values).items():
                setattr(record, attribute, value)
            session.flush()
            return record.to_entity()

    def _delete(self, kind: str, key: Any) -> bool:
        record_type, _ = _RECORDS[kind]
        with self._transaction(f"delete_{kind}") as session:
            deleted = session.query(record_type).filter(
                record_type.id == key
            ).delete(synchronize_session=False)
            return deleted > 0

    @staticmethod
    def _values(data: BaseModel, **extra: Any) -> Dict[str, Any]:
        values = data.model_dump()
        values.update(extra)
        return values

    # ==================== USERS ====================

    def get_user(self, user_id: int) -> Optional[User]:
        return self._get(USER, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._transaction("get_user_by_username") as session:
            record = session.query(UserRecord).filter(
                UserRecord.username == username
            ).first()
            return record.to_entity() if record is not None else None

    def create_user(self, data: NewUser) -> User:
        return self._insert(USER, self._values(data))

    def update_user(self, user_id: int, changes: Changes) -> Optional[User]:
        return self._update(USER, user_id, changes)

    def delete_user(self, user_id: int) -> bool:
        return self._delete(USER, user_id)

    # ==================== DOCUMENTS ====================

    def get_document(self, document_id: str) -> Optional[Document]:
        return self._get(DOCUMENT, document_id)

    def get_documents_by_user(self, user_id: int) -> List[Document]:
        return self._list_by_user(DOCUMENT, user_id)

    def create_document(self, data: NewDocument) -> Document:
        return self._insert(DOCUMENT, self._values(data, id=generate_document_id()))

    def update_document(self, document_id: str, changes: Changes) -> Optional[Document]:
        return self._update(DOCUMENT, document_id, changes)

    def delete_document(self, document_id: str) -> bool:
        return self._delete(DOCUMENT, document_id)

    # ==================== CONVERSATIONS ====================

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        return self._get(CONVERSATION, conversation_id)

    def get_conversations_by_user(self, user_id: int) -> List[Conversation]:
        return self._list_by_user(CONVERSATION, user_id)

    def create_conversation(self, data: NewConversation) -> Conversation:
        now = utcnow()
        return self._insert(CONVERSATION, self._values(data, created_at=now, updated_at=now))

    def update_conversation(self, conversation_id: int, changes: Changes) -> Optional[Conversation]:
        return self._update(CONVERSATION, conversation_id, changes)

    def delete_conversation(self, conversation_id: int) -> bool:
        with self._transaction("delete_conversation") as session:
            # Messages first, then the conversation row, in one transaction
            message_count = session.query(MessageRecord).filter(
                MessageRecord.conversation_id == conversation_id
            ).delete(synchronize_session=False)

            deleted = session.query(ConversationRecord).filter(
                ConversationRecord.id == conversation_id
            ).delete(synchronize_session=False)

        if deleted:
            logger.info(
                f"[DURABLE] Deleted conversation {conversation_id} "
                f"with {message_count} messages"
            )
        return deleted > 0

    # ==================== MESSAGES ====================

    def get_message(self, message_id: int) -> Optional[Message]:
        return self._get(MESSAGE, message_id)

    def get_messages_by_conversation(self, conversation_id: int) -> List[Message]:
        with self._transaction("get_messages_by_conversation") as session:
            records = session.query(MessageRecord).filter(
                MessageRecord.conversation_id == conversation_id
            ).order_by(MessageRecord.timestamp.asc(), MessageRecord.id.asc()).all()
            return [record.to_entity() for record in records]

    def create_message(self, data: NewMessage) -> Message:
        timestamp = utcnow()
        with self._transaction("create_message") as session:
            record = MessageRecord(**_columns(self._values(data, timestamp=timestamp)))
            session.add(record)

            session.query(ConversationRecord).filter(
                ConversationRecord.id == data.conversation_id
            ).update({"updated_at": timestamp}, synchronize_session=False)

            session.flush()
            message = record.to_entity()

        logger.debug(
            f"[DURABLE] Saved message {message.id}: "
            f"conversation={message.conversation_id}, role={message.role}"
        )
        return message

    def update_message(self, message_id: int, changes: Changes) -> Optional[Message]:
        return self._update(MESSAGE, message_id, changes)

    def delete_message(self, message_id: int) -> bool:
        return self._delete(MESSAGE, message_id)

    # ==================== REWRITES ====================

    def get_rewrite(self, rewrite_id: int) -> Optional[Rewrite]:
        return self._get(REWRITE, rewrite_id)

    def get_rewrites_by_user(self, user_id: int) -> List[Rewrite]:
        return self._list_by_user(REWRITE, user_id)

    def create_rewrite(self, data: NewRewrite) -> Rewrite:
        return self._insert(REWRITE, self._values(data, created_at=utcnow()))

    def update_rewrite(self, rewrite_id: int, changes: Changes) -> Optional[Rewrite]:
        return self._update(REWRITE, rewrite_id, changes)

    def delete_rewrite(self, rewrite_id: int) -> bool:
        return self._delete(REWRITE, rewrite_id)

    # ==================== PROFILES ====================

    def get_profile(self, profile_id: int) -> Optional[Profile]:
        return self._get(PROFILE, profile_id)

    def get_profiles_by_user(self, user_id: int) -> List[Profile]:
        return self._list_by_user(PROFILE, user_id)

    def create_profile(self, data: NewProfile) -> Profile:
        return self._insert(PROFILE, self._values(data, created_at=utcnow()))

    def update_profile(self, profile_id: int, changes: Changes) -> Optional[Profile]:
        return self._update(PROFILE, profile_id, changes)

    def delete_profile(self, profile_id: int) -> bool:
        return self._delete(PROFILE, profile_id)

    # ==================== HEALTH ====================

    def health(self) -> StoreHealth:
        """Connectivity of the database; this store never falls back."""
        reachable = self.db.check_connection()
        return StoreHealth(
            state=HealthState.HEALTHY if reachable else HealthState.UNAVAILABLE,
            durable_attempts_allowed=True,
        )
