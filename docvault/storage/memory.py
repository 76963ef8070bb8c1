"""
Memory Store - In-process implementation of the entity store.

This is the volatile backend: every entity lives in a per-type dict for
the lifetime of the process. Identifiers come from per-type counters
(``doc_<n>`` for documents, plain integers elsewhere) and are never reused.
As the fallback of a resilient store it counts integer ids downwards from
-1, so they can never equal an autoincrement id of the database.

Entities are copied on the way in and out, so callers cannot change
stored state by mutating a returned object.
"""
from copy import deepcopy
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar
import threading

from docvault.core.logging_config import get_logger
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

E = TypeVar("E")


class _Table(Generic[E]):
    """Rows of one entity type keyed by id, in insertion order."""

    def __init__(self, kind: str, entity_type: type, step: int = 1):
        self.kind = kind
        self.entity_type = entity_type
        self.rows: Dict[Any, E] = {}
        self._step = step
        self._next_id = step

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += self._step
        return value

    def get(self, key: Any) -> Optional[E]:
        row = self.rows.get(key)
        return deepcopy(row) if row is not None else None

    def where(self, predicate: Callable[[E], bool]) -> List[E]:
        return [deepcopy(row) for row in self.rows.values() if predicate(row)]

    def insert(self, entity: E) -> E:
        self.rows[entity.id] = deepcopy(entity)
        return entity

    def update(self, key: Any, changes: Changes) -> Optional[E]:
        row = self.rows.get(key)
        if row is None:
            return None
        updated = replace(row, **deepcopy(clean_update(self.entity_type, self.kind, changes)))
        self.rows[key] = updated
        return deepcopy(updated)

    def delete(self, key: Any) -> bool:
        return self.rows.pop(key, None) is not None


class MemoryStore(EntityStore):
    """
    Volatile entity store.

    Example:
        >>> store = MemoryStore()
        >>> user = store.create_user(NewUser(username="ada", password="secret"))
        >>> store.get_user(user.id).username
        'ada'
    """

    def __init__(self, id_step: int = 1, unavailable_reason: Optional[str] = None):
        """
        Initialize the memory store.

        Args:
            id_step: Increment of the integer id counters. A negative step
                     yields ids -1, -2, ... Document ids stay ``doc_<n>``.
            unavailable_reason: Why a configured database is not in use,
                                reported by ``health()``
        """
        if id_step == 0:
            raise ValueError("id_step must not be 0")

        self.id_step = id_step
        self.unavailable_reason = unavailable_reason

        self._users: _Table[User] = _Table(USER, User, id_step)
        self._documents: _Table[Document] = _Table(DOCUMENT, Document)
        self._conversations: _Table[Conversation] = _Table(CONVERSATION, Conversation, id_step)
        self._messages: _Table[Message] = _Table(MESSAGE, Message, id_step)
        self._rewrites: _Table[Rewrite] = _Table(REWRITE, Rewrite, id_step)
        self._profiles: _Table[Profile] = _Table(PROFILE, Profile, id_step)

        self._last_message_at: Optional[datetime] = None
        self._lock = threading.RLock()

        logger.info(f"[MEMORY] MemoryStore initialized: id_step={id_step}")

    # ==================== USERS ====================

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            matches = self._users.where(lambda u: u.username == username)
            return matches[0] if matches else None

    def create_user(self, data: NewUser) -> User:
        with self._lock:
            user = User(id=self._users.next_id(), **data.model_dump())
            logger.debug(f"[MEMORY] Created user {user.id}")
            return self._users.insert(user)

    def update_user(self, user_id: int, changes: Changes) -> Optional[User]:
        with self._lock:
            return self._users.update(user_id, changes)

    def delete_user(self, user_id: int) -> bool:
        with self._lock:
            return self._users.delete(user_id)

    # ==================== DOCUMENTS ====================

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def get_documents_by_user(self, user_id: int) -> List[Document]:
        with self._lock:
            return self._documents.where(lambda d: d.user_id == user_id)

    def create_document(self, data: NewDocument) -> Document:
        with self._lock:
            document = Document(id=f"doc_{self._documents.next_id()}", **data.model_dump())
            logger.debug(f"[MEMORY] Created document {document.id} for user {document.user_id}")
            return self._documents.insert(document)

    def update_document(self, document_id: str, changes: Changes) -> Optional[Document]:
        with self._lock:
            return self._documents.update(document_id, changes)

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            return self._documents.delete(document_id)

    # ==================== CONVERSATIONS ====================

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        with self._lock:
            return self._conversations.get(conversation_id)

    def get_conversations_by_user(self, user_id: int) -> List[Conversation]:
        with self._lock:
            return self._conversations.where(lambda c: c.user_id == user_id)

    def create_conversation(self, data: NewConversation) -> Conversation:
        with self._lock:
            now = utcnow()
            conversation = Conversation(
                id=self._conversations.next_id(),
                created_at=now,
                updated_at=now,
                **data.model_dump()
            )
            logger.debug(f"[MEMORY] Created conversation {conversation.id}")
            return self._conversations.insert(conversation)

    def update_conversation(self, conversation_id: int, changes: Changes) -> Optional[Conversation]:
        with self._lock:
            return self._conversations.update(conversation_id, changes)

    def delete_conversation(self, conversation_id: int) -> bool:
        with self._lock:
            orphaned = [
                key for key, message in self._messages.rows.items()
                if message.conversation_id == conversation_id
            ]
            for key in orphaned:
                self._messages.delete(key)

            existed = self._conversations.delete(conversation_id)
            if existed:
                logger.info(
                    f"[MEMORY] Deleted conversation {conversation_id} "
                    f"with {len(orphaned)} messages"
                )
            return existed

    # ==================== MESSAGES ====================

    def get_message(self, message_id: int) -> Optional[Message]:
        with self._lock:
            return self._messages.get(message_id)

    def get_messages_by_conversation(self, conversation_id: int) -> List[Message]:
        with self._lock:
            messages = self._messages.where(lambda m: m.conversation_id == conversation_id)
            # sorted() is stable, so equal timestamps keep insertion order
            return sorted(messages, key=lambda m: m.timestamp)

    def create_message(self, data: NewMessage) -> Message:
        with self._lock:
            timestamp = utcnow()
            if self._last_message_at is not None and timestamp < self._last_message_at:
                timestamp = self._last_message_at
            self._last_message_at = timestamp

            message = Message(
                id=self._messages.next_id(),
                timestamp=timestamp,
                **data.model_dump()
            )
            self._messages.insert(message)

            if data.conversation_id in self._conversations.rows:
                self._conversations.update(data.conversation_id, {"updated_at": timestamp})

            logger.debug(
                f"[MEMORY] Saved message {message.id}: "
                f"conversation={message.conversation_id}, role={message.role}"
            )
            return message

    def update_message(self, message_id: int, changes: Changes) -> Optional[Message]:
        with self._lock:
            return self._messages.update(message_id, changes)

    def delete_message(self, message_id: int) -> bool:
        with self._lock:
            return self._messages.delete(message_id)

    # ==================== REWRITES ====================

    def get_rewrite(self, rewrite_id: int) -> Optional[Rewrite]:
        with self._lock:
            return self._rewrites.get(rewrite_id)

    def get_rewrites_by_user(self, user_id: int) -> List[Rewrite]:
        with self._lock:
            return self._rewrites.where(lambda r: r.user_id == user_id)

    def create_rewrite(self, data: NewRewrite) -> Rewrite:
        with self._lock:
            rewrite = Rewrite(
                id=self._rewrites.next_id(),
                created_at=utcnow(),
                **data.model_dump()
            )
            return self._rewrites.insert(rewrite)

    def update_rewrite(self, rewrite_id: int, changes: Changes) -> Optional[Rewrite]:
        with self._lock:
            return self._rewrites.update(rewrite_id, changes)

    def delete_rewrite(self, rewrite_id: int) -> bool:
        with self._lock:
            return self._rewrites.delete(rewrite_id)

    # ==================== PROFILES ====================

    def get_profile(self, profile_id: int) -> Optional[Profile]:
        with self._lock:
            return self._profiles.get(profile_id)

    def get_profiles_by_user(self, user_id: int) -> List[Profile]:
        with self._lock:
            return self._profiles.where(lambda p: p.user_id == user_id)

    def create_profile(self, data: NewProfile) -> Profile:
        with self._lock:
            profile = Profile(
                id=self._profiles.next_id(),
                created_at=utcnow(),
                **data.model_dump()
            )
            return self._profiles.insert(profile)

    def update_profile(self, profile_id: int, changes: Changes) -> Optional[Profile]:
        with self._lock:
            return self._profiles.update(profile_id, changes)

    def delete_profile(self, profile_id: int) -> bool:
        with self._lock:
            return self._profiles.delete(profile_id)

    # ==================== HEALTH ====================

    def get_stats(self) -> Dict[str, int]:
        """Row counts per entity type."""
        with self._lock:
            return {
                table.kind: len(table.rows)
                for table in (
                    self._users,
                    self._documents,
                    self._conversations,
                    self._messages,
                    self._rewrites,
                    self._profiles,
                )
            }

    def health(self) -> StoreHealth:
        """
        Memory-only state, or unavailable when a configured database could
        not be set up. Either way nothing here survives a restart.
        """
        state = HealthState.UNAVAILABLE if self.unavailable_reason else HealthState.MEMORY_ONLY
        return StoreHealth(
            state=state,
            durable_attempts_allowed=False,
            volatile_entities=self.get_stats(),
            last_error=self.unavailable_reason,
        )
