"""
Resilient Store - Durable-first entity store with in-memory fallback.

Every operation is attempted on the durable backend. If that attempt
fails for any reason, the failure is logged with the operation name and
its identifying arguments and the same operation runs once on the
volatile backend, whose result is returned instead. There is no retry
loop and no backoff within a call.

Across calls, a BackendCoordinator:
- skips the durable backend while it is marked unavailable
- records every entity that a fallback write created, so that entity
  stays reachable through this store even after the durable backend
  recovers
- exposes the resulting health and divergence through ``health()``

Fallback writes are never replayed to the durable backend.
Integer ids assigned by the volatile backend are negative, so an id names
one entity in one backend only.
"""
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel

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
)
from docvault.models.health import StoreHealth
from docvault.storage.base import Changes, EntityStore
from docvault.storage.health import BackendCoordinator
from docvault.storage.memory import MemoryStore
from docvault.storage.result import BackendResult, DURABLE, VOLATILE

logger = get_logger(__name__)

_ENTITY_TYPES = {
    USER: User,
    DOCUMENT: Document,
    CONVERSATION: Conversation,
    MESSAGE: Message,
    REWRITE: Rewrite,
    PROFILE: Profile,
}

# Fallback ids count down from -1 and never meet database autoincrement ids
FALLBACK_ID_STEP = -1

# Input fields worth naming in a fallback log line
_IDENTIFYING_FIELDS = ("username", "user_id", "conversation_id", "role", "title")


def describe_args(args: Sequence[Any]) -> str:
    """Short, log-safe rendering of an operation's arguments."""
    parts = []
    for arg in args:
        if isinstance(arg, BaseModel):
            data = arg.model_dump()
            named = ", ".join(
                f"{key}={data[key]!r}" for key in _IDENTIFYING_FIELDS if key in data
            )
            parts.append(f"{type(arg).__name__}({named})")
        elif isinstance(arg, dict):
            parts.append(f"fields={sorted(arg)}")
        else:
            parts.append(repr(arg))
    return ", ".join(parts)


def failure_reason(error: Exception) -> str:
    """Error message plus the underlying cause carried by StoreError details."""
    reason = str(error) or type(error).__name__
    details = getattr(error, "details", None)
    return f"{reason} ({details})" if details else reason


class ResilientStore(EntityStore):
    """
    Entity store that prefers the durable backend and masks its failures.

    Example:
        >>> store = ResilientStore(DatabaseStore(DatabaseConnection("sqlite://")))
        >>> # Tables were never created, so the write falls back to memory
        >>> store.create_document(doc_input).id
        'doc_1'
        >>> store.health().diverged
        True
    """

    def __init__(
        self,
        durable: EntityStore,
        volatile: Optional[MemoryStore] = None,
        coordinator: Optional[BackendCoordinator] = None
    ):
        """
        Initialize the resilient store.

        Args:
            durable: Authoritative backend
            volatile: Fallback backend. Must assign negative integer ids.
                      A fresh MemoryStore if not provided.
            coordinator: Failure and divergence tracker. Defaults to
                         a coordinator with default thresholds.
        """
        volatile = volatile or MemoryStore(id_step=FALLBACK_ID_STEP)
        if volatile.id_step > 0:
            raise ValueError("volatile backend must count ids downwards (id_step < 0)")

        self.durable = durable
        self.volatile = volatile
        self.coordinator = coordinator or BackendCoordinator()

        logger.info(
            f"[STORE] ResilientStore initialized: durable={type(durable).__name__}, "
            f"failure_threshold={self.coordinator.failure_threshold}"
        )

    # ==================== DISPATCH ====================

    def _attempt_durable(self, operation: str, *args: Any) -> BackendResult:
        """Run one durable call and capture its outcome."""
        try:
            value = getattr(self.durable, operation)(*args)
        except Exception as e:
            reason = failure_reason(e)
            self.coordinator.record_failure(operation, reason)
            return BackendResult.failure(reason)

        self.coordinator.record_success(operation)
        return BackendResult.success(value, DURABLE)

    def _volatile(self, operation: str, *args: Any) -> BackendResult:
        return BackendResult.success(getattr(self.volatile, operation)(*args), VOLATILE)

    def _execute(self, operation: str, *args: Any) -> BackendResult:
        """Durable first, one immediate fallback to the volatile backend."""
        if not self.coordinator.should_attempt_durable():
            logger.debug(
                f"[STORE] Durable backend unavailable, serving "
                f"{operation}({describe_args(args)}) from memory"
            )
            self.coordinator.record_fallback()
            return self._volatile(operation, *args)

        result = self._attempt_durable(operation, *args)
        if result.ok:
            return result

        logger.error(
            f"[STORE] {operation}({describe_args(args)}) failed on durable backend, "
            f"falling back to memory: {result.reason}"
        )
        self.coordinator.record_fallback()
        return self._volatile(operation, *args)

    # ==================== GENERIC OPERATIONS ====================

    def _get(self, kind: str, operation: str, key: Any) -> Optional[Any]:
        result = self._execute(operation, key)
        if result.source == DURABLE and result.value is None and self.coordinator.is_diverged(kind, key):
            result = self._volatile(operation, key)
        return result.value

    def _list(self, kind: str, operation: str, owner: Any) -> List[Any]:
        result = self._execute(operation, owner)
        items = list(result.value)
        if result.source == DURABLE:
            items.extend(self._diverged_items(kind, operation, owner))
        return items

    def _diverged_items(self, kind: str, operation: str, owner: Any) -> List[Any]:
        """Volatile-only entities that a durable listing cannot know about."""
        diverged = self.coordinator.diverged_ids(kind)
        if not diverged:
            return []
        # Ids are per backend: a durable item with the same id is another entity
        return [
            item for item in getattr(self.volatile, operation)(owner)
            if item.id in diverged
        ]

    def _create(self, kind: str, operation: str, data: BaseModel) -> Any:
        result = self._execute(operation, data)
        if result.from_volatile:
            self.coordinator.mark_diverged(kind, result.value.id)
        return result.value

    def _update(self, kind: str, operation: str, key: Any, changes: Changes) -> Optional[Any]:
        # Malformed updates are the caller's error, not a backend failure
        changes = clean_update(_ENTITY_TYPES[kind], kind, changes)

        result = self._execute(operation, key, changes)
        if result.source == DURABLE and result.value is None and self.coordinator.is_diverged(kind, key):
            result = self._volatile(operation, key, changes)
        return result.value

    def _delete(self, kind: str, operation: str, key: Any) -> bool:
        result = self._execute(operation, key)
        if result.source == DURABLE and not result.value and self.coordinator.is_diverged(kind, key):
            result = self._volatile(operation, key)
        if result.from_volatile and result.value:
            self.coordinator.forget(kind, key)
        return bool(result.value)

    # ==================== HEALTH ====================

    def health(self) -> StoreHealth:
        """Observable state of the durable backend and of divergence."""
        return self.coordinator.snapshot(volatile_entities=self.volatile.get_stats())

    # ==================== USERS ====================

    def get_user(self, user_id: int) -> Optional[User]:
        return self._get(USER, "get_user", user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        result = self._execute("get_user_by_username", username)
        if result.source == DURABLE and result.value is None:
            user = self.volatile.get_user_by_username(username)
            if user is not None and self.coordinator.is_diverged(USER, user.id):
                return user
        return result.value

    def create_user(self, data: NewUser) -> User:
        return self._create(USER, "create_user", data)

    def update_user(self, user_id: int, changes: Changes) -> Optional[User]:
        return self._update(USER, "update_user", user_id, changes)

    def delete_user(self, user_id: int) -> bool:
        return self._delete(USER, "delete_user", user_id)

    # ==================== DOCUMENTS ====================

    def get_document(self, document_id: str) -> Optional[Document]:
        return self._get(DOCUMENT, "get_document", document_id)

    def get_documents_by_user(self, user_id: int) -> List[Document]:
        return self._list(DOCUMENT, "get_documents_by_user", user_id)

    def create_document(self, data: NewDocument) -> Document:
        return self._create(DOCUMENT, "create_document", data)

    def update_document(self, document_id: str, changes: Changes) -> Optional[Document]:
        return self._update(DOCUMENT, "update_document", document_id, changes)

    def delete_document(self, document_id: str) -> bool:
        return self._delete(DOCUMENT, "delete_document", document_id)

    # ==================== CONVERSATIONS ====================

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        return self._get(CONVERSATION, "get_conversation", conversation_id)

    def get_conversations_by_user(self, user_id: int) -> List[Conversation]:
        return self._list(CONVERSATION, "get_conversations_by_user", user_id)

    def create_conversation(self, data: NewConversation) -> Conversation:
        return self._create(CONVERSATION, "create_conversation", data)

    def update_conversation(self, conversation_id: int, changes: Changes) -> Optional[Conversation]:
        return self._update(CONVERSATION, "update_conversation", conversation_id, changes)

    def delete_conversation(self, conversation_id: int) -> bool:
        # Messages written to memory while the durable backend was failing
        stray = [
            message.id
            for message in self.volatile.get_messages_by_conversation(conversation_id)
            if self.coordinator.is_diverged(MESSAGE, message.id)
        ]

        if self.coordinator.is_diverged(CONVERSATION, conversation_id):
            result = self._volatile("delete_conversation", conversation_id)
        else:
            result = self._execute("delete_conversation", conversation_id)

        for message_id in stray:
            self.volatile.delete_message(message_id)
            self.coordinator.forget(MESSAGE, message_id)

        if result.from_volatile and result.value:
            self.coordinator.forget(CONVERSATION, conversation_id)

        logger.info(
            f"[STORE] delete_conversation({conversation_id}) served by {result.source}: "
            f"deleted={bool(result.value)}, stray_messages={len(stray)}"
        )
        return bool(result.value)

    # ==================== MESSAGES ====================

    def get_message(self, message_id: int) -> Optional[Message]:
        return self._get(MESSAGE, "get_message", message_id)

    def get_messages_by_conversation(self, conversation_id: int) -> List[Message]:
        if self.coordinator.is_diverged(CONVERSATION, conversation_id):
            return self.volatile.get_messages_by_conversation(conversation_id)

        result = self._execute("get_messages_by_conversation", conversation_id)
        messages = list(result.value)
        if result.source == DURABLE:
            extra = self._diverged_items(MESSAGE, "get_messages_by_conversation", conversation_id)
            if extra:
                messages = sorted(messages + extra, key=lambda m: m.timestamp)
        return messages

    def create_message(self, data: NewMessage) -> Message:
        if self.coordinator.is_diverged(CONVERSATION, data.conversation_id):
            # The conversation only exists in memory; its updated_at must move there
            message = self.volatile.create_message(data)
            self.coordinator.mark_diverged(MESSAGE, message.id)
            return message
        return self._create(MESSAGE, "create_message", data)

    def update_message(self, message_id: int, changes: Changes) -> Optional[Message]:
        return self._update(MESSAGE, "update_message", message_id, changes)

    def delete_message(self, message_id: int) -> bool:
        return self._delete(MESSAGE, "delete_message", message_id)

    # ==================== REWRITES ====================

    def get_rewrite(self, rewrite_id: int) -> Optional[Rewrite]:
        return self._get(REWRITE, "get_rewrite", rewrite_id)

    def get_rewrites_by_user(self, user_id: int) -> List[Rewrite]:
        return self._list(REWRITE, "get_rewrites_by_user", user_id)

    def create_rewrite(self, data: NewRewrite) -> Rewrite:
        return self._create(REWRITE, "create_rewrite", data)

    def update_rewrite(self, rewrite_id: int, changes: Changes) -> Optional[Rewrite]:
        return self._update(REWRITE, "update_rewrite", rewrite_id, changes)

    def delete_rewrite(self, rewrite_id: int) -> bool:
        return self._delete(REWRITE, "delete_rewrite", rewrite_id)

    # ==================== PROFILES ====================

    def get_profile(self, profile_id: int) -> Optional[Profile]:
        return self._get(PROFILE, "get_profile", profile_id)

    def get_profiles_by_user(self, user_id: int) -> List[Profile]:
        return self._list(PROFILE, "get_profiles_by_user", user_id)

    def create_profile(self, data: NewProfile) -> Profile:
        return self._create(PROFILE, "create_profile", data)

    def update_profile(self, profile_id: int, changes: Changes) -> Optional[Profile]:
        return self._update(PROFILE, "update_profile", profile_id, changes)

    def delete_profile(self, profile_id: int) -> bool:
        return self._delete(PROFILE, "delete_profile", profile_id)
