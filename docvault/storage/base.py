"""
Entity Store contract shared by every backend.

Lookups return ``None`` (or an empty list) when nothing matches and
never raise for a missing row. ``update_*`` returns ``None`` for an
unknown id and never creates. ``delete_*`` reports whether a row existed.
"""
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional

from docvault.models.entities import (
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
)
from docvault.models.health import StoreHealth

Changes = Mapping[str, Any]


class EntityStore(ABC):
    """CRUD operations for users, documents, conversations, messages, rewrites and profiles."""

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, data: NewUser) -> User: ...

    @abstractmethod
    def update_user(self, user_id: int, changes: Changes) -> Optional[User]: ...

    @abstractmethod
    def delete_user(self, user_id: int) -> bool: ...

    # Documents
    @abstractmethod
    def get_document(self, document_id: str) -> Optional[Document]: ...

    @abstractmethod
    def get_documents_by_user(self, user_id: int) -> List[Document]: ...

    @abstractmethod
    def create_document(self, data: NewDocument) -> Document: ...

    @abstractmethod
    def update_document(self, document_id: str, changes: Changes) -> Optional[Document]: ...

    @abstractmethod
    def delete_document(self, document_id: str) -> bool: ...

    # Conversations
    @abstractmethod
    def get_conversation(self, conversation_id: int) -> Optional[Conversation]: ...

    @abstractmethod
    def get_conversations_by_user(self, user_id: int) -> List[Conversation]: ...

    @abstractmethod
    def create_conversation(self, data: NewConversation) -> Conversation: ...

    @abstractmethod
    def update_conversation(self, conversation_id: int, changes: Changes) -> Optional[Conversation]: ...

    @abstractmethod
    def delete_conversation(self, conversation_id: int) -> bool:
        """Delete a conversation and every message that references it."""

    # Messages
    @abstractmethod
    def get_message(self, message_id: int) -> Optional[Message]: ...

    @abstractmethod
    def get_messages_by_conversation(self, conversation_id: int) -> List[Message]:
        """Messages in ascending timestamp order, ties in insertion order."""

    @abstractmethod
    def create_message(self, data: NewMessage) -> Message:
        """Store a message and refresh its conversation's ``updated_at``."""

    @abstractmethod
    def update_message(self, message_id: int, changes: Changes) -> Optional[Message]: ...

    @abstractmethod
    def delete_message(self, message_id: int) -> bool: ...

    # Rewrites
    @abstractmethod
    def get_rewrite(self, rewrite_id: int) -> Optional[Rewrite]: ...

    @abstractmethod
    def get_rewrites_by_user(self, user_id: int) -> List[Rewrite]: ...

    @abstractmethod
    def create_rewrite(self, data: NewRewrite) -> Rewrite: ...

    @abstractmethod
    def update_rewrite(self, rewrite_id: int, changes: Changes) -> Optional[Rewrite]: ...

    @abstractmethod
    def delete_rewrite(self, rewrite_id: int) -> bool: ...

    # Profiles
    @abstractmethod
    def get_profile(self, profile_id: int) -> Optional[Profile]: ...

    @abstractmethod
    def get_profiles_by_user(self, user_id: int) -> List[Profile]: ...

    @abstractmethod
    def create_profile(self, data: NewProfile) -> Profile: ...

    @abstractmethod
    def update_profile(self, profile_id: int, changes: Changes) -> Optional[Profile]: ...

    @abstractmethod
    def delete_profile(self, profile_id: int) -> bool: ...

    # Health
    @abstractmethod
    def health(self) -> StoreHealth:
        """Observable state of the backends behind this store."""
