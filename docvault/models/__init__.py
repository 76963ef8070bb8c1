"""
Models module - Entity types, create inputs and health schemas.

This module defines:
- Entities: dataclasses returned by every store backend
- Create inputs: Pydantic models validated before a write
- Health models: observable state of the resilient store
"""
from docvault.models.entities import (
    USER,
    DOCUMENT,
    CONVERSATION,
    MESSAGE,
    REWRITE,
    PROFILE,
    User,
    Document,
    Conversation,
    Message,
    Rewrite,
    Profile,
    NewUser,
    NewDocument,
    NewConversation,
    NewMessage,
    NewRewrite,
    NewProfile,
    clean_update,
)
from docvault.models.health import HealthState, StoreHealth

__all__ = [
    "USER",
    "DOCUMENT",
    "CONVERSATION",
    "MESSAGE",
    "REWRITE",
    "PROFILE",
    "User",
    "Document",
    "Conversation",
    "Message",
    "Rewrite",
    "Profile",
    "NewUser",
    "NewDocument",
    "NewConversation",
    "NewMessage",
    "NewRewrite",
    "NewProfile",
    "clean_update",
    "HealthState",
    "StoreHealth",
]
