"""
Entity types and create inputs for the storage layer.

Entities are plain dataclasses returned by every backend. Create inputs
are pydantic models: optional fields left unset become explicit ``None``
on the stored entity, never missing attributes.
"""
from dataclasses import dataclass, field, fields as dataclass_fields, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, Field

from docvault.core.exceptions import InvalidUpdateError

# Entity kinds, used for logging and divergence bookkeeping
USER = "user"
DOCUMENT = "document"
CONVERSATION = "conversation"
MESSAGE = "message"
REWRITE = "rewrite"
PROFILE = "profile"

Role = Literal["user", "assistant"]

E = TypeVar("E")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form both backends store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class User:
    id: int
    username: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username}


@dataclass
class Document:
    """A stored document with its optional chunk breakdown."""
    id: str
    user_id: int
    title: str
    content: str
    excerpt: str
    model: str
    date: datetime
    metadata: Optional[Dict[str, Any]] = None
    chunks: Optional[List[Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = _iso(self.date)
        return data


@dataclass
class Conversation:
    """
    A chat thread owned by a user.

    ``updated_at`` moves forward every time a message is appended.
    """
    id: int
    user_id: int
    title: str
    model: Optional[str]
    created_at: datetime
    updated_at: datetime
    context_document_ids: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        data["updated_at"] = _iso(self.updated_at)
        return data


@dataclass
class Message:
    id: int
    conversation_id: int
    role: str
    content: str
    timestamp: datetime = field(default_factory=utcnow)
    metadata: Optional[Dict[str, Any]] = None
    document_references: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = _iso(self.timestamp)
        return data

    def to_llm_format(self) -> Dict[str, str]:
        """Convert to format suitable for LLM API."""
        return {"role": self.role, "content": self.content}


@dataclass
class Rewrite:
    id: int
    user_id: int
    model: str
    mode: str
    original_content: str
    rewritten_content: str
    created_at: datetime
    instructions: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class Profile:
    id: int
    user_id: int
    created_at: datetime
    profile_type: Optional[str] = None
    analysis_type: Optional[str] = None
    input_text: Optional[str] = None
    results: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data


# ==================== CREATE INPUTS ====================


class NewUser(BaseModel):
    username: str
    password: str


class NewDocument(BaseModel):
    user_id: int
    title: str
    content: str
    excerpt: str
    model: str
    date: datetime = Field(default_factory=utcnow)
    metadata: Optional[Dict[str, Any]] = None
    chunks: Optional[List[Dict[str, Any]]] = None


class NewConversation(BaseModel):
    user_id: int
    title: str
    model: Optional[str] = None
    context_document_ids: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class NewMessage(BaseModel):
    conversation_id: int
    role: Role
    content: str
    metadata: Optional[Dict[str, Any]] = None
    document_references: Optional[List[str]] = None


class NewRewrite(BaseModel):
    user_id: int
    model: str
    mode: str
    original_content: str
    rewritten_content: str
    instructions: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None


class NewProfile(BaseModel):
    user_id: int
    profile_type: Optional[str] = None
    analysis_type: Optional[str] = None
    input_text: Optional[str] = None
    results: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


# ==================== PARTIAL UPDATES ====================


def field_names(entity_type: Type[Any]) -> List[str]:
    """Names of the dataclass fields of an entity type."""
    return [f.name for f in dataclass_fields(entity_type)]


def clean_update(entity_type: Type[E], kind: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial update against an entity type.

    The ``id`` key is dropped because identifiers never change.

    Raises:
        InvalidUpdateError: If a key is not a field of the entity
    """
    known = set(field_names(entity_type))
    unknown = set(changes) - known
    if unknown:
        raise InvalidUpdateError(kind, unknown)
    return {key: value for key, value in changes.items() if key != "id"}
