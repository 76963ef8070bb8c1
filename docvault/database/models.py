"""
Database Models - SQLAlchemy ORM models for the durable backend.

This module defines the database schema for:
- Users
- Documents (with their chunk breakdown)
- Conversations and messages
- Rewrites
- Profiles

Column names match the persisted shape of each entity. The ``metadata``
column is mapped to the ``extra_data`` attribute because declarative
models reserve ``metadata``.
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, JSON
from sqlalchemy.orm import declarative_base

from docvault.models.entities import (
    Conversation,
    Document,
    Message,
    Profile,
    Rewrite,
    User,
    utcnow,
)

Base = declarative_base()


class UserRecord(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False)
    password = Column(Text, nullable=False)

    def to_entity(self) -> User:
        return User(id=self.id, username=self.username, password=self.password)


class DocumentRecord(Base):
    """
    Model for stored documents.

    ``id`` is assigned by the store (``doc_<millis>_<random>``), not by
    the database.
    """
    __tablename__ = "documents"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=False)
    model = Column(String(100), nullable=False)
    date = Column(DateTime, nullable=False)
    extra_data = Column("metadata", JSON, nullable=True)
    chunks = Column(JSON, nullable=True)

    def to_entity(self) -> Document:
        return Document(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            content=self.content,
            excerpt=self.excerpt,
            model=self.model,
            date=self.date,
            metadata=self.extra_data,
            chunks=self.chunks,
        )


class ConversationRecord(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    title = Column(Text, nullable=False)
    model = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    context_document_ids = Column(JSON, nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)

    def to_entity(self) -> Conversation:
        return Conversation(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            model=self.model,
            created_at=self.created_at,
            updated_at=self.updated_at,
            context_document_ids=self.context_document_ids,
            metadata=self.extra_data,
        )


class MessageRecord(Base):
    """
    Model for individual messages in a conversation.

    ``conversation_id`` carries no foreign key; the store deletes
    messages explicitly before their conversation.
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(Integer, nullable=False, index=True)
    role = Column(String(20), nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    extra_data = Column("metadata", JSON, nullable=True)
    document_references = Column(JSON, nullable=True)

    def to_entity(self) -> Message:
        return Message(
            id=self.id,
            conversation_id=self.conversation_id,
            role=self.role,
            content=self.content,
            timestamp=self.timestamp,
            metadata=self.extra_data,
            document_references=self.document_references,
        )


class RewriteRecord(Base):
    __tablename__ = "rewrites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    model = Column(String(100), nullable=False)
    mode = Column(String(50), nullable=False)
    original_content = Column(Text, nullable=False)
    rewritten_content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    instructions = Column(Text, nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)
    source_type = Column(String(50), nullable=True)  # 'document', 'chat', 'direct_input'
    source_id = Column(Text, nullable=True)

    def to_entity(self) -> Rewrite:
        return Rewrite(
            id=self.id,
            user_id=self.user_id,
            model=self.model,
            mode=self.mode,
            original_content=self.original_content,
            rewritten_content=self.rewritten_content,
            created_at=self.created_at,
            instructions=self.instructions,
            metadata=self.extra_data,
            source_type=self.source_type,
            source_id=self.source_id,
        )


class ProfileRecord(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    profile_type = Column(String(50), nullable=True)  # 'cognitive' or 'psychological'
    analysis_type = Column(String(50), nullable=True)  # 'instant' or 'comprehensive'
    input_text = Column(Text, nullable=True)
    results = Column(JSON, nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)

    def to_entity(self) -> Profile:
        return Profile(
            id=self.id,
            user_id=self.user_id,
            created_at=self.created_at,
            profile_type=self.profile_type,
            analysis_type=self.analysis_type,
            input_text=self.input_text,
            results=self.results,
            metadata=self.extra_data,
        )
