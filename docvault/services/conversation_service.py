"""
Conversation Service - Conversations, messages and LLM-ready history.

This service sits between callers and the entity store:
1. Starts conversations, optionally grounded on documents
2. Validates and appends messages
3. Builds the message list an LLM call would receive
"""
from typing import Any, Dict, List, Optional

from docvault.core.exceptions import ValidationError
from docvault.core.logging_config import LoggerMixin
from docvault.models.entities import Conversation, Message, NewConversation, NewMessage
from docvault.storage import get_store
from docvault.storage.base import EntityStore

VALID_ROLES = ("user", "assistant")


class ConversationService(LoggerMixin):
    """
    Service for conversation flow on top of the entity store.

    Example:
        >>> service = ConversationService(store)
        >>> conversation = service.start(1, "Reading group", context_document_ids=[doc.id])
        >>> service.add_message(conversation.id, "user", "Summarize chapter two")
        >>> service.build_llm_context(conversation.id)
        [{'role': 'system', 'content': '...'}, {'role': 'user', 'content': '...'}]
    """

    def __init__(self, store: Optional[EntityStore] = None):
        self.store = store or get_store()

    def start(
        self,
        user_id: int,
        title: str,
        model: Optional[str] = None,
        context_document_ids: Optional[List[str]] = None
    ) -> Conversation:
        conversation = self.store.create_conversation(NewConversation(
            user_id=user_id,
            title=title,
            model=model,
            context_document_ids=context_document_ids,
        ))
        self.logger.info(
            f"Started conversation: id={conversation.id}, user={user_id}, "
            f"documents={len(context_document_ids or [])}"
        )
        return conversation

    def add_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        document_references: Optional[List[str]] = None
    ) -> Message:
        """
        Append a message to a conversation.

        Raises:
            ValidationError: If the role is not ``user`` or ``assistant``
        """
        if role not in VALID_ROLES:
            raise ValidationError(
                f"Invalid role '{role}', expected one of {', '.join(VALID_ROLES)}",
                field="role"
            )

        message = self.store.create_message(NewMessage(
            conversation_id=conversation_id,
            role=role,
            content=content,
            metadata=metadata,
            document_references=document_references,
        ))
        self.logger.debug(
            f"Added {role} message {message.id} to conversation {conversation_id}"
        )
        return message

    def build_llm_context(self, conversation_id: int) -> Optional[List[Dict[str, str]]]:
        """
        Message history in LLM API format.

        When the conversation references documents, a system message with
        their titles and content comes first. Referenced documents that no
        longer exist are skipped.

        Returns:
            List of {role, content} dicts, or None if the conversation is absent
        """
        conversation = self.store.get_conversation(conversation_id)
        if conversation is None:
            return None

        context: List[Dict[str, str]] = []
        system_prompt = self._document_prompt(conversation.context_document_ids or [])
        if system_prompt:
            context.append({"role": "system", "content": system_prompt})

        messages = self.store.get_messages_by_conversation(conversation_id)
        context.extend(message.to_llm_format() for message in messages)
        return context

    def _document_prompt(self, document_ids: List[str]) -> Optional[str]:
        sections = []
        for document_id in document_ids:
            document = self.store.get_document(document_id)
            if document is None:
                self.logger.warning(f"Context document {document_id} not found, skipping")
                continue
            sections.append(f"Document: {document.title}\n\n{document.content}")

        if not sections:
            return None
        return "You have access to the following document(s):\n\n" + "\n\n---\n\n".join(sections)
