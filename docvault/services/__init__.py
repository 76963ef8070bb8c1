"""
Services module - Business logic layer.

Services orchestrate the entity store and the chunker:
- document_service.py     : Document ingestion and chunk access
- conversation_service.py : Conversations, messages and LLM context
"""
from docvault.services.conversation_service import ConversationService
from docvault.services.document_service import DocumentService, make_excerpt

__all__ = ["ConversationService", "DocumentService", "make_excerpt"]
