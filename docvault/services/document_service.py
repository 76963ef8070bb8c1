"""
Document Service - Ingest documents and expose their chunks.

Ingestion chunks the content once and stores the chunks alongside the
document, so later reads never re-run the chunker for stored documents.
"""
from typing import Any, Dict, List, Optional

from docvault.chunking import Chunk, ChunkSummary, chunk_document, summarize_chunks
from docvault.core.logging_config import LoggerMixin
from docvault.models.entities import Document, NewDocument
from docvault.storage import get_store
from docvault.storage.base import EntityStore

EXCERPT_LENGTH = 150


def make_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    """First ``length`` characters of the content, with ``...`` if cut."""
    if len(content) <= length:
        return content
    return content[:length] + "..."


class DocumentService(LoggerMixin):
    """
    Service for storing documents and reading them back in chunks.

    Example:
        >>> service = DocumentService(store)
        >>> document = service.ingest(1, "Field notes", text, model="gpt-4o")
        >>> [s.summary for s in service.get_chunk_summaries(document.id)]
    """

    def __init__(self, store: Optional[EntityStore] = None):
        """
        Initialize the document service.

        Args:
            store: Optional entity store. Uses the process-wide store if
                   not provided.
        """
        self.store = store or get_store()

    def ingest(
        self,
        user_id: int,
        title: str,
        content: str,
        model: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Document:
        """
        Chunk and store a document.

        Args:
            user_id: Owner of the document
            title: Document title, also used as the chunker's name hint
            content: Full document text
            model: Model the document is associated with
            metadata: Optional free-form metadata

        Returns:
            The stored document, including its chunks
        """
        chunks = chunk_document(content, name=title)
        document = self.store.create_document(NewDocument(
            user_id=user_id,
            title=title,
            content=content,
            excerpt=make_excerpt(content),
            model=model,
            metadata=metadata,
            chunks=[chunk.to_dict() for chunk in chunks],
        ))

        self.logger.info(
            f"Ingested document: id={document.id}, user={user_id}, chunks={len(chunks)}"
        )
        return document

    def get_chunks(self, document_id: str) -> Optional[List[Chunk]]:
        """
        Chunks of a stored document, or None if the document is absent.

        Documents stored without chunks are chunked on the fly.
        """
        document = self.store.get_document(document_id)
        if document is None:
            return None

        if document.chunks:
            return [Chunk.from_dict(data) for data in document.chunks]

        self.logger.debug(f"Document {document_id} has no stored chunks, chunking content")
        return chunk_document(document.content, name=document.title)

    def get_chunk_summaries(self, document_id: str) -> Optional[List[ChunkSummary]]:
        chunks = self.get_chunks(document_id)
        if chunks is None:
            return None
        return summarize_chunks(chunks)
