"""
Chunking Package - Split long documents into titled chunks.

Example:
    >>> from docvault.chunking import chunk_document
    >>> for chunk in chunk_document(text, name="report.txt"):
    ...     print(chunk.title, chunk.word_count)
"""
from docvault.chunking.chunker import (
    DEFAULT_SIZES,
    Chunk,
    ChunkSizes,
    chunk_document,
    count_words,
    merge_small_chunks,
)
from docvault.chunking.headings import (
    HEADING_MATCHERS,
    NOT_HEADING,
    Heading,
    HeadingMatcher,
    detect_heading,
)
from docvault.chunking.summaries import ChunkSummary, summarize_chunks

__all__ = [
    "Chunk",
    "ChunkSizes",
    "DEFAULT_SIZES",
    "chunk_document",
    "count_words",
    "merge_small_chunks",
    "Heading",
    "HeadingMatcher",
    "HEADING_MATCHERS",
    "NOT_HEADING",
    "detect_heading",
    "ChunkSummary",
    "summarize_chunks",
]
