"""
Chunk summaries - Cheap, deterministic one-line descriptions of chunks.
"""
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from docvault.chunking.chunker import Chunk

SENTENCE_END = re.compile(r"[.!?](?:\s|$)")
FIRST_SENTENCE_LIMIT = 150


@dataclass(frozen=True)
class ChunkSummary:
    index: int
    title: str
    word_count: int
    first_sentence: str
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def first_sentence(content: str, limit: int = FIRST_SENTENCE_LIMIT) -> str:
    """Text before the first sentence terminator, cut to ``limit`` characters."""
    head = SENTENCE_END.split(content.strip(), maxsplit=1)[0]
    return head[:limit].strip()


def summarize_chunks(chunks: Sequence[Chunk]) -> List[ChunkSummary]:
    """
    Summarize each chunk as ``"<title> (<n> words) - <first sentence>..."``.

    Args:
        chunks: Chunks in document order

    Returns:
        One summary per chunk, indexed from 0
    """
    summaries = []
    for index, chunk in enumerate(chunks):
        sentence = first_sentence(chunk.content)
        words = chunk.word_count
        summaries.append(ChunkSummary(
            index=index,
            title=chunk.title,
            word_count=words,
            first_sentence=sentence,
            summary=f"{chunk.title} ({words} words) - {sentence}...",
        ))
    return summaries
