"""
Document Chunker - Split long text into titled, size-balanced chunks.

The chunker works on units (paragraphs, or sentences when a document has
too few paragraphs to reach the target chunk count) and folds them into
chunks:

1. Target count  = ceil(words / target), optimal size = ceil(words / count)
2. Each unit may be a heading; a heading titles the chunk it opens
3. A chunk closes when a heading arrives after ``minimum`` words, when
   the next unit would push it past ``maximum``, or when it is already
   past the optimal size and the next unit is substantial
4. A final pass merges an undersized chunk into its successor when the
   result stays within ``maximum``

Offsets are exact: every unit is a span of the original text, so
``text[chunk.start_position:chunk.end_position]`` covers the chunk.
"""
import math
import re
from dataclasses import dataclass, field, replace
from functools import partial, reduce
from typing import Any, Dict, List, Optional, Tuple

from docvault.chunking.headings import Heading, detect_heading
from docvault.core.logging_config import get_logger

logger = get_logger(__name__)

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

DEFAULT_TITLE = "Introduction"
MAX_TITLE_LENGTH = 100
SUBSTANTIAL_UNIT_CHARS = 100
MIN_SENTENCE_CHARS = 20
CHUNK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class ChunkSizes:
    """Chunk size limits, in words."""
    target: int = 800
    maximum: int = 1200
    minimum: int = 400


DEFAULT_SIZES = ChunkSizes()


def count_words(text: str) -> int:
    return len(text.split())


@dataclass(frozen=True)
class Unit:
    """A stripped paragraph or sentence and its span in the original text."""
    text: str
    start: int
    end: int

    @property
    def word_count(self) -> int:
        return count_words(self.text)


@dataclass(frozen=True)
class Chunk:
    title: str
    content: str
    start_position: int
    end_position: int

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "start_position": self.start_position,
            "end_position": self.end_position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        return cls(
            title=data["title"],
            content=data["content"],
            start_position=data.get("start_position", 0),
            end_position=data.get("end_position", 0),
        )


# ==================== UNITS ====================


def _unit(text: str, start: int, end: int) -> Optional[Unit]:
    piece = text[start:end]
    stripped = piece.strip()
    if not stripped:
        return None
    offset = start + len(piece) - len(piece.lstrip())
    return Unit(stripped, offset, offset + len(stripped))


def _split(text: str, separator: re.Pattern) -> List[Unit]:
    units = []
    position = 0
    for match in separator.finditer(text):
        units.append(_unit(text, position, match.start()))
        position = match.end()
    units.append(_unit(text, position, len(text)))
    return [unit for unit in units if unit is not None]


def _join(text: str, first: Unit, second: Unit) -> Unit:
    return Unit(text[first.start:second.end], first.start, second.end)


def _attach_fragments(text: str, units: List[Unit]) -> List[Unit]:
    """
    Fold sentences of MIN_SENTENCE_CHARS or fewer into a neighbour.

    A short fragment joins the preceding sentence, or the following one
    when nothing precedes it.
    """
    attached: List[Unit] = []
    leading: Optional[Unit] = None

    for unit in units:
        if len(unit.text) > MIN_SENTENCE_CHARS:
            if leading is not None:
                unit = _join(text, leading, unit)
                leading = None
            attached.append(unit)
        elif attached:
            attached[-1] = _join(text, attached[-1], unit)
        else:
            leading = unit if leading is None else _join(text, leading, unit)

    if leading is not None:
        attached.append(leading)
    return attached


def split_units(text: str, target_chunks: int) -> List[Unit]:
    """
    Paragraph units, or sentence units when paragraphs are too coarse.

    Args:
        text: Full document text
        target_chunks: Number of chunks the document should produce

    Returns:
        Units in document order
    """
    paragraphs = _split(text, PARAGRAPH_BREAK)
    if len(paragraphs) >= target_chunks / 2:
        return paragraphs

    logger.debug(
        f"[CHUNKER] Only {len(paragraphs)} paragraphs for {target_chunks} chunks, "
        f"splitting by sentences"
    )
    return _attach_fragments(text, _split(text, SENTENCE_BREAK))


# ==================== FOLD ====================


@dataclass(frozen=True)
class ChunkState:
    """
    Chunk construction state threaded through the fold.

    Attributes:
        title: Title of the chunk being built
        titled_by_heading: Whether ``title`` came from a heading
        buffer: Units of the chunk being built
        words: Word count of ``buffer``
        cursor: Offset just past the last consumed unit
        chunks: Closed chunks, in order
    """
    title: str = DEFAULT_TITLE
    titled_by_heading: bool = False
    buffer: Tuple[Unit, ...] = ()
    words: int = 0
    cursor: int = 0
    chunks: Tuple[Chunk, ...] = field(default_factory=tuple)


def _close(state: ChunkState) -> Chunk:
    return Chunk(
        title=state.title,
        content=CHUNK_SEPARATOR.join(unit.text for unit in state.buffer),
        start_position=state.buffer[0].start,
        end_position=state.buffer[-1].end,
    )


def _heading_title(unit: Unit) -> Tuple[bool, Optional[str]]:
    heading = detect_heading(unit.text)
    if not isinstance(heading, Heading):
        return False, None
    if heading.text and len(heading.text) < MAX_TITLE_LENGTH:
        return True, heading.text
    return True, None


def step(state: ChunkState, unit: Unit, sizes: ChunkSizes, optimal_size: int) -> ChunkState:
    """Consume one unit, closing the current chunk first when needed."""
    is_heading, heading_title = _heading_title(unit)
    unit_words = unit.word_count

    should_close = bool(state.buffer) and (
        (is_heading and state.words > sizes.minimum)
        or state.words + unit_words > sizes.maximum
        or (state.words > optimal_size and len(unit.text) > SUBSTANTIAL_UNIT_CHARS)
    )

    if should_close:
        chunks = state.chunks + (_close(state),)
        if heading_title is not None:
            title, titled_by_heading = heading_title, True
        else:
            title, titled_by_heading = f"Section {len(chunks) + 1}", False
        return ChunkState(
            title=title,
            titled_by_heading=titled_by_heading,
            buffer=(unit,),
            words=unit_words,
            cursor=unit.end,
            chunks=chunks,
        )

    title, titled_by_heading = state.title, state.titled_by_heading
    if heading_title is not None and not titled_by_heading:
        title, titled_by_heading = heading_title, True

    return replace(
        state,
        title=title,
        titled_by_heading=titled_by_heading,
        buffer=state.buffer + (unit,),
        words=state.words + unit_words,
        cursor=unit.end,
    )


def merge_small_chunks(chunks: List[Chunk], sizes: ChunkSizes = DEFAULT_SIZES) -> List[Chunk]:
    """
    Merge each undersized chunk (except the last) into the next one.

    A merge only happens when the combined chunk stays within
    ``sizes.maximum``; a merged chunk is not merged again.
    """
    balanced: List[Chunk] = []
    index = 0
    while index < len(chunks):
        chunk = chunks[index]
        if chunk.word_count < sizes.minimum and index < len(chunks) - 1:
            following = chunks[index + 1]
            if chunk.word_count + following.word_count <= sizes.maximum:
                balanced.append(Chunk(
                    title=chunk.title,
                    content=chunk.content + CHUNK_SEPARATOR + following.content,
                    start_position=chunk.start_position,
                    end_position=following.end_position,
                ))
                index += 2
                continue
        balanced.append(chunk)
        index += 1
    return balanced


def chunk_document(
    text: str,
    name: Optional[str] = None,
    sizes: ChunkSizes = DEFAULT_SIZES
) -> List[Chunk]:
    """
    Split a document into titled chunks.

    Args:
        text: Full document text
        name: Document name, used for logging only
        sizes: Chunk size limits in words

    Returns:
        Chunks in document order; empty for blank text

    Example:
        >>> chunks = chunk_document("# Overview\\n\\nShort body text.")
        >>> [(c.title, c.start_position) for c in chunks]
        [('Overview', 0)]
    """
    total_words = count_words(text)
    if total_words == 0:
        return []

    target_chunks = math.ceil(total_words / sizes.target)
    optimal_size = math.ceil(total_words / target_chunks)

    logger.info(
        f"[CHUNKER] {name or 'Document'} has {total_words} words, "
        f"creating ~{target_chunks} chunks of ~{optimal_size} words each"
    )

    units = split_units(text, target_chunks)
    state = reduce(partial(step, sizes=sizes, optimal_size=optimal_size), units, ChunkState())

    chunks = list(state.chunks)
    if state.buffer:
        chunks.append(_close(state))

    balanced = merge_small_chunks(chunks, sizes)

    logger.debug(
        "[CHUNKER] Chunk word counts: "
        + ", ".join(f"{chunk.title}: {chunk.word_count} words" for chunk in balanced)
    )
    return balanced
