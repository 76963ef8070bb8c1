"""
Heading detection for document units.

Matchers are tried in order and the first match wins:
1. markdown   - ``# Title`` .. ``###### Title``
2. numbered   - ``3. Results`` or ``12 Methods`` (number, then a capitalized word)
3. all_caps   - a short ALL-CAPS line such as ``ABSTRACT``
"""
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple, Union


@dataclass(frozen=True)
class Heading:
    """A unit recognized as a heading, with its marker stripped."""
    text: str
    matcher: str


@dataclass(frozen=True)
class NotHeading:
    pass


NOT_HEADING = NotHeading()

HeadingMatch = Union[Heading, NotHeading]


@dataclass(frozen=True)
class HeadingMatcher:
    """
    One named heading rule.

    ``pattern`` must capture the heading in group 1; ``strip`` removes
    the structural marker from that capture.
    """
    name: str
    pattern: Pattern[str]
    strip: Optional[Pattern[str]] = None

    def match(self, unit: str) -> Optional[Heading]:
        found = self.pattern.match(unit)
        if not found:
            return None
        text = found.group(1)
        if self.strip is not None:
            text = self.strip.sub("", text)
        return Heading(text=text.strip(), matcher=self.name)


MARKDOWN = HeadingMatcher(
    name="markdown",
    pattern=re.compile(r"^#{1,6}\s+(.+)"),
)

NUMBERED = HeadingMatcher(
    name="numbered",
    pattern=re.compile(r"^(\d+\.?\s+[A-Z][^.]*?)(?:\n|$)"),
    strip=re.compile(r"^\d+\.?\s*"),
)

# 4 to 29 characters, starting with a capital letter
ALL_CAPS = HeadingMatcher(
    name="all_caps",
    pattern=re.compile(r"^([A-Z][A-Z\s]{3,28})(?:\n|$)"),
)

HEADING_MATCHERS: Tuple[HeadingMatcher, ...] = (MARKDOWN, NUMBERED, ALL_CAPS)


def detect_heading(unit: str, matchers: Sequence[HeadingMatcher] = HEADING_MATCHERS) -> HeadingMatch:
    """
    Classify a unit as a heading or not.

    Args:
        unit: Paragraph or sentence, already stripped
        matchers: Rules in priority order

    Returns:
        Heading with the extracted text, or NOT_HEADING
    """
    for matcher in matchers:
        heading = matcher.match(unit)
        if heading is not None:
            return heading
    return NOT_HEADING
