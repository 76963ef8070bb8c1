"""Tests for heading detection."""

import pytest

from docvault.chunking.headings import (
    ALL_CAPS,
    MARKDOWN,
    NOT_HEADING,
    Heading,
    detect_heading,
)


@pytest.mark.parametrize(
    "unit, expected",
    [
        ("# Overview", Heading("Overview", "markdown")),
        ("### Results and discussion", Heading("Results and discussion", "markdown")),
        ("1. Introduction", Heading("Introduction", "numbered")),
        ("12 Methods", Heading("Methods", "numbered")),
        ("ABSTRACT", Heading("ABSTRACT", "all_caps")),
        ("RELATED WORK", Heading("RELATED WORK", "all_caps")),
    ],
)
def test_headings(unit, expected):
    assert detect_heading(unit) == expected


@pytest.mark.parametrize(
    "unit",
    [
        "Plain prose that happens to be short.",
        "ABC",
        "THIS LINE IS FAR TOO LONG TO BE A HEADING",
        "2024 was a good year.",
        "#hashtag without a space",
        "",
    ],
)
def test_not_headings(unit):
    assert detect_heading(unit) is NOT_HEADING


def test_heading_line_followed_by_body():
    heading = detect_heading("METHODS\nWe sampled forty households.")

    assert heading == Heading("METHODS", "all_caps")


def test_matchers_in_priority_order():
    assert detect_heading("# ABSTRACT").matcher == "markdown"
    assert detect_heading("# ABSTRACT", matchers=(ALL_CAPS,)) is NOT_HEADING
    assert MARKDOWN.match("ABSTRACT") is None
