"""
Paragraph and sentence boundaries used as the fallback granularity.
"""

import re
from typing import List

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*(?:\n[ \t]*)+")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+|\n+")


def normalize_text(text: str) -> str:
    """Normalize text for consistent segmentation."""
    # Normalize line endings CRLF -> LF
    text = re.sub(r"\r\n?", "\n", text)
    # Remove any triple+ blank lines
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space, for coverage comparisons."""
    return " ".join(text.split())


def split_lines(text: str) -> List[str]:
    return text.split("\n") if text else []


def split_into_paragraphs(text: str) -> List[str]:
    """Split text on runs of two or more newlines, dropping empty blocks."""
    if not text:
        return []
    blocks = _PARAGRAPH_BREAK.split(text)
    return [block.strip() for block in blocks if block.strip()]


def split_into_sentences(text: str, max_chars: int) -> List[str]:
    """
    Split text into sentence buckets of at most ``max_chars`` characters.

    Fragments are cut on ``.!?`` followed by whitespace or on newlines, then
    greedily re-accumulated. A fragment longer than ``max_chars`` on its own
    is emitted as a single oversized bucket.

    Args:
        text: Text to split
        max_chars: Character budget per bucket

    Returns:
        List of buckets in input order
    """
    fragments = [f.strip() for f in _SENTENCE_BREAK.split(text) if f and f.strip()]
    if max_chars <= 0:
        return fragments

    buckets: List[str] = []
    current = ""
    for fragment in fragments:
        candidate = f"{current} {fragment}" if current else fragment
        if current and len(candidate) > max_chars:
            buckets.append(current)
            current = fragment
        else:
            current = candidate

    if current:
        buckets.append(current)

    return buckets


def count_words(text: str) -> int:
    return len(text.split())
