"""
Title/structure detection over line-oriented text.
"""

import re
import unicodedata
from typing import List, Optional, Sequence

from ..core.models import StructuralMarker

MARKDOWN_HEADING = re.compile(r"^(#{1,6})\s+(\S.*)$")
NUMBERED_HEADING = re.compile(r"^\d+[.)]\s+\S")
WIKI_HEADING = re.compile(r"^(={2,6})\s*([^=\s](?:.*?[^=\s])?)\s*\1$")
BOLD_TITLE = re.compile(r"^'''([^'].*?)'''$")

# Matched against the accent-stripped, lowercased line
_INDEX = r"(?:[ivxlcdm]+|\d+[ºo°]?|unic[oa])"
LEGAL_PATTERNS = [
    (re.compile(rf"^livro\s+{_INDEX}\b"), "livro", 1),
    (re.compile(rf"^titulo\s+{_INDEX}\b"), "titulo", 2),
    (re.compile(rf"^capitulo\s+{_INDEX}\b"), "capitulo", 3),
    (re.compile(rf"^secao\s+{_INDEX}\b"), "secao", 4),
    (re.compile(rf"^subsecao\s+{_INDEX}\b"), "subsecao", 5),
    (re.compile(r"^(?:art\.|artigo)\s*\d+"), "artigo", 6),
]

LEGAL_TAGS = [tag for _, tag, _ in LEGAL_PATTERNS]


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _is_blank(lines: Sequence[str], index: int) -> bool:
    return 0 <= index < len(lines) and not lines[index].strip()


def match_legal(line: str) -> Optional[StructuralMarker]:
    """Match a legal hierarchy keyword line (book..article)."""
    folded = strip_accents(line).lower()
    for pattern, tag, level in LEGAL_PATTERNS:
        if pattern.match(folded):
            return StructuralMarker(tag=tag, level=level, title=line, line_position=0)
    return None


def match_wiki(line: str) -> Optional[StructuralMarker]:
    """Match a MediaWiki `== heading ==` or a `'''bold'''` title line."""
    heading = WIKI_HEADING.match(line)
    if heading:
        level = len(heading.group(1))
        tag = "wiki-section" if level == 2 else "wiki-subsection"
        return StructuralMarker(
            tag=tag, level=level, title=heading.group(2), line_position=0
        )

    bold = BOLD_TITLE.match(line)
    if bold:
        return StructuralMarker(
            tag="bold-title", level=4, title=bold.group(1).strip(), line_position=0
        )
    return None


class TitleDetector:
    """
    Emit ordered structural markers for a sequence of lines.

    Rules are applied per line in priority order: Markdown heading, wiki
    heading or bold title line, legal hierarchy keyword (only in legal
    context), uppercase line between blank lines, numbered heading. Markers
    closer than ``merge_distance`` lines to the previous marker are folded
    into it (title + subtitle).
    """

    def __init__(self, merge_distance: int = 3):
        self.merge_distance = merge_distance

    def match_line(
        self, lines: Sequence[str], index: int, legal: bool = False
    ) -> Optional[StructuralMarker]:
        line = lines[index].strip()
        if not line:
            return None

        md = MARKDOWN_HEADING.match(line)
        if md:
            level = len(md.group(1))
            return StructuralMarker(
                tag=f"h{level}",
                level=level,
                title=md.group(2).strip(),
                line_position=index,
            )

        wiki = match_wiki(line)
        if wiki:
            return wiki._replace(line_position=index)

        if legal:
            marker = match_legal(line)
            if marker:
                return marker._replace(line_position=index)

        if (
            line.isupper()
            and _is_blank(lines, index - 1)
            and _is_blank(lines, index + 1)
        ):
            return StructuralMarker(tag="h1", level=1, title=line, line_position=index)

        if NUMBERED_HEADING.match(line):
            return StructuralMarker(
                tag="numbered", level=1, title=line, line_position=index
            )

        return None

    def detect(
        self,
        lines: Sequence[str],
        legal: bool = False,
        merge_distance: Optional[int] = None,
    ) -> List[StructuralMarker]:
        """
        Detect structural markers.

        Args:
            lines: Document lines in order
            legal: Apply legal hierarchy keywords (legal segmenter context)
            merge_distance: Override the title/subtitle merge window; 0
                disables merging

        Returns:
            Markers sorted by line position with span lengths filled in
        """
        found: List[StructuralMarker] = []
        for index in range(len(lines)):
            marker = self.match_line(lines, index, legal=legal)
            if marker is not None:
                found.append(marker)

        distance = self.merge_distance if merge_distance is None else merge_distance
        merged = merge_adjacent(found, distance) if distance > 0 else found
        return with_span_lengths(merged, len(lines))


def merge_adjacent(
    markers: List[StructuralMarker], distance: int
) -> List[StructuralMarker]:
    """Fold markers within ``distance`` lines of the current one into it."""
    merged: List[StructuralMarker] = []
    for marker in markers:
        if merged and marker.line_position - merged[-1].line_position <= distance:
            head = merged[-1]
            merged[-1] = head._replace(title=f"{head.title}\n{marker.title}")
        else:
            merged.append(marker)
    return merged


def with_span_lengths(
    markers: List[StructuralMarker], total_lines: int
) -> List[StructuralMarker]:
    result = []
    for i, marker in enumerate(markers):
        end = markers[i + 1].line_position if i + 1 < len(markers) else total_lines
        result.append(marker._replace(span_length=max(0, end - marker.line_position)))
    return result


def detect_titles(
    lines: Sequence[str], legal: bool = False, merge_distance: int = 3
) -> List[StructuralMarker]:
    """Module-level convenience wrapper around :class:`TitleDetector`."""
    return TitleDetector(merge_distance=merge_distance).detect(lines, legal=legal)
