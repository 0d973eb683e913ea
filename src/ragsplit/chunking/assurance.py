"""
Segmentation assurance and quality reporting.
"""

import statistics
from typing import Any, Dict, List, Optional, Sequence

from ..core.models import Budget, TextUnit, UnitKind
from .boundaries import normalize_whitespace, split_into_paragraphs, split_into_sentences

MAX_EXAMPLES = 10


def _token_stats(counts: List[int]) -> Dict[str, int]:
    return {
        "min": min(counts) if counts else 0,
        "median": int(statistics.median(counts)) if counts else 0,
        "p95": int(statistics.quantiles(counts, n=20)[18])
        if len(counts) > 20
        else (max(counts) if counts else 0),
        "max": max(counts) if counts else 0,
        "total": sum(counts),
    }


def is_irreducible(unit: TextUnit) -> bool:
    """True when the unit is a single paragraph holding a single sentence."""
    paragraphs = split_into_paragraphs(unit.content)
    if len(paragraphs) > 1:
        return False
    return len(split_into_sentences(unit.content, 0)) <= 1


def verify_reconstruction(chapters: Sequence[TextUnit], source_text: str) -> bool:
    """Chapter contents, concatenated in order, equal the source modulo whitespace."""
    rebuilt = " ".join(c.content for c in sorted(chapters, key=lambda c: c.order_index))
    return normalize_whitespace(rebuilt) == normalize_whitespace(source_text or "")


def _check_sequence(
    units: Sequence[TextUnit],
    budget: Budget,
    label: str,
    breaches: List[Dict[str, Any]],
    below_min: List[Dict[str, Any]],
) -> None:
    for position, unit in enumerate(units):
        example = {
            "unit": label,
            "title": unit.title,
            "order_index": unit.order_index,
            "token_count": unit.token_count,
        }
        if unit.token_count > budget.max_tokens and not is_irreducible(unit):
            breaches.append(example)
        # The final unit of a sequence may legitimately fall short
        if unit.token_count < budget.min_tokens and position < len(units) - 1:
            below_min.append(example)


def build_segmentation_assurance(
    chapters: Sequence[TextUnit],
    chapter_budget: Budget,
    chunk_budget: Budget,
    source_text: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build an assurance report for one segmented document.

    Args:
        chapters: Chapters (with chunks) as returned by a segmenter
        chapter_budget: Budget the chapters were produced with
        chunk_budget: Budget the chunks were produced with
        source_text: Original text; enables the coverage check

    Returns:
        Assurance report dictionary; ``status`` is ``PASS`` when there are
        no breaches, no misplaced small units and coverage holds
    """
    chunks = [chunk for chapter in chapters for chunk in chapter.chunks]

    kinds = {kind.value: 0 for kind in UnitKind}
    for unit in list(chapters) + chunks:
        kinds[UnitKind(unit.kind).value] += 1

    breaches: List[Dict[str, Any]] = []
    below_min: List[Dict[str, Any]] = []
    _check_sequence(chapters, chapter_budget, "chapter", breaches, below_min)
    for chapter in chapters:
        _check_sequence(chapter.chunks, chunk_budget, "chunk", breaches, below_min)

    coverage: Dict[str, Any] = {"checked": source_text is not None, "ok": True}
    if source_text is not None:
        coverage["ok"] = verify_reconstruction(chapters, source_text)

    status = "PASS" if not breaches and not below_min and coverage["ok"] else "FAIL"

    return {
        "budgets": {
            "chapter": chapter_budget.model_dump(),
            "chunk": chunk_budget.model_dump(),
        },
        "chapterTokenStats": _token_stats([c.token_count for c in chapters]),
        "chunkTokenStats": _token_stats([c.token_count for c in chunks]),
        "kinds": kinds,
        "breaches": {
            "count": len(breaches),
            "examples": breaches[:MAX_EXAMPLES],
        },
        "belowMin": {
            "count": len(below_min),
            "examples": below_min[:MAX_EXAMPLES],
        },
        "coverage": coverage,
        "status": status,
    }
