"""
Test segmentation assurance reporting.
"""

import pytest

from ragsplit.chunking.assurance import (
    build_segmentation_assurance,
    is_irreducible,
    verify_reconstruction,
)
from ragsplit.chunking.generic import GenericSegmenter
from ragsplit.core.models import Budget, SourceDocument, TextUnit, UnitKind

pytestmark = pytest.mark.unit


def _unit(content, tokens, index=1, kind=UnitKind.CHAPTER, chunks=()):
    return TextUnit(
        title=f"T{index}",
        content=content,
        order_index=index,
        kind=kind,
        token_count=tokens,
        chunks=tuple(chunks),
    )


def test_report_for_segmented_document(
    heuristic_counter, chapter_budget, chunk_budget, test_settings, make_paragraph
):
    text = "\n\n".join(make_paragraph(600, f"p{i}") for i in range(5))
    segmenter = GenericSegmenter(
        chapter_budget=chapter_budget,
        chunk_budget=chunk_budget,
        token_counter=heuristic_counter,
        settings=test_settings,
    )
    chapters = segmenter.segment(SourceDocument(text=text))

    report = build_segmentation_assurance(
        chapters, chapter_budget, chunk_budget, source_text=text
    )

    assert report["status"] == "PASS"
    assert report["kinds"]["CHAPTER"] == 2
    assert report["kinds"]["CHUNK_SIZED"] == sum(len(c.chunks) for c in chapters)
    assert report["chapterTokenStats"]["total"] == sum(c.token_count for c in chapters)
    assert report["chapterTokenStats"]["max"] == 451
    assert report["coverage"] == {"checked": True, "ok": True}
    assert report["breaches"]["count"] == 0
    assert report["budgets"]["chapter"]["ideal_tokens"] == 400


def test_breach_and_small_units_fail_status():
    budget = Budget(min_tokens=10, ideal_tokens=20, max_tokens=30)
    chapters = [
        _unit("tiny", 2, 1),
        _unit("First sentence. Second sentence.", 50, 2),
        _unit("last", 1, 3),
    ]

    report = build_segmentation_assurance(chapters, budget, budget)

    assert report["status"] == "FAIL"
    assert report["breaches"]["count"] == 1
    assert report["breaches"]["examples"][0]["order_index"] == 2
    # The final unit may fall short; only the first is reported
    assert report["belowMin"]["count"] == 1
    assert report["belowMin"]["examples"][0]["title"] == "T1"
    assert report["coverage"]["checked"] is False


def test_irreducible_unit_is_not_a_breach():
    budget = Budget(min_tokens=1, ideal_tokens=2, max_tokens=3)
    chapters = [_unit("one enormous sentence without any break", 99)]

    report = build_segmentation_assurance(chapters, budget, budget)

    assert report["breaches"]["count"] == 0
    assert report["status"] == "PASS"


def test_is_irreducible():
    assert is_irreducible(_unit("single sentence only", 5))
    assert not is_irreducible(_unit("One. Two.", 5))
    assert not is_irreducible(_unit("para one\n\npara two", 5))


def test_verify_reconstruction_detects_gaps():
    source = "Alpha beta.\n\nGamma delta."
    chapters = [_unit("Alpha beta.", 2, 1), _unit("Gamma  delta.", 3, 2)]

    assert verify_reconstruction(chapters, source)
    assert verify_reconstruction(list(reversed(chapters)), source)
    assert not verify_reconstruction(chapters[:1], source)


def test_empty_report():
    budget = Budget(min_tokens=1, ideal_tokens=2, max_tokens=3)
    report = build_segmentation_assurance([], budget, budget)

    assert report["chapterTokenStats"] == {
        "min": 0,
        "median": 0,
        "p95": 0,
        "max": 0,
        "total": 0,
    }
    assert report["status"] == "PASS"
