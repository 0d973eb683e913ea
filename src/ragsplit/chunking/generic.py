"""
Generic chapter/chunk segmentation for plain text and Markdown.

Two passes share the same logic with different budgets: the document is cut
into chapters, each chapter into chunks. A pass uses the detected heading
structure when there is one and falls back to greedy paragraph packing
otherwise.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.config import SETTINGS, Settings
from ..core.errors import MissingDocumentTextError
from ..core.models import Budget, SourceDocument, StructuralMarker, TextUnit, UnitKind
from ..obs.events import emit_event
from .base import Segmenter
from .boundaries import normalize_text, split_lines
from .detector import TitleDetector
from .packing import PackedUnit, pack_paragraphs, part_title, repair_units
from .tokens import (
    FallbackTokenCounter,
    HeuristicTokenCounter,
    TokenCounter,
    get_token_counter,
)

STRATEGY_SINGLE = "single"
STRATEGY_STRUCTURAL = "structural"
STRATEGY_SIZED = "sized"


class GenericSegmenter(Segmenter):
    """Segment a SourceDocument into chapters, and chapters into chunks."""

    def __init__(
        self,
        chapter_budget: Optional[Budget] = None,
        chunk_budget: Optional[Budget] = None,
        token_counter: Optional[TokenCounter] = None,
        settings: Optional[Settings] = None,
        detector: Optional[TitleDetector] = None,
        single_chapter_threshold: Optional[int] = None,
        profile: Optional[str] = None,
    ):
        self.settings = settings or SETTINGS
        self.chapter_budget = chapter_budget or self.settings.chapter_budget()
        self.chunk_budget = chunk_budget or self.settings.chunk_budget()
        self.chars_per_token = self.settings.CHARS_PER_TOKEN
        self.slack_ratio = self.settings.MERGE_SLACK_RATIO
        self.profile = profile

        counter = token_counter or get_token_counter(settings=self.settings)
        if not isinstance(counter, (FallbackTokenCounter, HeuristicTokenCounter)):
            counter = FallbackTokenCounter(
                counter, HeuristicTokenCounter(self.chars_per_token)
            )
        self.counter = counter

        self.detector = detector or TitleDetector(self.settings.MARKER_MERGE_DISTANCE)

        threshold = single_chapter_threshold
        if threshold is None:
            threshold = self.settings.SINGLE_CHAPTER_THRESHOLD
        if threshold is None:
            threshold = self.chapter_budget.ideal_tokens
        self.single_chapter_threshold = threshold

    @property
    def name(self) -> str:
        return "generic"

    def count(self, text: str) -> int:
        return self.counter.count_tokens(text, self.profile)

    def segment(
        self, document: SourceDocument, with_chunks: bool = True
    ) -> List[TextUnit]:
        """
        Split a document into ordered chapters.

        Args:
            document: Source document; ``text`` must not be None
            with_chunks: Also split every chapter into chunks

        Returns:
            Chapters with 1-based ``order_index``; empty for blank text

        Raises:
            MissingDocumentTextError: document or its text is missing
        """
        if document is None or document.text is None:
            emit_event("segment.error", reason="missing_text")
            raise MissingDocumentTextError("document has no text to segment")

        text = normalize_text(document.text)
        if not text:
            emit_event("segment.empty", level="WARNING", doc_ref=document.doc_ref)
            return []

        emit_event(
            "segment.start",
            doc_ref=document.doc_ref,
            chars=len(text),
            counter=self.counter.name,
        )

        drafts, strategy = self._split(
            text,
            self.chapter_budget,
            base_title=document.title,
            threshold=self.single_chapter_threshold,
        )

        chapters: List[TextUnit] = []
        for index, draft in enumerate(drafts, start=1):
            chapter = TextUnit(
                title=draft.title,
                content=draft.content,
                order_index=index,
                kind=UnitKind.CHAPTER,
                token_count=draft.token_count,
                parent_ref=document.doc_ref,
                metadata=document.metadata,
            )
            if with_chunks:
                chunks = self.chunk_chapter(chapter, source_metadata=document.metadata)
                chapter = chapter._replace(chunks=tuple(chunks))
            chapters.append(chapter)

        emit_event(
            "segment.complete",
            doc_ref=document.doc_ref,
            strategy=strategy,
            chapters=len(chapters),
            chunks=sum(len(c.chunks) for c in chapters),
            total_tokens=sum(c.token_count for c in chapters),
        )
        return chapters

    def chunk_chapter(
        self,
        chapter: TextUnit,
        source_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[TextUnit]:
        """
        Split one chapter into chunks using the chunk budget.

        Chunk metadata is a fresh dict: the source metadata (defaults to the
        chapter's) plus parent chapter title and index, the chunk order and,
        for size-based splits, the number of sibling chunks.
        """
        if source_metadata is None:
            source_metadata = chapter.metadata

        drafts, strategy = self._split(
            chapter.content,
            self.chunk_budget,
            base_title=chapter.title,
            threshold=self.chunk_budget.ideal_tokens,
        )
        kind = (
            UnitKind.CHUNK_STRUCTURAL
            if strategy == STRATEGY_STRUCTURAL
            else UnitKind.CHUNK_SIZED
        )

        chunks: List[TextUnit] = []
        for index, draft in enumerate(drafts, start=1):
            metadata: Dict[str, Any] = dict(source_metadata or {})
            metadata.update(
                parent_chapter_title=chapter.title,
                parent_chapter_index=chapter.order_index,
                order_index=index,
            )
            if kind == UnitKind.CHUNK_SIZED:
                metadata["total_units_in_parent"] = len(drafts)
            if draft.tail_small:
                metadata["tail_small"] = True

            chunks.append(
                TextUnit(
                    title=draft.title,
                    content=draft.content,
                    order_index=index,
                    kind=kind,
                    token_count=draft.token_count,
                    parent_ref=None,
                    metadata=metadata,
                )
            )

        emit_event(
            "segment.chunks",
            level="DEBUG",
            chapter_index=chapter.order_index,
            strategy=strategy,
            chunks=len(chunks),
        )
        return chunks

    def _split(
        self,
        text: str,
        budget: Budget,
        base_title: Optional[str],
        threshold: int,
    ) -> Tuple[List[PackedUnit], str]:
        """Run one segmentation pass and report which branch produced it."""
        total = self.count(text)
        if total < threshold:
            return [PackedUnit(text, total, base_title)], STRATEGY_SINGLE

        lines = split_lines(text)
        markers = self.detector.detect(lines)
        spans = marker_spans(lines, markers, base_title)

        if len(spans) >= 2:
            units: List[PackedUnit] = []
            for title, content in spans:
                tokens = self.count(content)
                if tokens > budget.max_tokens:
                    parts = self._pack(content, budget)
                    units.extend(
                        part._replace(title=part_title(title, n))
                        for n, part in enumerate(parts, start=1)
                    )
                else:
                    units.append(PackedUnit(content, tokens, title))
            return self._repair(units, budget), STRATEGY_STRUCTURAL

        base = base_title or (markers[0].title if markers else None)
        units = self._repair(self._pack(text, budget), budget)
        return [
            unit._replace(title=part_title(base, n))
            for n, unit in enumerate(units, start=1)
        ], STRATEGY_SIZED

    def _pack(self, text: str, budget: Budget) -> List[PackedUnit]:
        return pack_paragraphs(
            text, budget, self.counter, self.chars_per_token, self.profile
        )

    def _repair(self, units: List[PackedUnit], budget: Budget) -> List[PackedUnit]:
        return repair_units(units, budget, self.counter, self.slack_ratio, self.profile)


def marker_spans(
    lines: Sequence[str],
    markers: Sequence[StructuralMarker],
    preamble_title: Optional[str] = None,
) -> List[Tuple[Optional[str], str]]:
    """
    Cut lines into (title, content) spans at each marker.

    Each span runs from its marker line to the line before the next marker.
    Non-blank text before the first marker becomes a leading span titled
    ``preamble_title``. Blank spans are dropped.
    """
    if not markers:
        return []

    spans: List[Tuple[Optional[str], str]] = []
    preamble = "\n".join(lines[: markers[0].line_position]).strip()
    if preamble:
        spans.append((preamble_title, preamble))

    for i, marker in enumerate(markers):
        end = (
            markers[i + 1].line_position if i + 1 < len(markers) else len(lines)
        )
        content = "\n".join(lines[marker.line_position : end]).strip()
        if content:
            spans.append((marker.title, content))

    return spans
