from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Budget(BaseModel):
    """Token window (min, ideal, max) a segmentation pass must respect."""

    model_config = ConfigDict(frozen=True)

    min_tokens: int = Field(..., ge=0)
    ideal_tokens: int = Field(..., ge=0)
    max_tokens: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "Budget":
        if not self.min_tokens <= self.ideal_tokens <= self.max_tokens:
            raise ValueError(
                "budget must satisfy min_tokens <= ideal_tokens <= max_tokens "
                f"(got {self.min_tokens}/{self.ideal_tokens}/{self.max_tokens})"
            )
        return self


class UnitKind(str, Enum):
    """Kinds of emitted text units."""

    CHAPTER = "CHAPTER"
    CHUNK_STRUCTURAL = "CHUNK_STRUCTURAL"
    CHUNK_SIZED = "CHUNK_SIZED"


class StructuralMarker(NamedTuple):
    """A detected heading/title occurrence."""

    tag: str
    level: int
    title: str
    line_position: int
    span_length: int = 0


class TextUnit(NamedTuple):
    """A chapter or chunk produced by a segmentation pass."""

    title: Optional[str]
    content: str
    order_index: int
    kind: UnitKind
    token_count: int
    parent_ref: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    chunks: Tuple["TextUnit", ...] = ()


class LegalHierarchyPath(NamedTuple):
    """Normative hierarchy an article lives under."""

    book: Optional[str] = None
    title: Optional[str] = None
    chapter: Optional[str] = None
    section: Optional[str] = None
    subsection: Optional[str] = None
    article: str = ""

    def levels(self) -> List[Tuple[str, str]]:
        """Non-blank (prefix, value) pairs, outermost first."""
        pairs = [
            ("Livro", self.book),
            ("Título", self.title),
            ("Capítulo", self.chapter),
            ("Seção", self.section),
            ("Subseção", self.subsection),
        ]
        return [(prefix, value.strip()) for prefix, value in pairs if value and value.strip()]


class SourceDocument(BaseModel):
    """A plain text or Markdown document handed to the generic segmenter."""

    text: Optional[str] = None
    title: Optional[str] = None
    doc_ref: Optional[str] = None  # opaque id owned by the persistence layer
    metadata: Dict[str, Any] = {}


class ArticleRecord(BaseModel):
    """An article parsed upstream from a normative document."""

    article_id: str = ""
    book: Optional[str] = None
    title: Optional[str] = None
    chapter: Optional[str] = None
    section: Optional[str] = None
    subsection: Optional[str] = None
    annex: Optional[str] = None
    content: Optional[str] = None
    sub_texts: List[str] = []

    def hierarchy_path(self) -> LegalHierarchyPath:
        return LegalHierarchyPath(
            book=self.book,
            title=self.title,
            chapter=self.chapter,
            section=self.section,
            subsection=self.subsection,
            article=self.article_id,
        )


class NormativeDocument(BaseModel):
    """A normative (law, decree, resolution) as supplied by a loader."""

    identifier: str
    alias: Optional[str] = None
    url: Optional[str] = None
    doc_ref: Optional[str] = None
    publication_date: Optional[date] = None
    text: Optional[str] = None
    articles: List[ArticleRecord] = []
    associated_urls: List[str] = []  # regulations, associated, annexes
    metadata: Dict[str, Any] = {}


class LegalSegmentation(NamedTuple):
    """Chapters of one normative plus its recursively loaded annexes."""

    identifier: str
    publication_date: Optional[date]
    chapters: List[TextUnit]
    depth: int
    annexes: List["LegalSegmentation"]
