"""
Segmentation of normative documents (laws, decrees, resolutions).

Articles are grouped into chapters by their position in the normative
hierarchy (book, title, chapter, section, subsection). Every article also
yields chunks of its own, prefixed with the hierarchical title, and
associated normatives are loaded recursively up to a fixed depth.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.config import SETTINGS, Settings
from ..core.errors import MissingDocumentTextError
from ..core.models import (
    ArticleRecord,
    LegalHierarchyPath,
    LegalSegmentation,
    NormativeDocument,
    TextUnit,
    UnitKind,
)
from ..obs.events import emit_event
from .base import Segmenter
from .boundaries import normalize_text, split_lines
from .detector import TitleDetector, strip_accents
from .tokens import (
    FallbackTokenCounter,
    HeuristicTokenCounter,
    TokenCounter,
    get_token_counter,
)

HIERARCHY_TAGS = ["livro", "titulo", "capitulo", "secao", "subsecao"]
_HIERARCHY_FIELDS = {
    "livro": "book",
    "titulo": "title",
    "capitulo": "chapter",
    "secao": "section",
    "subsecao": "subsection",
}

_ARTICLE_ID = re.compile(r"^(?:art\.?|artigo)\s*(\d+[^\s.,:;-]*)", re.IGNORECASE)
_PARAGRAPH_LINE = re.compile(r"^(?:§|par[aá]grafo|par\.\s)", re.IGNORECASE)
_ENUMERATED_LINE = re.compile(
    r"^(?:[ivxlcdm]+\s*[-–—]|[a-z]\)|\d+[.)]\s)", re.IGNORECASE
)
_REPEALED_MARKERS = [
    "(vetad",
    "(revog",
    "(declarado inconstitucional",
    "(execucao suspensa pelo senado federal",
]


class NormativeLoader(ABC):
    """Fetches associated normatives (regulations, annexes) by URL."""

    @abstractmethod
    def load(self, url: str) -> NormativeDocument:
        """Load a normative; raise NormativeLoadError when it cannot."""


def hierarchical_title(path: LegalHierarchyPath, identifier: str) -> str:
    """
    Render the title shared by every article under ``path``.

    Non-blank levels become ``"Prefix: value"`` lines prefixed with the
    normative identifier; with no levels the identifier alone is returned.
    """
    levels = path.levels()
    if not levels:
        return identifier
    body = "\n".join(f"{prefix}: {value}" for prefix, value in levels)
    return f"{identifier} - {body}"


def _strip_trailing_comments(line: str) -> str:
    text = line.strip()
    while text.endswith(")"):
        start = text.rfind("(")
        if start < 0:
            break
        text = text[:start].strip()
    return text


def _is_repealed(line: str) -> bool:
    folded = strip_accents(line).lower()
    return any(marker in folded for marker in _REPEALED_MARKERS)


def _enumerates(line: str) -> bool:
    return line.rstrip().endswith(":")


def derive_sub_texts(content: str) -> List[str]:
    """
    Derive standalone sub-texts from an article body.

    The caput comes first. Paragraph lines stand alone; incisos and alineas
    are prefixed with the line that enumerates them (a caput, paragraph or
    inciso ending in ``:``). Vetoed and repealed lines are skipped.
    """
    lines = [line for line in content.split("\n") if line.strip()]
    if not lines:
        return []

    caput = _strip_trailing_comments(lines[0])
    results = [caput]
    prefix_article = caput if _enumerates(caput) else ""
    prefix_paragraph = ""
    prefix_item = ""

    for raw in lines[1:]:
        if _is_repealed(raw):
            continue
        line = _strip_trailing_comments(raw)
        if not line:
            continue

        if _PARAGRAPH_LINE.match(line):
            prefix_article = prefix_paragraph = prefix_item = ""
            if _enumerates(line):
                prefix_paragraph = line
            else:
                results.append(line)
            continue

        if _ENUMERATED_LINE.match(line) and _enumerates(line):
            prefix_item = line
            continue

        parts = [prefix_article, prefix_paragraph, prefix_item, line]
        results.append(" ".join(p for p in parts if p))

    return results


def _hierarchy_label(line: str, name_lines: List[str]) -> str:
    """Label of a hierarchy heading: its index plus an optional name."""
    words = line.strip().split(None, 1)
    label = words[1].strip() if len(words) > 1 else line.strip()
    name = " ".join(n.strip() for n in name_lines if n.strip())
    return f"{label} - {name}" if name else label


def extract_articles(
    text: str, detector: Optional[TitleDetector] = None
) -> List[ArticleRecord]:
    """
    Parse articles and their hierarchy from raw normative text.

    Book/title/chapter/section/subsection headings set the running
    hierarchy; a heading resets every level below it. An article runs from
    its ``Art.`` line to the next article or heading.
    """
    detector = detector or TitleDetector()
    lines = split_lines(normalize_text(text or ""))
    markers = [
        m
        for m in detector.detect(lines, legal=True, merge_distance=0)
        if m.tag in HIERARCHY_TAGS or m.tag == "artigo"
    ]

    hierarchy: Dict[str, Optional[str]] = {tag: None for tag in HIERARCHY_TAGS}
    articles: List[ArticleRecord] = []

    for i, marker in enumerate(markers):
        end = markers[i + 1].line_position if i + 1 < len(markers) else len(lines)
        body = lines[marker.line_position + 1 : end]

        if marker.tag != "artigo":
            position = HIERARCHY_TAGS.index(marker.tag)
            hierarchy[marker.tag] = _hierarchy_label(marker.title, body)
            for lower in HIERARCHY_TAGS[position + 1 :]:
                hierarchy[lower] = None
            continue

        match = _ARTICLE_ID.match(marker.title.strip())
        article_id = f"Art. {match.group(1)}" if match else marker.title.strip()
        content = "\n".join(
            line.strip()
            for line in lines[marker.line_position : end]
            if line.strip()
        )
        fields = {_HIERARCHY_FIELDS[tag]: value for tag, value in hierarchy.items()}
        articles.append(ArticleRecord(article_id=article_id, content=content, **fields))

    return articles


class LegalSegmenter(Segmenter):
    """Segment normative documents article by article."""

    def __init__(
        self,
        loader: Optional[NormativeLoader] = None,
        token_counter: Optional[TokenCounter] = None,
        settings: Optional[Settings] = None,
        max_depth: Optional[int] = None,
        max_chunk_tokens: Optional[int] = None,
        derive_sub_texts: Optional[bool] = None,
        detector: Optional[TitleDetector] = None,
    ):
        self.settings = settings or SETTINGS
        self.loader = loader
        self.chars_per_token = self.settings.CHARS_PER_TOKEN

        counter = token_counter or get_token_counter(settings=self.settings)
        if not isinstance(counter, (FallbackTokenCounter, HeuristicTokenCounter)):
            counter = FallbackTokenCounter(
                counter, HeuristicTokenCounter(self.chars_per_token)
            )
        self.counter = counter

        self.max_depth = (
            self.settings.LEGAL_MAX_DEPTH if max_depth is None else max_depth
        )
        self.max_chunk_tokens = max_chunk_tokens or self.settings.LEGAL_MAX_CHUNK_TOKENS
        self.derive_sub_texts = (
            self.settings.LEGAL_DERIVE_SUB_TEXTS
            if derive_sub_texts is None
            else derive_sub_texts
        )
        self.detector = detector or TitleDetector(self.settings.MARKER_MERGE_DISTANCE)

    @property
    def name(self) -> str:
        return "legal"

    @property
    def max_chunk_chars(self) -> int:
        return self.max_chunk_tokens * self.chars_per_token

    def segment(self, document: NormativeDocument) -> List[TextUnit]:
        """
        Chapters (with their article chunks) of one normative document.

        Raises:
            MissingDocumentTextError: no text and no parsed articles
        """
        if document is None or (document.text is None and not document.articles):
            emit_event("legal.error", reason="missing_text")
            raise MissingDocumentTextError("normative document has no text or articles")

        articles = document.articles or extract_articles(document.text, self.detector)
        identifier = document.identifier or document.alias or ""

        emit_event(
            "legal.start",
            identifier=identifier,
            articles=len(articles),
        )

        groups: List[Dict[str, Any]] = []
        for article in articles:
            content = (article.content or "").strip()
            if not content:
                emit_event(
                    "legal.article.skipped",
                    level="WARNING",
                    identifier=identifier,
                    article_id=article.article_id,
                    reason="blank_content",
                )
                continue

            title = hierarchical_title(article.hierarchy_path(), identifier)
            if groups and groups[-1]["title"] == title:
                groups[-1]["articles"].append((article, content))
            else:
                groups.append({"title": title, "articles": [(article, content)]})

        chapters: List[TextUnit] = []
        for index, group in enumerate(groups, start=1):
            content = "\n".join(content for _, content in group["articles"])
            chapter = TextUnit(
                title=group["title"],
                content=content,
                order_index=index,
                kind=UnitKind.CHAPTER,
                token_count=self.counter.count_tokens(content),
                parent_ref=document.doc_ref,
                metadata=document.metadata,
            )
            chunks = self._article_chunks(chapter, group["articles"], document.metadata)
            chapters.append(chapter._replace(chunks=tuple(chunks)))

        emit_event(
            "legal.complete",
            identifier=identifier,
            chapters=len(chapters),
            chunks=sum(len(c.chunks) for c in chapters),
        )
        return chapters

    def _truncate(self, text: str, article_id: str) -> str:
        if len(text) <= self.max_chunk_chars:
            return text
        emit_event(
            "legal.article.truncated",
            level="DEBUG",
            article_id=article_id,
            chars=len(text),
            max_chars=self.max_chunk_chars,
        )
        return text[: self.max_chunk_chars]

    def _article_chunks(
        self,
        chapter: TextUnit,
        articles: List[Any],
        source_metadata: Dict[str, Any],
    ) -> List[TextUnit]:
        chunks: List[TextUnit] = []

        def add(text: str, article: ArticleRecord, sub_text: bool) -> None:
            body = f"{chapter.title}\n{self._truncate(text, article.article_id)}"
            metadata = dict(source_metadata or {})
            metadata.update(
                parent_chapter_title=chapter.title,
                parent_chapter_index=chapter.order_index,
                order_index=len(chunks) + 1,
                article_id=article.article_id,
                sub_text=sub_text,
            )
            chunks.append(
                TextUnit(
                    title=chapter.title,
                    content=body,
                    order_index=len(chunks) + 1,
                    kind=UnitKind.CHUNK_STRUCTURAL,
                    token_count=self.counter.count_tokens(body),
                    parent_ref=None,
                    metadata=metadata,
                )
            )

        for article, content in articles:
            add(content, article, sub_text=False)
            sub_texts = list(article.sub_texts)
            # Single-line articles have nothing to split
            if not sub_texts and self.derive_sub_texts and "\n" in content:
                sub_texts = derive_sub_texts(content)
            for sub_text in sub_texts:
                if sub_text and sub_text.strip():
                    add(sub_text.strip(), article, sub_text=True)

        return chunks

    def load(
        self, document: NormativeDocument, depth: int = 0
    ) -> Optional[LegalSegmentation]:
        """
        Segment a normative and, recursively, its associated normatives.

        Args:
            document: The normative at this level
            depth: Nesting level; 0 for the primary document

        Returns:
            The segmentation tree, or None once ``depth`` reaches the cap
        """
        if depth >= self.max_depth:
            emit_event(
                "legal.depth_limit",
                identifier=document.identifier if document else None,
                depth=depth,
                max_depth=self.max_depth,
            )
            return None

        chapters = self.segment(document)

        annexes: List[LegalSegmentation] = []
        for url in document.associated_urls:
            try:
                annex = self.load_url(url, depth + 1)
            except Exception as e:
                emit_event(
                    "legal.associated.error",
                    level="WARNING",
                    identifier=document.identifier,
                    url=url,
                    depth=depth + 1,
                    error=str(e),
                )
                continue
            if annex is not None:
                annexes.append(annex)

        return LegalSegmentation(
            identifier=document.identifier,
            publication_date=document.publication_date,
            chapters=chapters,
            depth=depth,
            annexes=annexes,
        )

    def load_url(self, url: str, depth: int = 0) -> Optional[LegalSegmentation]:
        """Fetch a normative through the loader and segment it at ``depth``."""
        if depth >= self.max_depth:
            emit_event(
                "legal.depth_limit", url=url, depth=depth, max_depth=self.max_depth
            )
            return None
        if self.loader is None:
            raise ValueError("LegalSegmenter has no NormativeLoader configured")

        emit_event("legal.load.start", level="DEBUG", url=url, depth=depth)
        document = self.loader.load(url)
        return self.load(document, depth)
