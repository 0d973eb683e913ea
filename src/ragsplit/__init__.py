"""
ragsplit: chapter and chunk segmentation for retrieval-augmented generation.

Generic text/Markdown documents are split by detected headings or by greedy
paragraph packing; normative (legal) documents are split article by article
along their legal hierarchy.
"""

from .chunking import (
    GenericSegmenter,
    LegalSegmenter,
    NormativeLoader,
    get_segmenter,
    identify_document_type,
)
from .core.models import (
    ArticleRecord,
    Budget,
    NormativeDocument,
    SourceDocument,
    TextUnit,
    UnitKind,
)

__version__ = "0.1.0"

__all__ = [
    "ArticleRecord",
    "Budget",
    "GenericSegmenter",
    "LegalSegmenter",
    "NormativeDocument",
    "NormativeLoader",
    "SourceDocument",
    "TextUnit",
    "UnitKind",
    "get_segmenter",
    "identify_document_type",
]
