"""
Segmentation strategies and their building blocks.

- Title/structure detection (Markdown, uppercase, numbered, legal hierarchy)
- Paragraph and sentence boundaries
- Greedy size-based packing with a small-unit repair pass
- Generic and legal segmenters behind a common strategy interface
- Two-tier token counting (tiktoken with a heuristic fallback)
- Assurance reporting
"""

from .assurance import build_segmentation_assurance, verify_reconstruction
from .base import Segmenter
from .boundaries import split_into_paragraphs, split_into_sentences
from .detector import TitleDetector, detect_titles
from .generic import GenericSegmenter
from .legal import LegalSegmenter, NormativeLoader, extract_articles, hierarchical_title
from .router import SegmenterKind, get_segmenter, identify_document_type
from .tokens import (
    CHARS_PER_TOKEN,
    FallbackTokenCounter,
    HeuristicTokenCounter,
    TiktokenCounter,
    TokenCounter,
    get_token_counter,
)

__all__ = [
    "CHARS_PER_TOKEN",
    "FallbackTokenCounter",
    "GenericSegmenter",
    "HeuristicTokenCounter",
    "LegalSegmenter",
    "NormativeLoader",
    "Segmenter",
    "SegmenterKind",
    "TiktokenCounter",
    "TitleDetector",
    "TokenCounter",
    "build_segmentation_assurance",
    "detect_titles",
    "extract_articles",
    "get_segmenter",
    "get_token_counter",
    "hierarchical_title",
    "identify_document_type",
    "split_into_paragraphs",
    "split_into_sentences",
    "verify_reconstruction",
]
