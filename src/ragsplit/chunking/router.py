"""
Routing of documents to segmentation strategies.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Union

from ..core.config import SETTINGS, BudgetRegistry, Settings
from ..obs.events import emit_event
from .base import Segmenter
from .detector import strip_accents
from .generic import GenericSegmenter
from .legal import LegalSegmenter, NormativeLoader
from .tokens import TokenCounter

__all__ = [
    "DOCUMENT_TYPES",
    "Segmenter",
    "SegmenterKind",
    "get_segmenter",
    "identify_document_type",
    "resolve_kind",
]


class SegmenterKind(str, Enum):
    GENERIC = "generic"
    LEGAL = "legal"


DEFAULT_DOCUMENT_TYPE = "generico"

# Content type -> segmentation strategy
DOCUMENT_TYPES: Dict[str, SegmenterKind] = {
    "normativo": SegmenterKind.LEGAL,
    "manual": SegmenterKind.GENERIC,
    "livro": SegmenterKind.GENERIC,
    "contrato": SegmenterKind.GENERIC,
    "nota_tecnica": SegmenterKind.GENERIC,
    "artigo": SegmenterKind.GENERIC,
    "wikipedia": SegmenterKind.GENERIC,
    "generico": SegmenterKind.GENERIC,
}


def identify_document_type(content: Optional[str]) -> str:
    """
    Guess the content type of a document from its text.

    Returns:
        One of the ``DOCUMENT_TYPES`` keys; ``"generico"`` when nothing
        matches or the content is empty
    """
    if not content or not content.strip():
        return DEFAULT_DOCUMENT_TYPE

    lowered = content.lower()
    folded = strip_accents(lowered)

    if ("artigo" in lowered and "lei" in lowered) or "decreto" in lowered or "resolucao" in folded:
        return "normativo"
    if "categoria:" in lowered or "{{" in content or ("==" in content and "===" in content):
        return "wikipedia"
    if "manual" in lowered or "instrucoes" in folded or "procedimento" in lowered:
        return "manual"
    return DEFAULT_DOCUMENT_TYPE


def resolve_kind(kind_or_type: Union[SegmenterKind, str, None]) -> SegmenterKind:
    """Map a strategy kind or a content type name to a strategy kind."""
    if isinstance(kind_or_type, SegmenterKind):
        return kind_or_type
    if kind_or_type is None:
        return SegmenterKind.GENERIC

    key = kind_or_type.strip().lower()
    for kind in SegmenterKind:
        if key == kind.value:
            return kind

    kind = DOCUMENT_TYPES.get(key)
    if kind is None:
        emit_event(
            "router.unknown_type",
            level="WARNING",
            document_type=kind_or_type,
            fallback=SegmenterKind.GENERIC.value,
        )
        return SegmenterKind.GENERIC
    return kind


def get_segmenter(
    kind_or_type: Union[SegmenterKind, str, None] = None,
    token_counter: Optional[TokenCounter] = None,
    settings: Optional[Settings] = None,
    loader: Optional[NormativeLoader] = None,
    registry: Optional[BudgetRegistry] = None,
    caller_id: Optional[str] = None,
) -> Segmenter:
    """
    Build the segmenter for a strategy kind or content type.

    Args:
        kind_or_type: ``SegmenterKind``, a kind name or a content type
            (``"normativo"``, ``"manual"``...); None selects generic
        token_counter: Counter shared by the segmenter
        settings: Settings, defaults to SETTINGS
        loader: Associated-normative loader for the legal strategy
        registry: Budget registry used to resolve the generic chunk budget
        caller_id: Caller whose registered budget overrides the defaults

    Returns:
        Segmenter instance
    """
    settings = settings or SETTINGS
    kind = resolve_kind(kind_or_type)

    if kind == SegmenterKind.LEGAL:
        return LegalSegmenter(loader=loader, token_counter=token_counter, settings=settings)

    chunk_budget = None
    if registry is not None:
        content_type = (
            kind_or_type.strip().lower()
            if isinstance(kind_or_type, str) and not isinstance(kind_or_type, SegmenterKind)
            else None
        )
        chunk_budget = registry.effective_chunk_budget(caller_id, content_type)

    return GenericSegmenter(
        chunk_budget=chunk_budget,
        token_counter=token_counter,
        settings=settings,
    )
