"""Segmenter strategy interface."""

from abc import ABC, abstractmethod
from typing import Any, List

from ..core.models import TextUnit


class Segmenter(ABC):
    """Abstract base class for segmentation strategies."""

    @abstractmethod
    def segment(self, document: Any) -> List[TextUnit]:
        """Split a document into ordered chapters (with their chunks)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy identifier."""
