"""
Token Counter Adapter: an authoritative counter with a heuristic fallback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import tiktoken

from ..core.config import SETTINGS, Settings
from ..core.errors import TokenCounterError
from ..obs.events import emit_event

# Typical ratio for English/Portuguese text on BPE tokenizers
CHARS_PER_TOKEN = 4


class TokenCounter(ABC):
    """Abstract base class for token counters."""

    @abstractmethod
    def count_tokens(self, text: str, profile: Optional[str] = None) -> int:
        """Count tokens of ``text``; ``profile`` selects a model/tokenizer."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Counter identifier."""


class HeuristicTokenCounter(TokenCounter):
    """Deterministic character-ratio estimate (no network required)."""

    def __init__(self, chars_per_token: int = CHARS_PER_TOKEN):
        if chars_per_token < 1:
            raise ValueError("chars_per_token must be >= 1")
        self.chars_per_token = chars_per_token

    def count_tokens(self, text: str, profile: Optional[str] = None) -> int:
        if not text:
            return 0
        return len(text) // self.chars_per_token

    @property
    def name(self) -> str:
        return "heuristic"


class TiktokenCounter(TokenCounter):
    """Exact counts for OpenAI-family tokenizers."""

    def __init__(self, model: str = "text-embedding-3-small"):
        self.model = model
        self._encodings: dict = {}

    def _encoding(self, model: str):
        encoding = self._encodings.get(model)
        if encoding is None:
            try:
                encoding = tiktoken.encoding_for_model(model)
            except KeyError:
                # Unknown model name
                encoding = tiktoken.get_encoding("cl100k_base")
            self._encodings[model] = encoding
        return encoding

    def count_tokens(self, text: str, profile: Optional[str] = None) -> int:
        if not text:
            return 0
        model = profile or self.model
        try:
            return len(self._encoding(model).encode(text, disallowed_special=()))
        except Exception as e:
            raise TokenCounterError(f"tiktoken failed for model {model}: {e}") from e

    @property
    def name(self) -> str:
        return "tiktoken"


class FallbackTokenCounter(TokenCounter):
    """
    Two-tier counter: ask the primary, degrade to the heuristic on failure.

    Failures are never propagated; each degraded call emits a
    ``tokens.fallback`` warning event. Nothing is recorded on the instance,
    so one counter can be shared across threads and documents.
    """

    def __init__(
        self,
        primary: TokenCounter,
        fallback: Optional[TokenCounter] = None,
    ):
        self.primary = primary
        self.fallback = fallback or HeuristicTokenCounter()

    def count_tokens(self, text: str, profile: Optional[str] = None) -> int:
        try:
            return int(self.primary.count_tokens(text, profile))
        except Exception as e:
            emit_event(
                "tokens.fallback",
                level="WARNING",
                primary=self.primary.name,
                fallback=self.fallback.name,
                error=str(e),
                chars=len(text),
            )
            return self.fallback.count_tokens(text, profile)

    @property
    def name(self) -> str:
        return f"{self.primary.name}+{self.fallback.name}"


def get_token_counter(
    backend: Optional[str] = None,
    model: Optional[str] = None,
    chars_per_token: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> TokenCounter:
    """
    Get token counter based on configuration.

    Args:
        backend: "tiktoken" or "heuristic", or None to use
                 SETTINGS.TOKENIZER_BACKEND
        model: Tokenizer model, defaults to SETTINGS.TOKENIZER_MODEL
        chars_per_token: Heuristic ratio, defaults to SETTINGS.CHARS_PER_TOKEN
        settings: Settings to read the defaults from instead of SETTINGS

    Returns:
        TokenCounter instance
    """
    settings = settings or SETTINGS
    backend = backend or settings.TOKENIZER_BACKEND
    heuristic = HeuristicTokenCounter(chars_per_token or settings.CHARS_PER_TOKEN)

    if backend == "heuristic":
        return heuristic
    elif backend == "tiktoken":
        return FallbackTokenCounter(
            TiktokenCounter(model or settings.TOKENIZER_MODEL), heuristic
        )
    else:
        raise ValueError(f"Unknown tokenizer backend: {backend}")
