import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Budget


class Settings(BaseSettings):
    # Chapter budget (token-equivalents)
    CHAPTER_MIN_TOKENS: int = 2048
    CHAPTER_IDEAL_TOKENS: int = 8192
    CHAPTER_MAX_TOKENS: int = 16384

    # Chunk budget
    CHUNK_MIN_TOKENS: int = 256
    CHUNK_IDEAL_TOKENS: int = 1024
    CHUNK_MAX_TOKENS: int = 2048

    # Packing behaviour
    SINGLE_CHAPTER_THRESHOLD: Optional[int] = None  # None -> chapter ideal
    MERGE_SLACK_RATIO: float = 0.10  # slack over ideal when merging small units
    MARKER_MERGE_DISTANCE: int = 3  # lines between title and subtitle

    # Token counting
    CHARS_PER_TOKEN: int = 4  # heuristic fallback ratio
    TOKENIZER_BACKEND: str = "tiktoken"  # tiktoken|heuristic
    TOKENIZER_MODEL: str = "text-embedding-3-small"

    # Legal documents
    LEGAL_MAX_DEPTH: int = 2  # associated-normative nesting cap
    LEGAL_MAX_CHUNK_TOKENS: int = 512
    LEGAL_DERIVE_SUB_TEXTS: bool = True  # caput/paragraph/inciso chunks

    # Per-caller budget cache
    BUDGET_CACHE_SIZE: int = 128

    # Observability
    LOG_FORMAT: str = "auto"  # json|plain|auto

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @classmethod
    def load_config(cls, config_file: Optional[str] = None) -> "Settings":
        """Load settings with config file -> env precedence."""
        config_data: Dict[str, Any] = {}

        if config_file:
            config_path: Optional[Path] = Path(config_file)
        else:
            # Auto-discover .ragsplit.{yaml,yml,toml}
            for ext in ["yaml", "yml", "toml"]:
                config_path = Path(f".ragsplit.{ext}")
                if config_path.exists():
                    break
            else:
                config_path = None

        if config_path and config_path.exists():
            if config_path.suffix in [".yaml", ".yml"]:
                import yaml  # type: ignore[import-untyped]

                with open(config_path) as f:
                    config_data = yaml.safe_load(f) or {}
            elif config_path.suffix == ".toml":
                import tomllib

                with open(config_path, "rb") as f:
                    config_data = tomllib.load(f)

        return cls(**config_data)

    def chapter_budget(self) -> Budget:
        return Budget(
            min_tokens=self.CHAPTER_MIN_TOKENS,
            ideal_tokens=self.CHAPTER_IDEAL_TOKENS,
            max_tokens=self.CHAPTER_MAX_TOKENS,
        )

    def chunk_budget(self) -> Budget:
        return Budget(
            min_tokens=self.CHUNK_MIN_TOKENS,
            ideal_tokens=self.CHUNK_IDEAL_TOKENS,
            max_tokens=self.CHUNK_MAX_TOKENS,
        )


# Preferred chunk sizes per content type; normatives stay small to keep
# whole articles together, books larger for continuous narrative.
DEFAULT_CONTENT_TYPE_CHUNK_SIZES: Dict[str, int] = {
    "normativo": 1500,
    "livro": 2500,
    "artigo": 2000,
    "manual": 1800,
}


class BudgetRegistry:
    """
    Bounded cache of per-caller chunk budgets.

    Resolution order is caller override, then content type preferred size,
    then the settings defaults. The registry is read-mostly; writes and LRU
    bookkeeping happen under a lock so one instance can be shared by
    worker threads.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        max_entries: Optional[int] = None,
        content_type_sizes: Optional[Dict[str, int]] = None,
    ):
        self.settings = settings or SETTINGS
        self.max_entries = max_entries or self.settings.BUDGET_CACHE_SIZE
        self._callers: "OrderedDict[str, Budget]" = OrderedDict()
        self._content_types: Dict[str, int] = dict(
            DEFAULT_CONTENT_TYPE_CHUNK_SIZES
            if content_type_sizes is None
            else content_type_sizes
        )
        self._lock = threading.Lock()

    def register_caller(self, caller_id: str, budget: Budget) -> None:
        with self._lock:
            self._callers[caller_id] = budget
            self._callers.move_to_end(caller_id)
            while len(self._callers) > self.max_entries:
                self._callers.popitem(last=False)

    def register_content_type(self, content_type: str, chunk_size: int) -> None:
        with self._lock:
            self._content_types[content_type] = chunk_size

    def get_caller_budget(self, caller_id: str) -> Optional[Budget]:
        with self._lock:
            budget = self._callers.get(caller_id)
            if budget is not None:
                self._callers.move_to_end(caller_id)
            return budget

    def effective_chunk_budget(
        self,
        caller_id: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> Budget:
        """Resolve the chunk budget for a caller and content type."""
        if caller_id is not None:
            budget = self.get_caller_budget(caller_id)
            if budget is not None:
                return budget

        defaults = self.settings.chunk_budget()
        if content_type is not None:
            with self._lock:
                preferred = self._content_types.get(content_type)
            if preferred is not None:
                # The preferred size becomes the max; keep the window ordered
                max_tokens = max(preferred, defaults.min_tokens)
                return Budget(
                    min_tokens=defaults.min_tokens,
                    ideal_tokens=min(defaults.ideal_tokens, max_tokens),
                    max_tokens=max_tokens,
                )

        return defaults

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "callers_configured": len(self._callers),
                "content_types_configured": len(self._content_types),
                "max_entries": self.max_entries,
                "default_chunk_max_tokens": self.settings.CHUNK_MAX_TOKENS,
            }


# Default settings - replace via Settings.load_config() at startup
SETTINGS = Settings()
