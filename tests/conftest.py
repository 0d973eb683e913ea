"""Global test configuration for ragsplit tests."""

from typing import Optional

import pytest

from ragsplit.chunking.tokens import HeuristicTokenCounter, TokenCounter
from ragsplit.core.config import Settings
from ragsplit.core.errors import TokenCounterError
from ragsplit.core.models import Budget
from ragsplit.obs.events import clear_event_context


class FailingTokenCounter(TokenCounter):
    """Token counter whose backend is always unavailable."""

    def __init__(self):
        self.calls = 0

    def count_tokens(self, text: str, profile: Optional[str] = None) -> int:
        self.calls += 1
        raise TokenCounterError("tokenizer service unavailable")

    @property
    def name(self) -> str:
        return "failing"


@pytest.fixture(autouse=True)
def isolate_event_context():
    """Ensure no event context leaks between tests."""
    clear_event_context()
    yield
    clear_event_context()


@pytest.fixture
def heuristic_counter():
    """Deterministic 4-chars-per-token counter."""
    return HeuristicTokenCounter(4)


@pytest.fixture
def failing_counter():
    return FailingTokenCounter()


@pytest.fixture
def test_settings():
    """Settings with the heuristic backend and no config file."""
    return Settings(TOKENIZER_BACKEND="heuristic")


@pytest.fixture
def chapter_budget():
    return Budget(min_tokens=200, ideal_tokens=400, max_tokens=800)


@pytest.fixture
def chunk_budget():
    return Budget(min_tokens=20, ideal_tokens=100, max_tokens=200)


def build_paragraph(chars: int, seed: str = "lorem") -> str:
    """A single-line paragraph of exactly ``chars`` characters ending in a period."""
    words = []
    length = 0
    i = 0
    while length < chars:
        word = f"{seed}{i % 10}"
        words.append(word)
        length += len(word) + 1
        i += 1
    body = " ".join(words)[: chars - 1]
    if body.endswith(" "):
        body = body[:-1] + "x"
    return body + "."


@pytest.fixture
def make_paragraph():
    """Factory for paragraphs of an exact character length."""
    return build_paragraph
