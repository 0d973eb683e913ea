"""Test token counters and the heuristic fallback."""

from unittest.mock import MagicMock, patch

import pytest

from ragsplit.chunking.tokens import (
    CHARS_PER_TOKEN,
    FallbackTokenCounter,
    HeuristicTokenCounter,
    TiktokenCounter,
    get_token_counter,
)
from ragsplit.core.config import Settings
from ragsplit.core.errors import TokenCounterError

pytestmark = pytest.mark.unit


class TestHeuristicTokenCounter:
    def test_ratio(self):
        counter = HeuristicTokenCounter()
        assert CHARS_PER_TOKEN == 4
        assert counter.count_tokens("a" * 40) == 10
        assert counter.count_tokens("abc") == 0
        assert counter.count_tokens("") == 0

    def test_custom_ratio(self):
        assert HeuristicTokenCounter(2).count_tokens("abcdef") == 3

    def test_invalid_ratio(self):
        with pytest.raises(ValueError):
            HeuristicTokenCounter(0)


class TestTiktokenCounter:
    def test_counts_encoded_tokens(self):
        encoding = MagicMock()
        encoding.encode.return_value = [1, 2, 3]
        with patch(
            "ragsplit.chunking.tokens.tiktoken.encoding_for_model",
            return_value=encoding,
        ) as for_model:
            counter = TiktokenCounter("text-embedding-3-small")
            assert counter.count_tokens("hello world") == 3
            assert counter.count_tokens("again") == 3

        # Encoding is cached per model
        for_model.assert_called_once_with("text-embedding-3-small")
        encoding.encode.assert_called_with("again", disallowed_special=())

    def test_unknown_model_uses_base_encoding(self):
        encoding = MagicMock()
        encoding.encode.return_value = [1]
        with (
            patch(
                "ragsplit.chunking.tokens.tiktoken.encoding_for_model",
                side_effect=KeyError("nope"),
            ),
            patch(
                "ragsplit.chunking.tokens.tiktoken.get_encoding",
                return_value=encoding,
            ) as get_encoding,
        ):
            counter = TiktokenCounter("my-local-model")
            assert counter.count_tokens("x") == 1

        get_encoding.assert_called_once_with("cl100k_base")

    def test_profile_overrides_model(self):
        encoding = MagicMock()
        encoding.encode.return_value = [1, 2]
        with patch(
            "ragsplit.chunking.tokens.tiktoken.encoding_for_model",
            return_value=encoding,
        ) as for_model:
            TiktokenCounter("gpt-4").count_tokens("x", profile="gpt-4o")

        for_model.assert_called_once_with("gpt-4o")

    def test_backend_failure_raises_counter_error(self):
        with patch(
            "ragsplit.chunking.tokens.tiktoken.encoding_for_model",
            side_effect=RuntimeError("download failed"),
        ):
            with pytest.raises(TokenCounterError):
                TiktokenCounter().count_tokens("text")


class TestFallbackTokenCounter:
    def test_primary_result_used_when_available(self, heuristic_counter):
        primary = MagicMock()
        primary.count_tokens.return_value = 7
        counter = FallbackTokenCounter(primary, heuristic_counter)

        with patch("ragsplit.chunking.tokens.emit_event") as emit:
            assert counter.count_tokens("a" * 100) == 7

        emit.assert_not_called()

    def test_failure_degrades_to_heuristic(self, failing_counter, heuristic_counter):
        counter = FallbackTokenCounter(failing_counter, heuristic_counter)
        state = dict(vars(counter))

        assert counter.count_tokens("a" * 100) == 25
        assert counter.count_tokens("a" * 8) == 2
        # Degraded calls leave the shared counter untouched
        assert vars(counter) == state
        assert failing_counter.calls == 2
        assert counter.name == "failing+heuristic"

    def test_failure_emits_warning_event(self, failing_counter):
        counter = FallbackTokenCounter(failing_counter)
        with patch("ragsplit.chunking.tokens.emit_event") as emit:
            counter.count_tokens("abcd")

        emit.assert_called_once()
        args, kwargs = emit.call_args
        assert args[0] == "tokens.fallback"
        assert kwargs["level"] == "WARNING"
        assert kwargs["primary"] == "failing"


class TestGetTokenCounter:
    def test_heuristic_backend(self):
        counter = get_token_counter("heuristic", chars_per_token=3)
        assert isinstance(counter, HeuristicTokenCounter)
        assert counter.chars_per_token == 3

    def test_tiktoken_backend_is_wrapped(self):
        counter = get_token_counter("tiktoken", model="gpt-4o")
        assert isinstance(counter, FallbackTokenCounter)
        assert isinstance(counter.primary, TiktokenCounter)
        assert counter.primary.model == "gpt-4o"

    def test_backend_from_settings(self):
        settings = Settings(TOKENIZER_BACKEND="heuristic", CHARS_PER_TOKEN=5)
        counter = get_token_counter(settings=settings)
        assert isinstance(counter, HeuristicTokenCounter)
        assert counter.chars_per_token == 5

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown tokenizer backend"):
            get_token_counter("sentencepiece")
