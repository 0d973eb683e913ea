"""Test standardized event emission."""

from unittest.mock import patch

import pytest

from ragsplit.obs.events import clear_event_context, emit_event, set_event_context

pytestmark = pytest.mark.unit


class TestEmitEvent:
    """Test stage/op/status derivation and log level routing."""

    def test_stage_op_and_status(self):
        with patch("ragsplit.obs.events.log") as log:
            event = emit_event("segment.start", doc_ref="d1")

        assert event["stage"] == "segment"
        assert event["op"] == "start"
        assert event["status"] == "START"
        assert event["level"] == "INFO"
        assert event["doc_ref"] == "d1"
        log.info.assert_called_once()
        assert log.info.call_args.args[0] == "segment.start"

    def test_nested_op(self):
        with patch("ragsplit.obs.events.log"):
            event = emit_event("legal.article.skipped", level="WARNING")

        assert event["stage"] == "legal"
        assert event["op"] == "article.skipped"
        assert event["status"] == "OK"

    def test_failure_logs_at_error(self):
        with patch("ragsplit.obs.events.log") as log:
            event = emit_event("segment.error", reason="missing_text")

        assert event["status"] == "FAIL"
        assert event["level"] == "ERROR"
        log.error.assert_called_once()

    def test_complete_is_end(self):
        with patch("ragsplit.obs.events.log"):
            assert emit_event("segment.complete")["status"] == "END"

    @pytest.mark.parametrize(
        "level,method",
        [("WARNING", "warning"), ("debug", "debug"), ("INFO", "info")],
    )
    def test_explicit_level(self, level, method):
        with patch("ragsplit.obs.events.log") as log:
            emit_event("tokens.fallback", level=level)

        getattr(log, method).assert_called_once()

    def test_explicit_status(self):
        with patch("ragsplit.obs.events.log"):
            event = emit_event("legal.depth_limit", status="SKIP")

        assert event["status"] == "SKIP"

    def test_single_component_event(self):
        with patch("ragsplit.obs.events.log"):
            event = emit_event("heartbeat")

        assert event["stage"] == "heartbeat"
        assert event["op"] == "heartbeat"


class TestEventContext:
    def test_context_merged_into_events(self):
        set_event_context(run_id="run-42", library="kb")
        with patch("ragsplit.obs.events.log") as log:
            event = emit_event("segment.start")

        assert event["run_id"] == "run-42"
        assert log.info.call_args.kwargs["library"] == "kb"

    def test_event_fields_override_context(self):
        set_event_context(doc_ref="ctx")
        with patch("ragsplit.obs.events.log"):
            assert emit_event("segment.start", doc_ref="call")["doc_ref"] == "call"

    def test_clear_context(self):
        set_event_context(run_id="run-42")
        clear_event_context()
        with patch("ragsplit.obs.events.log"):
            assert "run_id" not in emit_event("segment.start")
