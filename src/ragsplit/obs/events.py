"""Standardized segmentation events on top of structlog."""

from typing import Any, Dict

from ..core.logging import log

_global_context: Dict[str, Any] = {}


def set_event_context(**ctx: Any) -> None:
    """Set fields (e.g. run_id) merged into every emitted event."""
    _global_context.update(ctx)


def clear_event_context() -> None:
    _global_context.clear()


def _status_for(op: str) -> str:
    if any(k in op for k in ["error", "fail"]):
        return "FAIL"
    if any(k in op for k in ["start", "begin"]):
        return "START"
    if any(k in op for k in ["complete", "done", "end"]):
        return "END"
    return "OK"


def emit_event(event_type: str, **kwargs: Any) -> Dict[str, Any]:
    """
    Emit a standardized event line using the global context.

    The stage is the first dotted component of ``event_type`` and the op the
    remainder (``"legal.article.skipped"`` -> stage ``legal``, op
    ``article.skipped``). Level defaults from the op: failures log at error,
    ``level="WARNING"`` may be passed explicitly.

    Returns:
        The event fields that were logged.
    """
    stage, _, op = event_type.partition(".")
    op = op or event_type
    status = kwargs.pop("status", None) or _status_for(op)
    level = str(kwargs.pop("level", "ERROR" if status == "FAIL" else "INFO")).upper()

    event: Dict[str, Any] = dict(_global_context)
    event.update(stage=stage, op=op, status=status)
    event.update(kwargs)

    if level == "ERROR":
        log.error(event_type, **event)
    elif level == "WARNING":
        log.warning(event_type, **event)
    elif level == "DEBUG":
        log.debug(event_type, **event)
    else:
        log.info(event_type, **event)

    event["level"] = level
    return event
