import os
import sys
from typing import Any, Literal, Optional, cast

import structlog

from .config import SETTINGS, Settings

LogFormat = Literal["json", "plain", "auto"]


def _should_use_json_format() -> bool:
    """Determine if JSON format should be used based on environment."""
    ci_vars = ["CI", "CONTINUOUS_INTEGRATION", "GITHUB_ACTIONS", "JENKINS_URL"]
    if any(os.environ.get(var) for var in ci_vars):
        return True

    # Segmentation usually runs inside worker processes with redirected output
    return bool(not sys.stderr.isatty())


def setup_logging(
    format_type: Optional[LogFormat] = None, settings: Optional[Settings] = None
) -> None:
    """
    Setup structured logging with format control.

    Args:
        format_type: "json" for JSON output, "plain" for human-readable,
                "auto" to auto-detect based on TTY/CI. None reads
                LOG_FORMAT from settings.
        settings: Settings to read LOG_FORMAT from instead of SETTINGS
    """
    if format_type is None:
        configured = (settings or SETTINGS).LOG_FORMAT
        format_type = (
            cast(LogFormat, configured)
            if configured in ("json", "plain", "auto")
            else "auto"
        )

    use_json = format_type == "json" or (
        format_type == "auto" and _should_use_json_format()
    )

    if use_json:
        processors: list[Any] = [
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    # stderr keeps stdout free for callers that stream segmentation results
    structlog.configure(
        processors=processors,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


log = structlog.get_logger()
