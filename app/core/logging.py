"""
Value-safe logging for the sanitizer service.

Repeater values, row contents and subfield values never reach a log record.
Context passed to SafeLogger is filtered through an allow-list of
identifiers and counters; anything else is dropped before formatting.
"""
import logging
import sys
from typing import Any, Mapping, Optional

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def setup_logging() -> None:
    """Configure the root logger; DEBUG in dev, INFO elsewhere."""
    settings = get_settings()
    level = logging.DEBUG if settings.service_env == "dev" else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class SafeLogger:
    """
    Logger wrapper that only renders allow-listed context keys.

    Usage:
        logger = get_safe_logger(__name__)
        logger.info("Repeater sanitize completed", request_id=rid, rows=3)
        # -> "Repeater sanitize completed | request_id=... | rows=3"
    """

    SAFE_FIELDS = frozenset({
        # identifiers
        "request_id",
        "error_code",
        "exception_class",
        # http
        "status_code",
        "latency_ms",
        # sanitize report
        "rows",
        "dropped_rows",
        "dropped_subfields",
    })

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def render(self, message: str, context: Mapping[str, Any]) -> str:
        """Append allow-listed context to message; other keys are discarded."""
        safe = [f"{key}={value}" for key, value in context.items() if key in self.SAFE_FIELDS]
        if not safe:
            return message
        return " | ".join([message, *safe])

    def _log(self, level: int, message: str, context: Mapping[str, Any]) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self.render(message, context))

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    def error(self, message: str, error_code: Optional[str] = None, **context: Any) -> None:
        """
        Log an error with safe context.
        Exception messages are never included since they may echo submitted values.
        """
        if error_code:
            context["error_code"] = error_code
        self._log(logging.ERROR, message, context)


def get_safe_logger(name: str) -> SafeLogger:
    """Get a value-safe logger instance."""
    return SafeLogger(name)
