"""
Logging for the portal server and client layer.

Records carry keyword fields (``logger.info("Login failed", email=...)``). The
console gets a plain one-line format; the optional log file gets one JSON
object per line. Credential-looking fields are masked before either handler
sees them, so call sites can pass request data without scrubbing it first.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

# Field names whose values never reach a handler
SENSITIVE_FIELDS = frozenset({
    "password",
    "password_confirm",
    "passwordconfirm",
    "password_hash",
    "token",
    "access_token",
    "reset_token",
    "authorization",
})
REDACTED = "***"

# Loggers configured by setup_logging; None means "use the requested level"
MANAGED_LOGGERS: Dict[str, Optional[str]] = {
    "portal": None,
    "uvicorn": "INFO",
    "sqlalchemy.engine": "WARNING",
}


def _scrub(fields: Dict[str, Any]) -> Dict[str, Any]:
    clean = {}
    for key, value in fields.items():
        if value is None:
            continue
        clean[key] = REDACTED if key.lower() in SENSITIVE_FIELDS else value
    return clean


class JSONFormatter(logging.Formatter):
    """One JSON document per record, keyword fields merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "pid": record.process,
        }
        entry.update(getattr(record, "fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Thin wrapper over ``logging.Logger`` taking keyword fields.

    ``bind`` returns a child carrying default fields (a request id, a user
    id) that are merged into every record it emits. ``exc_info`` is handed
    to the stdlib logger rather than treated as a field.
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.context: Dict[str, Any] = dict(context or {})

    def bind(self, **fields: Any) -> "StructuredLogger":
        return StructuredLogger(self.logger.name, {**self.context, **fields})

    def _emit(self, level: int, message: str, exc_info: Any = None, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(level, message, exc_info=exc_info, extra={"fields": _scrub({**self.context, **fields})})

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, **fields)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Install handlers for the portal, uvicorn and SQLAlchemy loggers.

    Args:
        log_level: Level for portal loggers and both handlers
        log_file: JSON log destination (rotated at 10MB, 5 backups); None disables it
        enable_console: Whether to log plain lines to stdout
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "plain",
            "level": log_level,
        }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "json",
            "level": log_level,
        }

    names = list(handlers)
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "plain": {
                "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            name: {"level": level or log_level, "handlers": names, "propagate": False}
            for name, level in MANAGED_LOGGERS.items()
        },
        "root": {"level": log_level, "handlers": names},
    })


def get_logger(name: str) -> StructuredLogger:
    """Logger under the ``portal`` namespace (``__name__`` of portal modules already is)."""
    if name == "portal" or name.startswith("portal."):
        return StructuredLogger(name)
    return StructuredLogger(f"portal.{name}")


def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    user_id: Optional[int] = None,
    request_id: Optional[str] = None
) -> None:
    """
    Audit trail entry on the ``portal.audit`` logger.

    Args:
        event_type: e.g. 'user_signed_up', 'application_status_changed'
        details: Event-specific fields
        user_id: Acting user, if any
        request_id: Request the event belongs to
    """
    get_logger("audit").info(
        f"Business event: {event_type}",
        event_type=event_type,
        user_id=user_id,
        request_id=request_id,
        **details
    )


def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    get_logger("performance").info(
        f"Performance: {operation}",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **(additional_data or {})
    )
