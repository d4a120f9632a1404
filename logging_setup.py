"""
Shared logging infrastructure for the SalesGenius backend.

One setup for the gateway and the suggestion pipeline: every record is a
single JSON object tagged with a component and, when bound, a session id.
Transcript and suggestion text are PII; they are passed through the `pii`
field so they can be redacted in environments that must not retain them.

Environment (see setup_logging_from_env):
- LOG_LEVEL   DEBUG | INFO | WARNING | ERROR   (default INFO)
- LOG_FORMAT  json | text                      (default json)
- LOG_PII     true | false                     (default true)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Component(str, Enum):
    """System components for log tagging."""
    GATEWAY = "gateway"
    SESSION = "session"
    PROMPT = "prompt"
    COMPLETION = "completion"
    STREAMER = "streamer"
    EVENT_STORE = "event_store"
    AUTH = "auth"


REDACTED = "[redacted]"

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName", "component", "session_id"}

# Chatty client libraries, kept at WARNING unless we run at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiohttp.access")

_log_pii = True


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record:

        {"timestamp", "severity", "component", "message",
         "session_id"?, <extra fields>..., "exception"?}

    Values json cannot encode are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname.lower(),
            "component": getattr(record, "component", "unknown"),
            "message": record.getMessage(),
        }
        session_id = getattr(record, "session_id", None)
        if session_id:
            entry["session_id"] = session_id

        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Component-tagged logger; keyword arguments become JSON fields.

    Usage:
        logger = get_logger(Component.SESSION).with_session("session_123")
        logger.info("Suggestion delivered", category="value", latency_ms=812)
        logger.info_pii("Generating suggestion", transcript="...")
    """

    def __init__(
        self,
        component: str | Component,
        session_id: Optional[str] = None,
        logger_name: Optional[str] = None,
        **bound: Any,
    ):
        self.component = component.value if isinstance(component, Component) else component
        self.session_id = session_id
        self.bound = bound
        self.logger = logging.getLogger(logger_name or f"salesgenius.{self.component}")

    def _log(
        self,
        level: int,
        message: str,
        pii: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        exc_info = kwargs.pop("exc_info", None)
        extra: Dict[str, Any] = {"component": self.component, **self.bound, **kwargs}
        if self.session_id:
            extra["session_id"] = self.session_id
        if pii:
            extra["pii"] = pii if _log_pii else {key: REDACTED for key in pii}

        # stacklevel 3: caller -> debug/info/... -> _log
        self.logger.log(level, message, exc_info=exc_info, stacklevel=3, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, message, **kwargs)

    def debug_pii(self, message: str, **pii_fields: Any) -> None:
        """
        Debug record whose keyword fields are all PII.

        Example:
            logger.debug_pii("Model output", raw='{"suggestion": "..."}')
        """
        self._log(logging.DEBUG, message, pii=pii_fields)

    def info_pii(self, message: str, **pii_fields: Any) -> None:
        self._log(logging.INFO, message, pii=pii_fields)

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Logger that adds `fields` to every record."""
        return StructuredLogger(
            self.component,
            session_id=self.session_id,
            logger_name=self.logger.name,
            **{**self.bound, **fields},
        )

    def with_session(self, session_id: str) -> "StructuredLogger":
        return StructuredLogger(
            self.component,
            session_id=session_id,
            logger_name=self.logger.name,
            **self.bound,
        )


def setup_logging(
    level: str = "INFO",
    use_json: bool = True,
    include_timestamp: bool = True,
    log_pii: bool = True,
) -> None:
    """
    Configure the root logger. Call once at process start.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        use_json: JSON lines (True) or plain text (False)
        include_timestamp: prefix text lines with a timestamp
        log_pii: write PII fields as-is; when False their values are redacted
    """
    global _log_pii
    _log_pii = log_pii

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if use_json:
        formatter: logging.Formatter = JSONFormatter()
    else:
        format_str = "%(levelname)s [%(component)s] %(message)s"
        if include_timestamp:
            format_str = "%(asctime)s " + format_str
        formatter = logging.Formatter(format_str, defaults={"component": "unknown"})

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if log_level <= logging.DEBUG else logging.WARNING)


def setup_logging_from_env() -> None:
    """setup_logging() driven by LOG_LEVEL, LOG_FORMAT and LOG_PII."""
    setup_logging(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        use_json=os.environ.get("LOG_FORMAT", "json").strip().lower() != "text",
        log_pii=os.environ.get("LOG_PII", "true").strip().lower() in ("1", "true", "yes"),
    )


def get_logger(
    component: str | Component,
    session_id: Optional[str] = None
) -> StructuredLogger:
    """
    Get a structured logger for a component.

    Example:
        logger = get_logger(Component.GATEWAY, session_id="session_123")
        logger.info("Connection accepted")
    """
    return StructuredLogger(component, session_id=session_id)
