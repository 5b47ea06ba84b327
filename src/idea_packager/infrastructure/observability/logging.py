"""
Structured Logging for the packager

Provides JSON and human-readable formatters, a build context carried in a
context variable, and a single entry point that wires them onto the
``idea_packager`` logger hierarchy from a LoggingConfiguration.
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO

# Context variables for build tracking
build_id_var: ContextVar[Optional[str]] = ContextVar('build_id', default=None)
project_var: ContextVar[Optional[str]] = ContextVar('project', default=None)

ROOT_LOGGER_NAME = "idea_packager"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "build_id", "project"
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


class BuildContextFilter(logging.Filter):
    """Copies the current build context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.build_id = build_id_var.get()
        record.project = project_var.get()
        return True


class JSONLogFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'build_id': getattr(record, 'build_id', None),
            'project': getattr(record, 'project', None),
        }
        extra = _extra_fields(record)
        if extra:
            payload['extra'] = extra
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)

        # Remove None values to keep logs clean
        payload = {k: v for k, v in payload.items() if v is not None}
        return json.dumps(payload, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for development/debugging"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        base_msg = f"[{timestamp}] {record.levelname}: {record.getMessage()}"

        build_id = getattr(record, 'build_id', None)
        if build_id:
            base_msg += f" [build_id={build_id}]"

        extra = _extra_fields(record)
        if extra:
            extra_str = ', '.join(f"{k}={v}" for k, v in extra.items())
            base_msg += f" [{extra_str}]"

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)
        return base_msg


_installed_handlers: List[logging.Handler] = []


def configure_logging(config=None, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the ``idea_packager`` logger from a LoggingConfiguration.

    Calling it again replaces the handlers installed by the previous call.
    """
    from ...framework.configuration.models import LoggingConfiguration

    config = config or LoggingConfiguration()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    reset_logging()

    formatter: logging.Formatter = (
        JSONLogFormatter() if config.format == "json" else HumanReadableFormatter()
    )

    handlers: List[logging.Handler] = []
    if config.output in ("console", "both"):
        handlers.append(logging.StreamHandler(stream or sys.stderr))
    if config.output in ("file", "both"):
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(BuildContextFilter())
        logger.addHandler(handler)
        _installed_handlers.append(handler)

    logger.setLevel(config.level)
    return logger


def reset_logging() -> None:
    """Remove handlers installed by configure_logging."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.NOTSET)
    while _installed_handlers:
        handler = _installed_handlers.pop()
        logger.removeHandler(handler)
        handler.close()


@contextmanager
def build_context(build_id: Optional[str] = None, project: Optional[str] = None) -> Iterator[str]:
    """Context manager tagging every record emitted inside it with a build id"""
    if build_id is None:
        build_id = uuid.uuid4().hex[:12]

    build_token = build_id_var.set(build_id)
    project_token = project_var.set(project) if project else None
    try:
        yield build_id
    finally:
        build_id_var.reset(build_token)
        if project_token:
            project_var.reset(project_token)


def get_build_id() -> Optional[str]:
    """Get the current build ID from context"""
    return build_id_var.get()
