"""Structured logging configuration with JSON formatting and correlation IDs."""

import contextvars
import logging
import sys
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, a correlation ID ties together every log line of ONE reconciliation pass or ONE
# song save. When a user says "the scan skipped my file", grep for the pass's correlation_id and
# you see the listing, every decode and every store lookup of that run. contextvars is
# asyncio-safe - each task gets its own context. Default "" = startup logs, no pass running.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def get_correlation_id() -> str:
    """Get the current correlation ID from context ("" if not set)."""
    return correlation_id_var.get()


# Listen up, this setter AUTO-GENERATES a short id if none is given. Call it ONCE at the start of
# a pass/save, not per file, or every line of the pass gets a different id.
def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID in context.

    Args:
        correlation_id: Correlation ID to set. If None, generates a new one

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = uuid.uuid4().hex[:12]
    correlation_id_var.set(correlation_id)
    return correlation_id


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Set a correlation ID for the duration of a block, then restore the previous one."""
    token = correlation_id_var.set(correlation_id or uuid.uuid4().hex[:12])
    try:
        yield correlation_id_var.get()
    finally:
        correlation_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID (and app name) to log records."""

    def __init__(self, app_name: str = "muzik") -> None:
        super().__init__()
        self.app_name = app_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        record.app_name = self.app_name
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Formatter that shows compact exception chains.

    Hey future me - StorageError and TagCodecError are always raised `from` the library error,
    so the chain is where the real cause lives. Instead of the "The above exception was the
    direct cause..." wall we print one ╰─► line per exception, root cause first, with only
    frames from our own package.

    Example output:
    12:00:01 │ WARNING │ muzik.application.services.library_reconciler:97 │ [3fa2c1] Skipping file
    ╰─► MutagenError: [Errno 2] No such file or directory
    ╰─► TagCodecError: Cannot process tags of /music/a.mp3: [Errno 2] No such file or directory
        File "metadata_tagger.py", line 120, in read_tags
          raise TagCodecError(path, str(e)) from e
    """

    def __init__(
        self, fmt: str | None = None, datefmt: str | None = None, package: str = "muzik"
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.package = package

    def formatException(self, ei: Any) -> str:
        _exc_type, exc_value, _exc_tb = ei
        if exc_value is None:
            return ""

        # Walk the chain (explicit __cause__ first, implicit __context__ otherwise)
        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename:
                    continue
                if self.package not in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter with the fields we query on."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["line"] = record.lineno
        log_record["app"] = getattr(record, "app_name", "muzik")

        correlation_id = getattr(record, "correlation_id", "-")
        if correlation_id and correlation_id != "-":
            log_record["correlation_id"] = correlation_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


# Listen future me, call this ONCE at startup (lifecycle.open_library does). It replaces the
# root logger's handlers, so calling it again in tests is safe. SQLAlchemy's engine logger is
# kept at WARNING unless database.echo is on - echo=True adds its own handler.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "muzik",
) -> None:
    """Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format for logs
        app_name: Application name to include in logs
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter(app_name))

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ [%(correlation_id)s] %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Third-party loggers are noisy at DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"log_level": log_level, "json_format": json_format},
    )
