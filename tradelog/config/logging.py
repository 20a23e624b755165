"""
Tradelog Logging Configuration

Library modules only call logging.getLogger(__name__). Applications that
embed tradelog call configure_logging() once; by default it takes level
and format from AnalyticsSettings.

Structured context reaches records two ways: per call through
``extra={"ctx_<name>": value}``, or for a whole block through
journal_context(user_id=..., trade_id=...).
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from .settings import get_settings

# =============================================================================
# Log Level Strategy
# =============================================================================
#
# DEBUG   - Per-trade detail, accepted exit mutations, settings loads
# INFO    - Analysis runs, rejected exit writes
# WARNING - Malformed trades neutralized on the read side, skipped records
# ERROR   - Only through TradeLogError.log() for data-integrity violations
# =============================================================================

CONTEXT_PREFIX = "ctx_"

_journal_context: ContextVar[Dict[str, Any]] = ContextVar("journal_context", default={})


def current_context() -> Dict[str, Any]:
    """Fields bound by the innermost journal_context() block."""
    return dict(_journal_context.get())


@contextmanager
def journal_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """
    Bind fields (user_id, trade_id, ...) to every record logged in the block.

    Blocks nest; inner values override outer ones for the same name.
    """
    merged = {**_journal_context.get(), **fields}
    token = _journal_context.set(merged)
    try:
        yield merged
    finally:
        _journal_context.reset(token)


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Bound context plus ctx_-prefixed extras of a record, unprefixed."""
    fields = current_context()
    for key, value in record.__dict__.items():
        if key.startswith(CONTEXT_PREFIX):
            fields[key[len(CONTEXT_PREFIX):]] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def __init__(self, service_name: str = "tradelog"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_fields(record))

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line human-readable output with trailing key=value context."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_colors and record.levelno in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelno]}{level}{self.RESET}"

        line = f"{self.formatTime(record, self.datefmt)} {level} {record.name} - {record.getMessage()}"

        fields = record_fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    log_file: Optional[str] = None,
    service_name: str = "tradelog",
) -> None:
    """
    Install tradelog's formatters on the root logger.

    Args:
        level: Level name; settings.log_level when None
        json_format: JSON output on stdout; settings.log_json when None
        log_file: Also write JSON lines to this file
        service_name: Value of the "service" field in JSON output
    """
    if level is None or json_format is None:
        settings = get_settings()
        level = level or settings.log_level
        json_format = settings.log_json if json_format is None else json_format

    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        root.removeHandler(handler)

    stdout = logging.StreamHandler(sys.stdout)
    if json_format:
        stdout.setFormatter(StructuredFormatter(service_name))
    else:
        stdout.setFormatter(ConsoleFormatter(use_colors=sys.stdout.isatty()))
    root.addHandler(stdout)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(service_name))
        root.addHandler(file_handler)


# =============================================================================
# Timing
# =============================================================================

T = TypeVar("T")


def log_performance(threshold_ms: float = 250.0) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Log the duration of an analytics call.

    DEBUG under threshold_ms, WARNING above it. Exceptions are logged at
    WARNING and re-raised unchanged.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        func_logger = logging.getLogger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - started) * 1000
                func_logger.warning(
                    f"{func.__name__} raised {type(e).__name__} after {elapsed:.1f}ms",
                    extra={"ctx_duration_ms": round(elapsed, 2)},
                )
                raise

            elapsed = (time.perf_counter() - started) * 1000
            log = func_logger.warning if elapsed > threshold_ms else func_logger.debug
            log(
                f"{func.__name__} took {elapsed:.1f}ms",
                extra={"ctx_duration_ms": round(elapsed, 2)},
            )
            return result

        return wrapper

    return decorator
