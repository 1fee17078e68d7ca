"""
Logging for que.

``StructuredLogger`` wraps a stdlib logger: every message may carry keyword
context, appended as JSON. It also counts persistence calls per operation so
the facade's health can be summarised with ``log_metrics_summary``.

File output is opt-in through ``QUE_LOG_DIR``; the console handler is always
on unless disabled.
"""

import copy
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .config import get_settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
    return handler


class StructuredLogger:
    """Logger with keyword context and per-operation call metrics."""

    def __init__(
        self,
        name: str = "que",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Name of the underlying stdlib logger
            level: Console level name (DEBUG, INFO, WARNING, ERROR)
            log_dir: Directory for daily log files (default: logs/)
            enable_file: Write que_YYYYMMDD.log files, always at DEBUG
            enable_console: Write to stdout
        """
        console_level = getattr(logging, level.upper())
        self.logger = logging.getLogger(name)
        self.logger.setLevel(console_level)
        self.logger.handlers.clear()

        self.metrics: Dict[str, Any] = {
            "operations": 0,
            "operations_failed": 0,
            "errors_by_type": {},
            "operation_stats": {},
        }

        if enable_console:
            self.logger.addHandler(
                _handler(logging.StreamHandler(sys.stdout), console_level, CONSOLE_FORMAT)
            )

        if enable_file:
            log_dir = Path(log_dir) if log_dir is not None else Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"que_{datetime.now():%Y%m%d}.log"
            self.logger.addHandler(
                _handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)
            )

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def _log(self, level: int, message: str, context: dict):
        # Skip serializing context nobody will read
        if not self.logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    def record_operation(self, operation: str):
        """Count one call to a persistence operation."""
        self.metrics["operations"] += 1
        stats = self.metrics["operation_stats"].setdefault(operation, {"calls": 0, "failures": 0})
        stats["calls"] += 1

    def record_failure(self, operation: str, error_type: str):
        """Count one failed call, by operation and by exception class name."""
        self.metrics["operations_failed"] += 1
        if operation in self.metrics["operation_stats"]:
            self.metrics["operation_stats"][operation]["failures"] += 1
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Snapshot of the counters, with a failure_rate per operation."""
        metrics = copy.deepcopy(self.metrics)
        for stats in metrics["operation_stats"].values():
            if stats["calls"]:
                stats["failure_rate"] = round(stats["failures"] / stats["calls"], 3)
        return metrics

    def log_metrics_summary(self):
        metrics = self.get_metrics()
        total = metrics["operations"]
        failed = metrics["operations_failed"]
        percent = round(failed / total * 100, 1) if total else 0

        self.info("=== Persistence Metrics ===")
        self.info(f"Operations: {total} ({failed} failed, {percent}%)")

        for operation, stats in metrics["operation_stats"].items():
            rate = stats.get("failure_rate", 0) * 100
            self.info(f"  {operation}: {stats['calls']} calls, {stats['failures']} failed ({rate:.1f}%)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "que", level: Optional[str] = None, **kwargs) -> StructuredLogger:
    """
    Return the process-wide logger, creating it on first use.

    Level and log directory default to ``QUE_LOG_LEVEL`` and ``QUE_LOG_DIR``.
    Files are written only when a log directory is known. Arguments are
    ignored once the logger exists.
    """
    global _global_logger

    if _global_logger is None:
        settings = get_settings()
        kwargs.setdefault("log_dir", settings.log_dir)
        kwargs.setdefault("enable_file", kwargs["log_dir"] is not None)
        _global_logger = StructuredLogger(name=name, level=level or settings.log_level, **kwargs)

    return _global_logger


def reset_logger():
    """Forget the process-wide logger so the next get_logger builds a new one."""
    global _global_logger
    _global_logger = None
