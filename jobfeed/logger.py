"""
Structured logging system for jobfeed.

Provides centralized logging with console and file output, log levels,
and metrics tracking for monitoring the health of the listing feed.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring feed queries.
    """

    def __init__(
        self,
        name: str = "jobfeed",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        log_level = getattr(logging, level.upper(), logging.INFO)

        self.logger = logging.getLogger(name)
        self.logger.setLevel(log_level)
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {
            "queries_executed": 0,
            "queries_failed": 0,
            "rows_returned": 0,
            "malformed_cursors": 0,
            "views_recorded": 0,
            "queries_by_sort": {},
            "errors_by_type": {},
        }

        if enable_console:
            # stderr keeps CLI output on stdout machine-readable
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(log_level)
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"jobfeed_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_query(self, sort: str, rows: int):
        """Record a successful page query."""
        self.metrics["queries_executed"] += 1
        self.metrics["rows_returned"] += rows
        by_sort = self.metrics["queries_by_sort"]
        by_sort[sort] = by_sort.get(sort, 0) + 1

    def record_query_failure(self, error_type: str):
        """Record a failed page query."""
        self.metrics["queries_failed"] += 1
        if error_type not in self.metrics["errors_by_type"]:
            self.metrics["errors_by_type"][error_type] = 0
        self.metrics["errors_by_type"][error_type] += 1

    def record_malformed_cursor(self):
        """Increment malformed cursor counter."""
        self.metrics["malformed_cursors"] += 1

    def record_view(self):
        """Increment recorded view counter."""
        self.metrics["views_recorded"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = self.metrics.copy()
        executed = metrics_copy["queries_executed"]
        attempted = executed + metrics_copy["queries_failed"]
        metrics_copy["avg_rows_per_query"] = (
            round(metrics_copy["rows_returned"] / executed, 2) if executed else 0
        )
        metrics_copy["success_rate"] = round(executed / attempted, 3) if attempted else 0
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        total = metrics["queries_executed"] + metrics["queries_failed"]
        rate = metrics["success_rate"] * 100

        self.info("=== Feed Query Metrics ===")
        self.info(f"Queries: {metrics['queries_executed']}/{total} ({rate:.1f}% success)")
        self.info(f"Rows returned: {metrics['rows_returned']} (avg {metrics['avg_rows_per_query']}/query)")
        self.info(f"Malformed cursors: {metrics['malformed_cursors']}")

        if metrics["queries_by_sort"]:
            self.info("Queries by sort:")
            for sort, count in metrics["queries_by_sort"].items():
                self.info(f"  {sort}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "jobfeed",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
