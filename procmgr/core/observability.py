"""
Observability infrastructure for procmgr.

This module provides:
- Structured JSON logging
- Metrics collection (Prometheus format) for child process runs and kills
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class LogEntry:
    """Structured log entry."""

    timestamp: str
    level: str
    message: str
    process_id: Optional[int] = None
    service: str = "procmgr"
    component: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None
    duration_ms: Optional[float] = None


class StructuredLogger:
    """Structured JSON logger with per-thread process context."""

    def __init__(self, name: str, output_file: Optional[Path] = None):
        """Initialize structured logger.

        Args:
            name: Logger name (usually module name)
            output_file: Optional file path for JSON log output
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.output_file = output_file

        # Thread-local storage for the process being handled by this thread
        self._context = threading.local()

        if output_file:
            self._setup_json_handler(output_file)

    def _setup_json_handler(self, output_file: Path):
        """Setup JSON file handler."""
        output_file.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(output_file)
        handler.setFormatter(JSONFormatter())
        self.logger.addHandler(handler)

    def set_context(self, process_id: Optional[int] = None):
        """Attach a registry id to all subsequent logs from this thread."""
        self._context.process_id = process_id

    def clear_context(self):
        """Clear the current thread's context."""
        self._context.process_id = None

    def _create_entry(self, level: str, message: str, **kwargs) -> LogEntry:
        """Create a structured log entry."""
        kwargs.setdefault("process_id", getattr(self._context, "process_id", None))
        return LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            message=message,
            component=self.name,
            **kwargs,
        )

    def _log(self, level: LogLevel, message: str, **kwargs):
        """Internal log method."""
        if not self.logger.isEnabledFor(getattr(logging, level.name)):
            return
        entry = self._create_entry(level.value, message, **kwargs)

        log_dict = asdict(entry)
        log_dict = {k: v for k, v in log_dict.items() if v is not None}

        getattr(self.logger, level.value)(json.dumps(log_dict, default=str))

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, error: Optional[Exception] = None, **kwargs):
        """Log error message."""
        error_dict = None
        if error:
            error_dict = {
                "type": type(error).__name__,
                "message": str(error),
            }
        self._log(LogLevel.ERROR, message, error=error_dict, **kwargs)


class JSONFormatter(logging.Formatter):
    """JSON formatter for Python logging."""

    def format(self, record):
        """Format log record as JSON with redaction."""
        from procmgr.core.redact import redact_text

        # Structured entries are already JSON
        if isinstance(record.msg, str) and record.msg.startswith("{"):
            return redact_text(record.getMessage())

        log_dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "message": redact_text(record.getMessage()),
            "component": record.name,
        }

        return json.dumps(log_dict)


class MetricsCollector:
    """Metrics collector for child process runs, in Prometheus format."""

    def __init__(self, namespace: str = "procmgr"):
        """Initialize metrics collector.

        Args:
            namespace: Prometheus metrics namespace
        """
        self.namespace = namespace
        self.registry = CollectorRegistry()
        self.enabled = True

        self._setup_metrics()

    def _setup_metrics(self):
        """Setup Prometheus metrics."""
        self.process_runs = Counter(
            f"{self.namespace}_process_runs_total",
            "Total number of child process runs",
            ["status"],
            registry=self.registry,
        )

        self.process_duration = Histogram(
            f"{self.namespace}_process_run_duration_seconds",
            "Child process wall-clock duration in seconds",
            registry=self.registry,
        )

        self.process_kills = Counter(
            f"{self.namespace}_process_kills_total",
            "Total number of kill requests by outcome",
            ["status"],
            registry=self.registry,
        )

        self.processes_running = Gauge(
            f"{self.namespace}_processes_running",
            "Number of child processes currently registered",
            registry=self.registry,
        )

    def record_run(self, status: str, duration: Optional[float] = None):
        """Record a finished run (ok, failed, timeout, start_failed)."""
        if not self.enabled:
            return
        self.process_runs.labels(status=status).inc()
        if duration is not None:
            self.process_duration.observe(duration)

    def record_kill(self, status: str):
        """Record a kill request outcome (ok, failed, noop)."""
        if not self.enabled:
            return
        self.process_kills.labels(status=status).inc()

    def update_running(self, count: int):
        """Update the registered process gauge."""
        if not self.enabled:
            return
        self.processes_running.set(count)

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        return generate_latest(self.registry)


# Global instances
_logger_cache: Dict[str, StructuredLogger] = {}
_metrics_collector: Optional[MetricsCollector] = None


def get_logger(name: str, output_file: Optional[Path] = None) -> StructuredLogger:
    """Get or create a structured logger.

    Args:
        name: Logger name
        output_file: Optional JSON output file

    Returns:
        StructuredLogger instance
    """
    if name not in _logger_cache:
        _logger_cache[name] = StructuredLogger(name, output_file)
    return _logger_cache[name]


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def configure_observability(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    enable_metrics: bool = True,
):
    """Configure global observability settings.

    Args:
        log_level: Logging level
        log_file: Optional JSON log file path
        enable_metrics: Enable metrics collection
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(JSONFormatter())
        logging.getLogger().addHandler(handler)

    get_metrics_collector().enabled = enable_metrics
