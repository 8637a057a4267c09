"""
procmgr core module.

Configuration, error types, redaction and observability shared by the
process registry and the execution facade.
"""

from .config import Config, ExecConfig, LoggingConfig
from .exceptions import (
    Cancelled,
    ConfigError,
    DeadlineExceeded,
    ExecError,
    KillError,
    ProcMgrError,
)
from .observability import configure_observability, get_logger, get_metrics_collector

__all__ = [
    "Config",
    "ExecConfig",
    "LoggingConfig",
    "ProcMgrError",
    "ConfigError",
    "ExecError",
    "KillError",
    "DeadlineExceeded",
    "Cancelled",
    "configure_observability",
    "get_logger",
    "get_metrics_collector",
]
