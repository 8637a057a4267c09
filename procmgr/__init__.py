"""
procmgr - run external commands with a timeout and track them while they run.

Core Components:
- Registry: thread-safe table of running child processes keyed by local id
- Manager: spawn/wait/collect-output facade with timeout and kill by id
- Config: pydantic settings loaded from YAML, JSON or the environment
- Observability: structured JSON logging and Prometheus metrics
"""

from procmgr.core.config import Config, ExecConfig
from procmgr.core.exceptions import (
    Cancelled,
    ConfigError,
    DeadlineExceeded,
    ExecError,
    KillError,
    ProcMgrError,
)
from procmgr.core.observability import get_metrics_collector
from procmgr.process.manager import Manager, get_manager
from procmgr.process.registry import ProcessRecord, Registry

__version__ = "0.1.0"

__all__ = [
    "Manager",
    "Registry",
    "ProcessRecord",
    "get_manager",
    "Config",
    "ExecConfig",
    "ProcMgrError",
    "ConfigError",
    "ExecError",
    "KillError",
    "DeadlineExceeded",
    "Cancelled",
    "get_metrics_collector",
]
