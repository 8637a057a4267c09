"""
Child process execution and tracking.

- Registry: thread-safe table of running processes keyed by local id
- Manager: runs commands with a timeout, captures output, supports kill
"""

from .manager import Manager, get_manager
from .registry import ProcessRecord, Registry

__all__ = ["Manager", "ProcessRecord", "Registry", "get_manager"]
