"""
Pytest configuration and shared fixtures for procmgr tests.

This module provides common fixtures for the registry, execution facade
and CLI test suites. Plain helpers live in tests/fixtures/processes.py.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from procmgr.core import observability
from procmgr.core.config import ExecConfig
from procmgr.process.manager import Manager
from procmgr.process.registry import Registry


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give every test its own metrics collector."""
    observability._metrics_collector = None
    yield observability.get_metrics_collector()
    observability._metrics_collector = None


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def registry():
    """Create an empty registry."""
    return Registry()


@pytest.fixture
def manager(registry):
    """Create a manager bound to the test registry."""
    return Manager(registry=registry, config=ExecConfig(default_timeout=10.0))


@pytest.fixture
def live_handle():
    """A Popen-like mock that reports itself as still running."""
    handle = Mock()
    handle.poll.return_value = None
    handle.pid = 4242
    return handle


@pytest.fixture
def exited_handle():
    """A Popen-like mock that has already exited."""
    handle = Mock()
    handle.poll.return_value = 0
    handle.pid = 4243
    return handle
