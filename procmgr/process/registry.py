"""
Process registry - tracks child processes while they run.

Thread-safe table mapping a locally issued id to the subprocess handle
that owns it. Ids start at 1, increase strictly and are never reused.
They are unrelated to the operating system's pid.
"""

from __future__ import annotations

import subprocess
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from procmgr.core.exceptions import KillError
from procmgr.core.observability import get_logger, get_metrics_collector

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessRecord:
    """A child process tracked by the registry."""

    process_id: int
    description: str
    start: datetime
    handle: Optional[subprocess.Popen] = None

    def is_running(self) -> bool:
        """True when the handle is live and has not exited yet."""
        return self.handle is not None and self.handle.poll() is None

    def to_dict(self) -> dict:
        return {
            "process_id": self.process_id,
            "description": self.description,
            "start": self.start.isoformat(),
            "os_pid": self.handle.pid if self.handle is not None else None,
            "running": self.is_running(),
        }


class Registry:
    """Thread-safe registry of running child processes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counter = 0
        self._processes: Dict[int, ProcessRecord] = {}

    def add(self, description: str, handle: Optional[subprocess.Popen] = None) -> int:
        """Register a process and return its new id."""
        with self._lock:
            self._counter += 1
            process_id = self._counter
            self._processes[process_id] = ProcessRecord(
                process_id=process_id,
                description=description,
                start=datetime.now(timezone.utc),
                handle=handle,
            )
            count = len(self._processes)

        get_metrics_collector().update_running(count)
        return process_id

    def remove(self, process_id: int) -> bool:
        """
        Forget a process. Unknown or already removed ids are ignored.

        Returns True when an entry was dropped by this call.
        """
        with self._lock:
            removed = self._processes.pop(process_id, None) is not None
            count = len(self._processes)

        get_metrics_collector().update_running(count)
        return removed

    def kill(self, process_id: int) -> None:
        """
        Terminate a registered process and drop it from the table.

        Lookup, termination and removal happen in one critical section. An id
        that is not registered is a successful no-op. If the OS refuses the
        termination request the record stays registered so the kill can be
        retried, and ``KillError`` is raised.
        """
        metrics = get_metrics_collector()

        with self._lock:
            record = self._processes.get(process_id)
            if record is None:
                metrics.record_kill("noop")
                return

            if record.is_running():
                try:
                    record.handle.kill()
                except OSError as e:
                    metrics.record_kill("failed")
                    logger.error(
                        "Kill request failed",
                        error=e,
                        process_id=process_id,
                        metadata={"description": record.description},
                    )
                    raise KillError(process_id, record.description, e) from e

            del self._processes[process_id]
            count = len(self._processes)

        metrics.record_kill("ok")
        metrics.update_running(count)
        logger.info(
            "Process killed",
            process_id=process_id,
            metadata={"description": record.description},
        )

    def get(self, process_id: int) -> Optional[ProcessRecord]:
        with self._lock:
            return self._processes.get(process_id)

    def processes(self) -> List[ProcessRecord]:
        """Snapshot of the registered processes, ordered by id."""
        with self._lock:
            return sorted(self._processes.values(), key=lambda r: r.process_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)

    def __contains__(self, process_id: object) -> bool:
        with self._lock:
            return process_id in self._processes
