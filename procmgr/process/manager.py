"""
Execution facade for child processes.

Runs a command to completion with a bound on wall-clock time, captures its
stdout and stderr in full, and keeps it registered in a ``Registry`` for as
long as it runs so it can be listed or killed from another thread.
"""

from __future__ import annotations

import io
import logging
import os
import signal
import subprocess
import threading
import time
from typing import IO, Mapping, Optional, Tuple, Union

from procmgr.core.config import ExecConfig
from procmgr.core.exceptions import Cancelled, DeadlineExceeded, ExecError
from procmgr.core.observability import get_logger, get_metrics_collector
from procmgr.core.redact import redact_argv
from procmgr.process.registry import ProcessRecord, Registry

logger = get_logger(__name__)

StdinSource = Union[bytes, str, IO, None]

# Children lead their own process group so a timeout reaches their descendants
_POSIX = os.name == "posix"


def _stdin_source(stdin: StdinSource, encoding: str):
    """Map a stdin argument to (Popen stdin, communicate input)."""
    if stdin is None:
        return subprocess.DEVNULL, None
    if isinstance(stdin, str):
        return subprocess.PIPE, stdin.encode(encoding)
    if isinstance(stdin, (bytes, bytearray, memoryview)):
        return subprocess.PIPE, bytes(stdin)

    try:
        stdin.fileno()
    except (AttributeError, io.UnsupportedOperation):
        # In-memory readers have no descriptor to hand to the child
        data = stdin.read()
        if isinstance(data, str):
            data = data.encode(encoding)
        return subprocess.PIPE, data
    return stdin, None


def _wait_error(returncode: int) -> str:
    if returncode < 0:
        try:
            return f"signal: {signal.Signals(-returncode).name}"
        except ValueError:
            return f"signal: {-returncode}"
    return f"exit status {returncode}"


def _kill_group(proc: subprocess.Popen) -> None:
    """Kill a child and everything left in its process group."""
    if _POSIX:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            # Group already gone; the leader may still need reaping
            pass
    proc.kill()


class Manager:
    """
    Runs child processes and tracks them in a registry.

    A host builds one ``Manager`` at its composition root and passes it to
    whatever needs to run commands. ``get_manager()`` provides a lazily
    created default for hosts that do not wire their own.
    """

    def __init__(
        self,
        registry: Optional[Registry] = None,
        config: Optional[ExecConfig] = None,
    ):
        self.registry = registry if registry is not None else Registry()
        self.config = config if config is not None else ExecConfig()

    def exec(self, description: str, command: str, *args: str) -> Tuple[str, str]:
        """Run a command with the default timeout."""
        return self.exec_dir(None, None, description, command, *args)

    def exec_timeout(
        self, timeout: Optional[float], description: str, command: str, *args: str
    ) -> Tuple[str, str]:
        """Run a command with a specific timeout in seconds."""
        return self.exec_dir(timeout, None, description, command, *args)

    def exec_dir(
        self,
        timeout: Optional[float],
        dir: Optional[str],
        description: str,
        command: str,
        *args: str,
    ) -> Tuple[str, str]:
        """Run a command in the given working directory."""
        return self.exec_dir_env(timeout, dir, description, None, command, *args)

    def exec_dir_env(
        self,
        timeout: Optional[float],
        dir: Optional[str],
        description: str,
        env: Optional[Mapping[str, str]],
        command: str,
        *args: str,
    ) -> Tuple[str, str]:
        """Run a command in the given directory with a replacement environment."""
        return self.exec_dir_env_stdin(
            timeout, dir, description, env, None, command, *args
        )

    def exec_dir_env_stdin(
        self,
        timeout: Optional[float],
        dir: Optional[str],
        description: str,
        env: Optional[Mapping[str, str]],
        stdin: StdinSource,
        command: str,
        *args: str,
    ) -> Tuple[str, str]:
        """
        Run a command and wait for it up to ``timeout`` seconds.

        Args:
            timeout: Seconds to wait, or None for the configured default
            dir: Working directory; empty or None inherits the host's
            description: Label stored with the registry entry
            env: Replacement environment; None inherits the host's
            stdin: bytes, str or a readable file; None connects the null device
            command: Executable to run
            *args: Arguments passed to the executable

        Returns:
            Tuple of (stdout, stderr) text

        Raises:
            OSError: If the process could not be started
            ExecError: If the process exited non-zero, was signalled or timed out
        """
        timeout = self._resolve_timeout(timeout)
        metrics = get_metrics_collector()
        encoding = self.config.encoding
        stdin_arg, input_data = _stdin_source(stdin, encoding)

        started = time.monotonic()
        try:
            proc = subprocess.Popen(
                [command, *args],
                cwd=dir or None,
                env=dict(env) if env is not None else None,
                stdin=stdin_arg,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except OSError as e:
            metrics.record_run("start_failed")
            logger.warning(
                "Process failed to start",
                metadata={"description": description, "command": redact_argv(command, args)},
                error={"type": type(e).__name__, "message": str(e)},
            )
            raise

        process_id = self.registry.add(description, proc)
        logger.set_context(process_id=process_id)
        try:
            return self._wait(
                proc, process_id, description, command, args,
                input_data, timeout, started,
            )
        finally:
            logger.clear_context()

    def _wait(
        self,
        proc: subprocess.Popen,
        process_id: int,
        description: str,
        command: str,
        args: Tuple[str, ...],
        input_data: Optional[bytes],
        timeout: float,
        started: float,
    ) -> Tuple[str, str]:
        """Wait for a registered child, then unregister it and build the result."""
        metrics = get_metrics_collector()
        encoding = self.config.encoding

        if logger.logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Process started",
                metadata={
                    "description": description,
                    "command": redact_argv(command, args),
                    "os_pid": proc.pid,
                    "timeout": timeout,
                },
            )

        context_error: Optional[BaseException] = None
        try:
            try:
                out, err = proc.communicate(input=input_data, timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_group(proc)
                out, err = proc.communicate()
                context_error = DeadlineExceeded()
            except BaseException:
                _kill_group(proc)
                proc.wait()
                raise
        finally:
            if not self.registry.remove(process_id) and context_error is None:
                # The entry was already dropped by kill()
                context_error = Cancelled()

        duration = time.monotonic() - started
        stdout = out.decode(encoding, errors="replace")
        stderr = err.decode(encoding, errors="replace")
        returncode = proc.returncode

        if returncode != 0 or isinstance(context_error, DeadlineExceeded):
            error = ExecError(
                process_id=process_id,
                description=description,
                wait_error=_wait_error(returncode),
                context_error=context_error,
                stdout=stdout,
                stderr=stderr,
                returncode=returncode,
            )
            metrics.record_run("timeout" if error.timed_out else "failed", duration)
            logger.warning(
                "Process failed",
                duration_ms=duration * 1000,
                metadata={
                    "description": description,
                    "wait_error": error.wait_error,
                    "context_error": error.details["context_error"],
                },
            )
            raise error

        metrics.record_run("ok", duration)
        logger.debug(
            "Process finished",
            duration_ms=duration * 1000,
            metadata={"description": description},
        )
        return stdout, stderr

    def kill(self, process_id: int) -> None:
        """Terminate a running process by its registry id."""
        self.registry.kill(process_id)

    def processes(self) -> list[ProcessRecord]:
        """Snapshot of the processes currently running, ordered by id."""
        return self.registry.processes()

    def _resolve_timeout(self, timeout: Optional[float]) -> float:
        if timeout is None:
            return self.config.default_timeout
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")
        return float(timeout)


_manager: Optional[Manager] = None
_manager_lock = threading.Lock()


def get_manager() -> Manager:
    """Get the process-wide default manager, creating it on first use."""
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = Manager()
        return _manager
