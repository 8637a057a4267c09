"""
Exception classes for procmgr.

This module defines the errors raised by the process registry and the
execution facade. Every error carries enough context (process id,
description, captured output) to be logged or surfaced by the caller
without re-querying state that has already been cleaned up.
"""

from typing import Any, Dict, Optional


class ProcMgrError(Exception):
    """Base exception class for all procmgr errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Initialize procmgr error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigError(ProcMgrError):
    """Exception raised for configuration-related errors."""
    pass


class DeadlineExceeded(TimeoutError):
    """Context error recorded when a run outlives its timeout."""

    def __str__(self) -> str:
        return "context deadline exceeded"


class Cancelled(Exception):
    """Context error recorded when a run was cancelled from outside."""

    def __str__(self) -> str:
        return "context canceled"


class ExecError(ProcMgrError):
    """
    Composite error for a failed run.

    Bundles the registry id, the description, the wait error, the context
    error and the full captured output. ``context_error`` is a
    ``DeadlineExceeded`` instance when the timeout fired and ``None`` for an
    ordinary non-zero or signalled exit.
    """

    def __init__(
        self,
        process_id: int,
        description: str,
        wait_error: str,
        context_error: Optional[BaseException] = None,
        stdout: str = "",
        stderr: str = "",
        returncode: Optional[int] = None,
    ) -> None:
        self.process_id = process_id
        self.description = description
        self.wait_error = wait_error
        self.context_error = context_error
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode

        message = (
            f"exec({process_id}:{description}) failed: "
            f"{wait_error}({context_error if context_error is not None else '<nil>'}) "
            f"stdout: {stdout} stderr: {stderr}"
        )
        super().__init__(
            message,
            error_code="EXEC_TIMEOUT" if self.timed_out else "EXEC_FAILED",
            details={
                "process_id": process_id,
                "description": description,
                "wait_error": wait_error,
                "context_error": str(context_error) if context_error is not None else None,
                "returncode": returncode,
                "stdout": stdout,
                "stderr": stderr,
            },
        )

    @property
    def timed_out(self) -> bool:
        """True when the run was killed because its deadline passed."""
        return isinstance(self.context_error, DeadlineExceeded)


class KillError(ProcMgrError):
    """Exception raised when the OS refuses to terminate a registered process."""

    def __init__(self, process_id: int, description: str, cause: BaseException) -> None:
        self.process_id = process_id
        self.description = description
        super().__init__(
            f"failed to kill process({process_id}/{description}): {cause}",
            error_code="KILL_FAILED",
            details={"process_id": process_id, "description": description},
        )
