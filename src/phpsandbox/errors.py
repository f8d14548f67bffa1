"""
Error taxonomy for the PHP sandbox.

Every stage of an execution raises a ``SandboxError`` tagged with a
``FailureKind``. Only the sandbox engine turns these into results.
"""

from __future__ import annotations

from enum import Enum


FAILURE_EXIT_CODE = -1
"""Exit code reported when the engine itself failed (I/O, launch, hard timeout)."""

INTERRUPTED_EXIT_CODE = -2
"""Exit code reported when waiting for an admission permit was cancelled."""

TIMEOUT_EXIT_CODE = 124
"""Exit code reported when a snippet exceeded its own requested timeout."""


class FailureKind(Enum):
    """Why an execution did not produce a plain user-code result."""

    INTERRUPTED = "interrupted"
    ARTIFACT_IO = "artifact_io"
    LAUNCH = "launch"
    TIMEOUT = "timeout"
    SOFT_TIMEOUT = "soft_timeout"
    CLOSED = "closed"
    INTERNAL = "internal"


class SandboxError(Exception):
    """Base class for all sandbox errors."""

    kind: FailureKind = FailureKind.INTERNAL


class ConfigurationError(SandboxError, ValueError):
    """Raised when a policy or settings value is invalid."""


class ArtifactError(SandboxError):
    """Raised when the temporary script file cannot be created or written."""

    kind = FailureKind.ARTIFACT_IO


class LaunchError(SandboxError):
    """
    Raised when the container process cannot be started or its wait was cancelled.

    Attributes:
        interrupted: True if the wait was cut short by task cancellation.
    """

    kind = FailureKind.LAUNCH

    def __init__(self, message: str, *, interrupted: bool = False) -> None:
        self.interrupted = interrupted
        super().__init__(message)


class LaunchTimeoutError(LaunchError):
    """Raised after a container process outlived the hard timeout and was killed."""

    kind = FailureKind.TIMEOUT

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Execution timed out after {timeout:g} seconds")
