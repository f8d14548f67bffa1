"""
Core types and data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from phpsandbox.errors import (
    FAILURE_EXIT_CODE,
    ConfigurationError,
    FailureKind,
)


@dataclass(frozen=True)
class CodeSnippet:
    """Source code submitted for execution."""

    code: str
    """Raw source, with or without the opening ``<?php`` tag."""

    timeout: float | None = None
    """Optional per-request soft timeout in seconds."""

    language: str = "php"
    """Language tag. Carried along, never interpreted by the engine."""

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be a positive number of seconds")


@dataclass(frozen=True)
class ExecutionResult:
    """Result of a snippet execution."""

    exit_code: int
    """Exit status of the interpreter, or a sentinel for engine failures."""

    stdout: str | None
    """Standard output. None when the snippet never reached the container."""

    stderr: str
    """Standard error output, or a diagnostic for engine failures."""

    duration_ms: int = 0
    """Execution time reported by the snippet itself, in milliseconds."""

    failure: FailureKind | None = None
    """Set when the result was produced by the engine instead of user code."""

    truncated: bool = False
    """True if stdout or stderr exceeded the output limit and was cut."""

    @classmethod
    def failed(
        cls,
        kind: FailureKind,
        message: str,
        *,
        exit_code: int = FAILURE_EXIT_CODE,
    ) -> ExecutionResult:
        """Build the result of an execution that never produced output."""
        return cls(exit_code=exit_code, stdout=None, stderr=message, duration_ms=0, failure=kind)

    @property
    def execution_time(self) -> timedelta:
        return timedelta(milliseconds=self.duration_ms)

    @property
    def timed_out(self) -> bool:
        """True if either the hard or the soft timeout was hit."""
        return self.failure in (FailureKind.TIMEOUT, FailureKind.SOFT_TIMEOUT)

    @property
    def is_success(self) -> bool:
        """True if exit_code is 0 and the engine reported no failure."""
        return self.exit_code == 0 and self.failure is None
