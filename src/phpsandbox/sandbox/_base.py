"""
Abstract base class for all sandbox implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phpsandbox.types import CodeSnippet, ExecutionResult


class Sandbox(ABC):
    """
    Abstract base for all sandbox implementations.

    Executes code snippets in an isolated environment and reports the
    outcome as an ExecutionResult.
    """

    @abstractmethod
    async def execute(self, snippet: CodeSnippet) -> ExecutionResult:
        """
        Execute a code snippet and return the result.

        Implementations never raise: every failure is reported through the
        result's exit code, stderr and ``failure`` kind.

        Args:
            snippet: The code to execute.

        Returns:
            ExecutionResult with stdout, stderr, exit_code and duration.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Clean up sandbox resources.

        Idempotent - safe to call multiple times.
        """
        ...

    async def __aenter__(self) -> Sandbox:
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager, cleaning up resources."""
        await self.close()
