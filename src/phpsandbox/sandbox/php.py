"""
PHP sandbox: runs snippets in Docker under an admission limit.

Pipeline per call: acquire a permit, write the prepared script to a temp
file, run it in a container, interpret the output. The permit is released
and the temp file deletion requested on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from phpsandbox.errors import (
    INTERRUPTED_EXIT_CODE,
    ArtifactError,
    FailureKind,
    SandboxError,
)
from phpsandbox.sandbox._base import Sandbox
from phpsandbox.sandbox.interpreter import apply_soft_timeout, interpret
from phpsandbox.sandbox.preparer import prepare_php_code
from phpsandbox.types import CodeSnippet, ExecutionResult

if TYPE_CHECKING:
    from phpsandbox.admission import AdmissionController
    from phpsandbox.files import TempFileManager
    from phpsandbox.sandbox.docker import DockerProcessLauncher

logger = logging.getLogger(__name__)

SNIPPET_PREFIX = "php-snippet-"
SNIPPET_SUFFIX = ".php"


class PhpSandbox(Sandbox):
    """
    Executes PHP snippets inside ephemeral Docker containers.

    Example:
        >>> async with create_sandbox() as sandbox:
        ...     result = await sandbox.execute(CodeSnippet("echo 5 + 7;"))
        >>> result.stdout
        '12'
    """

    def __init__(
        self,
        admission: AdmissionController,
        files: TempFileManager,
        launcher: DockerProcessLauncher,
    ) -> None:
        self.admission = admission
        self.files = files
        self.launcher = launcher
        self._closed = False

    async def execute(self, snippet: CodeSnippet) -> ExecutionResult:
        """
        Execute a snippet. Never raises.

        A cancelled task gets an interrupted result back; its cancellation
        request stays pending so enclosing scopes still see it.
        """
        if self._closed:
            return ExecutionResult.failed(FailureKind.CLOSED, "Sandbox is closed")

        try:
            async with self.admission.permit():
                return await self._execute_in_container(snippet)
        except asyncio.CancelledError:
            logger.info("Execution interrupted while waiting for a permit")
            return ExecutionResult.failed(
                FailureKind.INTERRUPTED,
                "Execution interrupted",
                exit_code=INTERRUPTED_EXIT_CODE,
            )

    async def _execute_in_container(self, snippet: CodeSnippet) -> ExecutionResult:
        artifact: Path | None = None
        try:
            try:
                artifact = self.files.create_temp_file(SNIPPET_PREFIX, SNIPPET_SUFFIX)
                self.files.write(artifact, prepare_php_code(snippet.code))
            except OSError as exc:
                raise ArtifactError(str(exc)) from exc

            process = await self.launcher.launch(artifact)
            result = interpret(process)
            return apply_soft_timeout(result, snippet.timeout)
        except SandboxError as exc:
            return self._failure_result(exc)
        except Exception as exc:
            logger.exception("Unexpected failure while executing snippet")
            return ExecutionResult.failed(FailureKind.INTERNAL, f"Internal sandbox error: {exc}")
        finally:
            if artifact is not None:
                self.files.delete_async(artifact)

    @staticmethod
    def _failure_result(exc: SandboxError) -> ExecutionResult:
        match exc.kind:
            case FailureKind.ARTIFACT_IO:
                message = f"Failed to create/write temp file: {exc}"
            case FailureKind.TIMEOUT:
                message = f"Snippet execution timed out: {exc}"
            case FailureKind.LAUNCH:
                message = f"Failed to handle docker process: {exc}"
                if exc.__cause__ is not None and not isinstance(exc.__cause__, asyncio.CancelledError):
                    message = f"{message}: {exc.__cause__}"
            case _:
                message = str(exc)
        logger.info("Execution failed (%s): %s", exc.kind.value, message)
        return ExecutionResult.failed(exc.kind, message)

    async def close(self) -> None:
        """
        Clean up sandbox resources.

        Waits briefly for pending temp file deletions. Safe to call
        multiple times.
        """
        if self._closed:
            return
        self._closed = True
        await self.files.close()
