"""
Main entry point: the create_sandbox factory function.

Wires the admission controller, temp file manager and Docker launcher
from a single settings object.
"""

from __future__ import annotations

import asyncio

from phpsandbox.admission import AdmissionController
from phpsandbox.files import TempFileManager
from phpsandbox.sandbox.docker import DockerProcessLauncher
from phpsandbox.sandbox.php import PhpSandbox
from phpsandbox.settings import SandboxSettings
from phpsandbox.types import CodeSnippet, ExecutionResult


def create_sandbox(settings: SandboxSettings | None = None) -> PhpSandbox:
    """
    Create a PHP sandbox from settings.

    Args:
        settings: Sandbox configuration. Defaults to SandboxSettings().

    Returns:
        A PhpSandbox. Close it (or use it as an async context manager)
        to flush pending temp file deletions.

    Raises:
        ConfigurationError: If the settings describe an invalid policy.

    Example:
        >>> async with create_sandbox() as sandbox:
        ...     result = await sandbox.execute(CodeSnippet("echo 5 + 7;"))
        >>> print(result.stdout)
        12
    """
    settings = settings or SandboxSettings()
    policy = settings.to_policy()

    return PhpSandbox(
        admission=AdmissionController(settings.max_concurrency),
        files=TempFileManager(settings.to_delete_config(), base_dir=settings.temp_dir),
        launcher=DockerProcessLauncher(
            policy,
            docker_binary=settings.docker_binary,
            max_output_bytes=settings.max_output_bytes,
        ),
    )


def run_snippet(
    code: str,
    *,
    timeout: float | None = None,
    settings: SandboxSettings | None = None,
) -> ExecutionResult:
    """
    Execute a single snippet from synchronous code.

    Must not be called from a running event loop.
    """
    snippet = CodeSnippet(code, timeout=timeout)

    async def _run() -> ExecutionResult:
        async with create_sandbox(settings) as sandbox:
            return await sandbox.execute(snippet)

    return asyncio.run(_run())
