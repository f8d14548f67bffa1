"""
Interprets the output of an exited container process.

Timing protocol: the prepared script prints one line matching
``EXECUTION_TIME_PATTERN`` to stdout, where the captured number is the
in-script execution time in milliseconds. The last such line is removed
from the output returned to the caller.
"""

from __future__ import annotations

import dataclasses
import re
from typing import TYPE_CHECKING

from phpsandbox.errors import TIMEOUT_EXIT_CODE, FailureKind
from phpsandbox.types import ExecutionResult

if TYPE_CHECKING:
    from phpsandbox.sandbox.docker import ContainerProcess


EXECUTION_TIME_PATTERN = re.compile(r"__EXECUTION_TIME__:\s*(\d+(?:\.\d+)?)")


def normalize_stream(text: str) -> str:
    """Join lines with ``\\n`` and trim surrounding whitespace."""
    return "\n".join(text.splitlines()).strip()


def extract_execution_time(stdout: str) -> tuple[str, int]:
    """
    Split the timing sentinel out of normalized stdout.

    Only the last sentinel counts, since the prepared script prints it after
    the user code has finished. Anything the user code printed that looks
    like a sentinel stays in the output.

    Returns:
        The stdout without the sentinel, and the reported milliseconds
        (truncated), or 0 if no sentinel was printed.
    """
    matches = list(EXECUTION_TIME_PATTERN.finditer(stdout))
    if not matches:
        return stdout, 0
    last = matches[-1]
    duration_ms = int(float(last.group(1)))
    remainder = stdout[: last.start()] + stdout[last.end():]
    return remainder.strip(), duration_ms


def parse_output(exit_code: int, stdout: str, stderr: str, *, truncated: bool = False) -> ExecutionResult:
    out, duration_ms = extract_execution_time(normalize_stream(stdout))
    return ExecutionResult(
        exit_code=exit_code,
        stdout=out,
        stderr=normalize_stream(stderr),
        duration_ms=duration_ms,
        truncated=truncated,
    )


def interpret(process: ContainerProcess) -> ExecutionResult:
    """Build the result of an exited process from its exit code and output."""
    exit_code = process.returncode
    if exit_code is None:
        raise RuntimeError("interpret() requires an exited process")
    return parse_output(exit_code, process.stdout, process.stderr, truncated=process.truncated)


def apply_soft_timeout(result: ExecutionResult, timeout: float | None) -> ExecutionResult:
    """
    Flag a result whose reported duration exceeded the requested timeout.

    The exit code and stderr are replaced; stdout and duration are kept.
    The process is not killed for this, it has already exited.
    """
    if timeout is None or result.duration_ms <= timeout * 1000:
        return result
    return dataclasses.replace(
        result,
        exit_code=TIMEOUT_EXIT_CODE,
        stderr=(
            f"Execution exceeded the requested timeout of {timeout:g} seconds "
            f"(took {result.duration_ms} ms)"
        ),
        failure=FailureKind.SOFT_TIMEOUT,
    )
