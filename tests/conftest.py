"""Pytest configuration and fixtures for phpsandbox tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from phpsandbox import (
    AdmissionController,
    DeleteConfig,
    DockerProcessLauncher,
    IsolationPolicy,
    PhpSandbox,
    TempFileManager,
)


class FakeStream:
    """Serves fixed bytes through the asyncio.StreamReader read() API."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.reads = 0

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            n = len(self._data)
        chunk, self._data = self._data[:n], self._data[n:]
        if chunk:
            self.reads += 1
        return chunk


class FakeProcess:
    """Stands in for asyncio.subprocess.Process."""

    def __init__(
        self,
        *,
        returncode: int = 0,
        stdout: bytes = b"",
        stderr: bytes = b"",
        delay: float = 0.0,
    ) -> None:
        self.pid = 4242
        self.returncode: int | None = None
        self.killed = False
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self._final_returncode = returncode
        self._delay = delay

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        if self.returncode is None and self._delay:
            await asyncio.sleep(self._delay)
        if self.returncode is None:
            self.returncode = self._final_returncode
        return self.returncode


class SlowToDieProcess(FakeProcess):
    """Takes 0.2 seconds to be reaped after it was killed."""

    async def wait(self) -> int:
        if self.killed:
            await asyncio.sleep(0.2)
        return await super().wait()


class FakeDocker:
    """Replacement for asyncio.create_subprocess_exec that records every call."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.next_process = FakeProcess()
        self.start_error: BaseException | None = None
        self.launched: list[FakeProcess] = []

    async def __call__(self, *args: str, **kwargs: object) -> FakeProcess:
        self.calls.append(list(args))
        if len(args) > 1 and args[1] == "kill":
            return FakeProcess()
        if self.start_error is not None:
            raise self.start_error
        self.launched.append(self.next_process)
        return self.next_process

    @property
    def run_calls(self) -> list[list[str]]:
        return [call for call in self.calls if call[1] == "run"]

    @property
    def kill_calls(self) -> list[list[str]]:
        return [call for call in self.calls if call[1] == "kill"]


class RecordingFileManager(TempFileManager):
    """TempFileManager that records deletions and can be told to fail."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        super().__init__(*args, **kwargs)
        self.created: list[Path] = []
        self.deleted: list[Path] = []
        self.fail_create: OSError | None = None
        self.fail_write: OSError | None = None

    def create_temp_file(self, prefix: str, suffix: str) -> Path:
        if self.fail_create is not None:
            raise self.fail_create
        path = super().create_temp_file(prefix, suffix)
        self.created.append(path)
        return path

    def write(self, path: Path, content: str) -> None:
        if self.fail_write is not None:
            raise self.fail_write
        super().write(path, content)

    def delete_async(self, path: Path) -> None:
        self.deleted.append(path)
        super().delete_async(path)


def sentinel_output(stdout: str, ms: float = 3.25) -> bytes:
    """Stdout as printed by a prepared script."""
    return f"{stdout}\n__EXECUTION_TIME__: {ms:.3f}\n".encode()


@pytest.fixture
def fake_docker(monkeypatch: pytest.MonkeyPatch) -> FakeDocker:
    """Route all subprocess launches to a FakeDocker."""
    fake = FakeDocker()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    return fake


@pytest.fixture
def policy() -> IsolationPolicy:
    """Hardened policy with a short hard timeout."""
    return IsolationPolicy.hardened(max_memory_mb=128, max_cpu_units=1.0, execution_timeout=1.0)


@pytest.fixture
def admission() -> AdmissionController:
    return AdmissionController(2)


@pytest_asyncio.fixture
async def files(tmp_path: Path) -> AsyncGenerator[RecordingFileManager, None]:
    manager = RecordingFileManager(
        DeleteConfig(max_retries=1, retry_delay=0.01, termination_timeout=1.0),
        base_dir=tmp_path / "snippets",
    )
    try:
        yield manager
    finally:
        await manager.close()


@pytest_asyncio.fixture
async def sandbox(
    admission: AdmissionController,
    files: RecordingFileManager,
    policy: IsolationPolicy,
) -> AsyncGenerator[PhpSandbox, None]:
    """PhpSandbox wired to a recording file manager."""
    sandbox = PhpSandbox(admission, files, DockerProcessLauncher(policy))
    try:
        yield sandbox
    finally:
        await sandbox.close()
