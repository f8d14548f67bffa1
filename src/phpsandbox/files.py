"""
Temporary script files backing sandbox executions.

Each file lives in its own private directory, so mounting the parent
directory into a container exposes nothing but that one script.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_DIR_MODE = 0o755
_FILE_MODE = 0o644


@dataclass(frozen=True)
class DeleteConfig:
    """Retry behaviour for background deletions."""

    max_retries: int = 3
    retry_delay: float = 0.05
    termination_timeout: float = 0.2

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.retry_delay < 0 or self.termination_timeout < 0:
            raise ValueError("delays must not be negative")


class TempFileManager:
    """
    Creates, writes and deletes temporary script files.

    Deletions are fire-and-forget: ``delete_async`` schedules a background
    task and returns immediately. ``close`` waits briefly for outstanding
    deletions before cancelling them.
    """

    def __init__(self, config: DeleteConfig | None = None, base_dir: Path | str | None = None) -> None:
        self.config = config or DeleteConfig()
        self._owns_base_dir = base_dir is None
        if base_dir is None:
            self._base_dir = Path(tempfile.mkdtemp(prefix="phpsandbox_"))
            os.chmod(self._base_dir, _DIR_MODE)
        else:
            self._base_dir = Path(base_dir)
            self._base_dir.mkdir(parents=True, exist_ok=True)
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def pending(self) -> int:
        """Number of deletions still in flight."""
        return sum(1 for task in self._tasks if not task.done())

    def create_temp_file(self, prefix: str, suffix: str) -> Path:
        """
        Create an empty, uniquely-named file readable by any container user.

        Raises:
            OSError: If the directory or file cannot be created.
        """
        directory = Path(tempfile.mkdtemp(prefix=prefix, dir=self._base_dir))
        try:
            os.chmod(directory, _DIR_MODE)
            fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
            os.close(fd)
            os.chmod(name, _FILE_MODE)
        except OSError:
            shutil.rmtree(directory, ignore_errors=True)
            raise
        return Path(name)

    def write(self, path: Path, content: str) -> None:
        """
        Write text content to a file created by this manager.

        Raises:
            OSError: If the write fails.
        """
        path.write_text(content, encoding="utf-8")

    def delete_async(self, path: Path) -> None:
        """
        Request deletion of a file and its private directory.

        Never raises and never blocks. Without a running event loop the
        deletion is attempted inline, once.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if not self._try_delete(path):
                logger.warning("Could not delete temp file %s", path)
            return

        task = loop.create_task(self._delete_with_retries(path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _delete_with_retries(self, path: Path) -> None:
        for attempt in range(self.config.max_retries + 1):
            if self._try_delete(path):
                logger.debug("Deleted temp file %s", path)
                return
            if attempt < self.config.max_retries:
                await asyncio.sleep(self.config.retry_delay)
        logger.warning(
            "Giving up deleting temp file %s after %d attempts",
            path,
            self.config.max_retries + 1,
        )

    def _try_delete(self, path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
            parent = path.parent
            if parent != self._base_dir and parent.parent == self._base_dir:
                parent.rmdir()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Delete attempt for %s failed: %s", path, exc)
            return False
        return True

    async def close(self) -> None:
        """
        Wait for pending deletions, then release the base directory.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True

        tasks = [task for task in self._tasks if not task.done()]
        if tasks:
            _, still_running = await asyncio.wait(tasks, timeout=self.config.termination_timeout)
            for task in still_running:
                task.cancel()
            if still_running:
                logger.warning("Cancelled %d pending temp file deletions", len(still_running))
                await asyncio.gather(*still_running, return_exceptions=True)

        if self._owns_base_dir:
            shutil.rmtree(self._base_dir, ignore_errors=True)
