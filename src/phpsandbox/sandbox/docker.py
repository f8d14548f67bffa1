"""
Docker-based process launcher.

Builds the ``docker run`` invocation for an isolation policy, starts it and
enforces the hard wall-clock timeout.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from phpsandbox.errors import ConfigurationError, LaunchError, LaunchTimeoutError
from phpsandbox.security.policy import IsolationPolicy

logger = logging.getLogger(__name__)

CONTAINER_CODE_DIR = "/code"
CONTAINER_TMP_DIR = "/tmp"

PHP_INTERPRETER: tuple[str, ...] = (
    "php",
    "-d", "display_errors=stderr",
    "-d", "error_reporting=E_ALL",
)

_KILL_TIMEOUT = 10.0
_READ_CHUNK_SIZE = 8192

DEFAULT_MAX_OUTPUT_BYTES = 30_000


class ContainerProcess:
    """
    Owned handle for a running ``docker run`` client process.

    Output is only available after ``wait`` returned True. Once the process
    has been killed the handle must not be interpreted. Each stream keeps at
    most ``max_output_bytes``; the rest is read and discarded so the client
    never blocks on a full pipe.
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        container_name: str,
        *,
        docker_binary: str = "docker",
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        self._process = process
        self.container_name = container_name
        self._docker_binary = docker_binary
        self._max_output_bytes = max_output_bytes
        self._stdout = b""
        self._stderr = b""
        self._stdout_dropped = 0
        self._stderr_dropped = 0
        self._kill_task: asyncio.Task[None] | None = None

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def stdout(self) -> str:
        return _decode_and_mark(self._stdout, self._stdout_dropped)

    @property
    def stderr(self) -> str:
        return _decode_and_mark(self._stderr, self._stderr_dropped)

    @property
    def truncated(self) -> bool:
        """True if either stream exceeded the output limit."""
        return self._stdout_dropped > 0 or self._stderr_dropped > 0

    async def wait(self, timeout: float) -> bool:
        """
        Wait for the process to exit while draining both pipes.

        Returns:
            True if it exited within ``timeout`` seconds, False otherwise.
        """
        try:
            await asyncio.wait_for(self._drain(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _drain(self) -> None:
        (self._stdout, self._stdout_dropped), (self._stderr, self._stderr_dropped) = (
            await asyncio.gather(
                _read_capped(self._process.stdout, self._max_output_bytes),
                _read_capped(self._process.stderr, self._max_output_bytes),
            )
        )
        await self._process.wait()

    async def force_kill(self) -> None:
        """
        Kill the client process and the container behind it.

        Killing the ``docker run`` client alone leaves the container running,
        so the container is also killed by name. The kill runs to completion
        even if the caller is cancelled meanwhile; the cancellation is
        re-raised afterwards. Repeated calls share the first kill.
        """
        if self._kill_task is None:
            self._kill_task = asyncio.ensure_future(self._kill())
        try:
            await asyncio.shield(self._kill_task)
        except asyncio.CancelledError:
            if not self._kill_task.done():
                await asyncio.wait([self._kill_task])
            raise

    async def _kill(self) -> None:
        try:
            if self._process.returncode is None:
                try:
                    self._process.kill()
                except ProcessLookupError:
                    pass
                await self._process.wait()
        finally:
            await self._kill_container()

    async def _kill_container(self) -> None:
        try:
            killer = await asyncio.create_subprocess_exec(
                self._docker_binary, "kill", self.container_name,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await asyncio.wait_for(killer.wait(), timeout=_KILL_TIMEOUT)
        except (OSError, asyncio.TimeoutError) as exc:
            logger.warning("Could not kill container %s: %s", self.container_name, exc)


async def _read_capped(stream: asyncio.StreamReader | None, limit: int) -> tuple[bytes, int]:
    """Read a stream to EOF, keeping ``limit`` bytes and counting the rest."""
    if stream is None:
        return b"", 0
    kept = bytearray()
    dropped = 0
    while True:
        chunk = await stream.read(_READ_CHUNK_SIZE)
        if not chunk:
            break
        room = limit - len(kept)
        if room > 0:
            kept.extend(chunk[:room])
        dropped += max(len(chunk) - max(room, 0), 0)
    return bytes(kept), dropped


def _decode_and_mark(data: bytes, dropped: int) -> str:
    text = data.decode("utf-8", errors="replace")
    if dropped:
        text += f"\n\n[Truncated: {dropped} bytes removed]"
    return text


class DockerProcessLauncher:
    """
    Runs a script file inside an ephemeral, resource-limited container.

    Example:
        >>> launcher = DockerProcessLauncher(IsolationPolicy.hardened())
        >>> process = await launcher.launch(Path("/tmp/x/snippet.php"))
        >>> print(process.returncode)
    """

    def __init__(
        self,
        policy: IsolationPolicy,
        *,
        docker_binary: str = "docker",
        interpreter: tuple[str, ...] = PHP_INTERPRETER,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        if max_output_bytes <= 0:
            raise ConfigurationError("max_output_bytes must be positive")
        self.policy = policy
        self.docker_binary = docker_binary
        self.interpreter = interpreter
        self.max_output_bytes = max_output_bytes

    def build_command(self, artifact: Path, container_name: str) -> list[str]:
        """Translate the policy into a ``docker run`` argument list."""
        policy = self.policy
        command = [self.docker_binary, "run", "--rm", "--name", container_name]

        if policy.security_hardening:
            if not policy.allow_network:
                command.append("--network=none")
            if policy.read_only:
                command.append("--read-only")
                command.extend([
                    "--tmpfs",
                    f"{CONTAINER_TMP_DIR}:rw,noexec,nosuid,size={policy.tmpfs_size}",
                ])
            if policy.pids_limit > 0:
                command.append(f"--pids-limit={policy.pids_limit}")
            if policy.drop_all_capabilities:
                command.append("--cap-drop=ALL")
            if policy.no_new_privileges:
                command.extend(["--security-opt", "no-new-privileges"])

        if policy.run_as_user.strip():
            command.extend(["--user", policy.run_as_user])

        command.extend(["-m", f"{policy.max_memory_mb}m"])
        command.append(f"--cpus={policy.max_cpu_units}")

        volume_suffix = ":ro" if policy.mounts_read_only else ""
        command.extend(["-v", f"{artifact.parent}:{CONTAINER_CODE_DIR}{volume_suffix}"])

        command.append(policy.container_image)
        command.extend(self.interpreter)
        command.append(f"{CONTAINER_CODE_DIR}/{artifact.name}")
        return command

    async def launch(self, artifact: Path) -> ContainerProcess:
        """
        Execute the script in a container and wait for it to finish.

        Args:
            artifact: Host path of the prepared script.

        Returns:
            The exited process, with its output drained.

        Raises:
            LaunchError: If the process cannot be started, or the wait was
                cancelled (the container is killed first).
            LaunchTimeoutError: If the process outlived the policy timeout
                and was killed.
        """
        container_name = f"phpsandbox-{uuid.uuid4().hex[:12]}"
        command = self.build_command(artifact, container_name)
        timeout = self.policy.execution_timeout

        handle: ContainerProcess | None = None
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            handle = ContainerProcess(
                process,
                container_name,
                docker_binary=self.docker_binary,
                max_output_bytes=self.max_output_bytes,
            )
            if not await handle.wait(timeout):
                await handle.force_kill()
                logger.warning("Docker process timed out after %g seconds", timeout)
                raise LaunchTimeoutError(timeout)
        except asyncio.CancelledError as exc:
            # The task stays marked as cancelling for outer scopes.
            if handle is not None:
                try:
                    await handle.force_kill()
                except asyncio.CancelledError:
                    pass  # reported below as interrupted
            logger.error("Docker process wait was cancelled for %s", container_name)
            raise LaunchError("Failed to execute Docker process", interrupted=True) from exc
        except OSError as exc:
            logger.error("Failed to execute Docker process: %s", exc)
            raise LaunchError("Failed to execute Docker process") from exc

        return handle
