"""
Isolation policy for container executions.

This is the resource and hardening envelope applied to every snippet.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from phpsandbox.errors import ConfigurationError


DEFAULT_IMAGE = "php:8.2-cli"
NOBODY_USER = "65534:65534"


@dataclass(frozen=True)
class IsolationPolicy:
    """
    Resource limits and security hardening for the sandbox container.

    Two presets are provided:
    - hardened(): no network, read-only root, dropped capabilities (recommended)
    - permissive(): resource limits only, no hardening flags

    The policy is validated on construction and never partially valid.
    """

    max_memory_mb: int = 16
    max_cpu_units: float = 0.125
    execution_timeout: float = 15.0
    container_image: str = DEFAULT_IMAGE

    security_hardening: bool = True
    allow_network: bool = False
    read_only: bool = True
    tmpfs_size: str = "64m"
    pids_limit: int = 64
    drop_all_capabilities: bool = True
    no_new_privileges: bool = True
    run_as_user: str = ""

    def __post_init__(self) -> None:
        if self.max_memory_mb <= 0:
            raise ConfigurationError("max_memory_mb must be greater than 0")
        if self.max_cpu_units <= 0:
            raise ConfigurationError("max_cpu_units must be greater than 0")
        if self.execution_timeout <= 0:
            raise ConfigurationError("execution_timeout must be a positive duration")
        if not isinstance(self.container_image, str) or not self.container_image:
            raise ConfigurationError("container_image must be a non-empty string")
        if self.pids_limit < 0:
            raise ConfigurationError("pids_limit must not be negative (0 means unlimited)")

    @classmethod
    def hardened(cls, **overrides: Any) -> IsolationPolicy:
        """
        Create the hardened policy (recommended).

        Networking is disabled, the root filesystem is read-only and the
        interpreter runs as ``nobody`` without capabilities.
        """
        options: dict[str, Any] = {
            "security_hardening": True,
            "allow_network": False,
            "read_only": True,
            "pids_limit": 64,
            "drop_all_capabilities": True,
            "no_new_privileges": True,
            "run_as_user": NOBODY_USER,
        }
        options.update(overrides)
        return cls(**options)

    @classmethod
    def permissive(cls, **overrides: Any) -> IsolationPolicy:
        """
        Create a policy that only applies memory, CPU and timeout limits.

        Use only for trusted code or when debugging images.
        """
        options: dict[str, Any] = {"security_hardening": False}
        options.update(overrides)
        return cls(**options)

    @property
    def mounts_read_only(self) -> bool:
        """True if the root filesystem and the code mount are read-only."""
        return self.security_hardening and self.read_only
