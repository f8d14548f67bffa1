"""Sandbox settings with YAML support."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from phpsandbox.errors import ConfigurationError
from phpsandbox.files import DeleteConfig
from phpsandbox.sandbox.docker import DEFAULT_MAX_OUTPUT_BYTES
from phpsandbox.security.policy import DEFAULT_IMAGE, NOBODY_USER, IsolationPolicy


class SecuritySettings(BaseModel):
    """Container hardening switches."""

    enable_hardening: bool = True
    allow_network: bool = False
    read_only: bool = True
    pids_limit: int = Field(default=64, ge=0)
    run_as_user: str = NOBODY_USER
    tmpfs_size: str = "64m"
    drop_capabilities: bool = True
    no_new_privileges: bool = True


class DeleteSettings(BaseModel):
    """Retry behaviour for temp file deletion."""

    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=0.05, ge=0)
    termination_timeout: float = Field(default=0.2, ge=0)


class SandboxSettings(BaseModel):
    """Top-level sandbox configuration."""

    max_concurrency: int = Field(default=5, gt=0)
    max_memory_mb: int = Field(default=16, gt=0)
    max_cpu_units: float = Field(default=0.125, gt=0)
    max_execution_time: float = Field(default=15.0, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    docker_image: str = Field(default=DEFAULT_IMAGE, min_length=1)
    docker_binary: str = "docker"
    temp_dir: str | None = None

    security: SecuritySettings = Field(default_factory=SecuritySettings)
    delete: DeleteSettings = Field(default_factory=DeleteSettings)

    def to_policy(self) -> IsolationPolicy:
        return IsolationPolicy(
            max_memory_mb=self.max_memory_mb,
            max_cpu_units=self.max_cpu_units,
            execution_timeout=self.max_execution_time,
            container_image=self.docker_image,
            security_hardening=self.security.enable_hardening,
            allow_network=self.security.allow_network,
            read_only=self.security.read_only,
            tmpfs_size=self.security.tmpfs_size,
            pids_limit=self.security.pids_limit,
            drop_all_capabilities=self.security.drop_capabilities,
            no_new_privileges=self.security.no_new_privileges,
            run_as_user=self.security.run_as_user,
        )

    def to_delete_config(self) -> DeleteConfig:
        return DeleteConfig(
            max_retries=self.delete.max_retries,
            retry_delay=self.delete.retry_delay,
            termination_timeout=self.delete.termination_timeout,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SandboxSettings:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sandbox settings: {e}") from e


def load_settings(yaml_path: str | Path | None = None) -> SandboxSettings:
    """Load sandbox settings from a YAML file.

    The settings may sit at the top level or under a ``sandbox`` key.
    Without a path, the defaults are returned.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        SandboxSettings instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ConfigurationError: If YAML is invalid or holds invalid values
    """
    if yaml_path is None:
        return SandboxSettings()

    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}") from e

    if data is None:
        return SandboxSettings()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping in {yaml_path}")

    section = data.get("sandbox", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'sandbox' section in {yaml_path} must be a mapping")
    return SandboxSettings.from_dict(section)


def dump_settings(settings: SandboxSettings) -> str:
    """Render settings as YAML."""
    return yaml.dump(
        {"sandbox": settings.model_dump()},
        default_flow_style=False,
        sort_keys=False,
        indent=2,
    )
