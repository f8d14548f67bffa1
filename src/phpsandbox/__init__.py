"""
Top-level facade for phpsandbox.
"""

from phpsandbox.admission import AdmissionController
from phpsandbox.api import create_sandbox, run_snippet
from phpsandbox.errors import (
    FAILURE_EXIT_CODE,
    INTERRUPTED_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
    ConfigurationError,
    FailureKind,
    SandboxError,
)
from phpsandbox.files import DeleteConfig, TempFileManager
from phpsandbox.sandbox import DockerProcessLauncher, PhpSandbox, Sandbox
from phpsandbox.security import IsolationPolicy
from phpsandbox.settings import SandboxSettings, load_settings
from phpsandbox.types import CodeSnippet, ExecutionResult

__version__ = "0.1.0"

__all__ = [
    "create_sandbox",
    "run_snippet",
    "Sandbox",
    "PhpSandbox",
    "DockerProcessLauncher",
    "AdmissionController",
    "TempFileManager",
    "DeleteConfig",
    "IsolationPolicy",
    "SandboxSettings",
    "load_settings",
    "CodeSnippet",
    "ExecutionResult",
    "FailureKind",
    "SandboxError",
    "ConfigurationError",
    "FAILURE_EXIT_CODE",
    "INTERRUPTED_EXIT_CODE",
    "TIMEOUT_EXIT_CODE",
]
