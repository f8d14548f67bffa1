"""
Sandbox backends.
"""

from phpsandbox.sandbox._base import Sandbox
from phpsandbox.sandbox.docker import ContainerProcess, DockerProcessLauncher
from phpsandbox.sandbox.php import PhpSandbox

__all__ = [
    "Sandbox",
    "ContainerProcess",
    "DockerProcessLauncher",
    "PhpSandbox",
]
