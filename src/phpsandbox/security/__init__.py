"""Security module for phpsandbox."""

from phpsandbox.security.policy import (
    DEFAULT_IMAGE,
    IsolationPolicy,
)

__all__ = ["DEFAULT_IMAGE", "IsolationPolicy"]
