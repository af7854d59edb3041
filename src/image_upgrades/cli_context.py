"""
CLI Context for managing application dependencies.

Holds the settings and the registry client for one CLI command execution,
avoiding global state and enabling dependency injection in tests.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .settings import Settings, create_settings_from_env
from .storage.registry import ImageRegistry


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    The registry client is created on first access and reused for the rest
    of the command.
    """
    settings: Settings
    _registry: Optional[ImageRegistry] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """Create CLI context from environment variables."""
        return cls(settings=create_settings_from_env())

    @property
    def registry(self) -> ImageRegistry:
        if self._registry is None:
            from .storage.registry_http import RegistryHTTP
            self._registry = RegistryHTTP(self.settings)
        return self._registry

    def close(self) -> None:
        """Release the registry client, if one was created."""
        close = getattr(self._registry, "close", None)
        if close is not None:
            close()
