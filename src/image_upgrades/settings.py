"""
Settings and configuration for image-upgrades.

Centralizes configuration values for the registry client and validates them
with fail-fast behavior. Settings are loaded from environment variables when
the CLI context is created.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "DOCKER_HUB_REGISTRY"]

DOCKER_HUB_REGISTRY = "index.docker.io"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the registry client.

    default_registry: Registry host used when a reference names none
    registry_insecure: Allow HTTP connections for local/dev registries
    registry_user: Username for registry authentication (overrides Docker config)
    registry_pass: Password for registry authentication
    http_timeout_s: HTTP request timeout in seconds
    http_retry: Number of retries for timed-out requests (0=no retry)
    tags_page_size: Page size requested when listing tags
    docker_config: Path to Docker's config.json (None = ~/.docker/config.json)
    """
    default_registry: str = DOCKER_HUB_REGISTRY
    registry_insecure: bool = False
    registry_user: Optional[str] = None
    registry_pass: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 2
    tags_page_size: int = 1000
    docker_config: Optional[Path] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.default_registry:
            raise ValueError("default_registry is required")

        # host[:port], optionally with scheme
        host_pattern = r"^(?:https?://)?[a-zA-Z0-9.-]+(?::[0-9]+)?$"
        if not re.match(host_pattern, self.default_registry):
            raise ValueError(f"Invalid default_registry format: {self.default_registry}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if self.tags_page_size <= 0:
            raise ValueError(f"tags_page_size must be positive, got {self.tags_page_size}")

        if bool(self.registry_user) != bool(self.registry_pass):
            raise ValueError("registry_user and registry_pass must be specified together")


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - IMAGE_UPGRADES_DEFAULT_REGISTRY (default: index.docker.io)
        - IMAGE_UPGRADES_REGISTRY_INSECURE (default: false)
        - IMAGE_UPGRADES_REGISTRY_USERNAME (optional)
        - IMAGE_UPGRADES_REGISTRY_PASSWORD (optional)
        - IMAGE_UPGRADES_HTTP_TIMEOUT (default: 30.0)
        - IMAGE_UPGRADES_HTTP_RETRY (default: 2)
        - IMAGE_UPGRADES_TAGS_PAGE_SIZE (default: 1000)
        - IMAGE_UPGRADES_DOCKER_CONFIG (optional path to config.json)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    docker_config = os.getenv("IMAGE_UPGRADES_DOCKER_CONFIG")

    return Settings(
        default_registry=os.getenv("IMAGE_UPGRADES_DEFAULT_REGISTRY") or DOCKER_HUB_REGISTRY,
        registry_insecure=str_to_bool(os.getenv("IMAGE_UPGRADES_REGISTRY_INSECURE", "false")),
        registry_user=os.getenv("IMAGE_UPGRADES_REGISTRY_USERNAME"),
        registry_pass=os.getenv("IMAGE_UPGRADES_REGISTRY_PASSWORD"),
        http_timeout_s=get_float("IMAGE_UPGRADES_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("IMAGE_UPGRADES_HTTP_RETRY", 2),
        tags_page_size=get_int("IMAGE_UPGRADES_TAGS_PAGE_SIZE", 1000),
        docker_config=Path(docker_config).expanduser() if docker_config else None,
    )
