"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the resolver, centralizing
command orchestration and configuration while keeping CLI commands thin and
testable.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models import ImageReference, UpdatePolicy
from ..resolver import LookupResult, lookup_upgrades, resolve_digest
from ..storage.registry import ImageRegistry


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes output and failure policy to avoid scattered configuration.
    """
    as_json: bool = False         # Machine-readable output
    verbose: bool = False         # Show detailed output
    strict: bool = True           # Raise on lookup failures


class Operations:
    """
    Application service facade for CLI operations.

    The facade is stateless except for the injected config and registry,
    so it is easy to test with a fake registry. Exceptions bubble up for
    central exit-code mapping.
    """

    def __init__(self, config: OpsConfig, registry: Optional[ImageRegistry] = None, settings=None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            registry: Image registry (if None, an HTTP registry client is created)
            settings: Optional settings (if None, loaded from environment)
        """
        self.cfg = config

        if settings is None:
            from ..settings import create_settings_from_env
            settings = create_settings_from_env()
        self.settings = settings

        if registry is None:
            from ..storage.registry_http import RegistryHTTP
            registry = RegistryHTTP(settings)
        self.registry = registry

    def lookup(self, reference: ImageReference, policy: UpdatePolicy) -> LookupResult:
        """
        Compute upgrades for an image reference.

        Raises:
            UnresolvableReferenceError: In strict mode, if the current reference has no digest
            RegistryFailureError: In strict mode, if a new tag could not be pinned
        """
        result = lookup_upgrades(reference, policy, self.registry)
        if self.cfg.strict:
            result.raise_for_failure()
        return result

    def digest(self, reference: ImageReference) -> Optional[str]:
        """Resolve the digest of the reference's tag ("latest" when untagged)."""
        return resolve_digest(self.registry, reference, reference.current_tag or "latest")
