"""
Error classes for image upgrade lookups.

Two families live here:

- Registry errors, mapped from HTTP status codes by the registry client so
  callers see one taxonomy regardless of which registry served the request.
- Lookup failures, the two fatal outcomes of an upgrade lookup. The resolver
  reports these as ``LookupFailure`` values; the exception classes exist for
  callers (like the CLI) that prefer to raise.
"""
from __future__ import annotations

from enum import Enum


class ImageUpgradesError(Exception):
    """Base class for all image-upgrades errors."""
    pass


class RegistryError(ImageUpgradesError):
    """
    Base class for registry errors.

    Raised for network failures and unexpected HTTP statuses.
    """
    pass


class RegistryAuthError(RegistryError):
    """
    Authentication or authorization error.

    Raised when:
    - HTTP 401 Unauthorized (invalid or missing credentials)
    - HTTP 403 Forbidden (insufficient permissions)
    """
    pass


class RegistryNotFound(RegistryError):
    """
    Repository, tag or manifest not found (HTTP 404).
    """
    pass


class RegistryRateLimited(RegistryError):
    """
    Rate limit exceeded (HTTP 429).
    """
    pass


class LookupFailure(str, Enum):
    """Fatal outcomes of an upgrade lookup."""
    UNRESOLVABLE_REFERENCE = "unresolvable-reference"
    REGISTRY_FAILURE = "registry-failure"


class UnresolvableReferenceError(ImageUpgradesError, LookupError):
    """
    The registry returned no digest for the current reference.

    The image or tag cannot be served right now; try again later.
    """
    pass


class RegistryFailureError(ImageUpgradesError, LookupError):
    """
    The registry returned no digest for a newly selected tag while
    digest pinning was active.
    """
    pass


FAILURE_EXCEPTIONS = {
    LookupFailure.UNRESOLVABLE_REFERENCE: UnresolvableReferenceError,
    LookupFailure.REGISTRY_FAILURE: RegistryFailureError,
}


__all__ = [
    "ImageUpgradesError",
    "RegistryError",
    "RegistryAuthError",
    "RegistryNotFound",
    "RegistryRateLimited",
    "LookupFailure",
    "UnresolvableReferenceError",
    "RegistryFailureError",
    "FAILURE_EXCEPTIONS",
]
