"""
image-upgrades: find newer tags and digests for container image references.
"""
from .errors import LookupFailure, RegistryFailureError, UnresolvableReferenceError
from .models import ImageReference, UpdatePolicy, UpgradeRecord, UpgradeType, parse_image_reference
from .resolver import LookupResult, lookup_upgrades

__version__ = "0.1.0"

__all__ = [
    "ImageReference",
    "UpdatePolicy",
    "UpgradeRecord",
    "UpgradeType",
    "LookupResult",
    "LookupFailure",
    "UnresolvableReferenceError",
    "RegistryFailureError",
    "lookup_upgrades",
    "parse_image_reference",
]
