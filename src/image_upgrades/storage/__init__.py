"""Registry access for image-upgrades."""
from .registry import ImageRegistry

__all__ = ["ImageRegistry"]
