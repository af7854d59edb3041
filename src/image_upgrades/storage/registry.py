"""
Image registry protocol definition.

Defines the two registry queries an upgrade lookup needs. Both report "no
answer" as ``None`` rather than raising, so the resolver can decide whether a
missing answer is fatal.
"""
from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class ImageRegistry(Protocol):
    """Read-only registry queries used by the resolver."""

    def list_tags(self, registry: Optional[str], dep_name: str) -> Optional[List[str]]:
        """
        List every tag currently published for an image.

        Args:
            registry: Registry host, or None for the default registry
            dep_name: Image name (e.g., "node", "org/app")

        Returns:
            Tags in registry order, or None if they could not be listed
        """
        ...

    def get_digest(self, registry: Optional[str], dep_name: str, tag: str) -> Optional[str]:
        """
        Resolve a tag to its manifest digest.

        Args:
            registry: Registry host, or None for the default registry
            dep_name: Image name
            tag: Tag to resolve

        Returns:
            Content digest (e.g., "sha256:abc..."), or None if not resolvable
        """
        ...


__all__ = ["ImageRegistry"]
