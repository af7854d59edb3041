# Fake implementations for testing

from .fake_registry import FakeImageRegistry

__all__ = ["FakeImageRegistry"]
