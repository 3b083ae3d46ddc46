"""Bundled storage backends."""

from filekit.backends.memory import MemoryBackend

__all__ = ["MemoryBackend"]
