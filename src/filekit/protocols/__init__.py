"""Protocol interfaces for pluggable backends."""

from filekit.protocols.backend import StorageBackend

__all__ = [
    "StorageBackend",
]
