"""StorageBackend protocol for pluggable file storage backends."""

from typing import BinaryIO, Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for storage backends (filesystem, S3, R2).

    Paths are slash-separated keys relative to the backend root.
    Boolean results report whether the backend accepted the operation;
    failures to reach the backend are raised.
    """

    async def has(self, path: str) -> bool:
        """Check whether an object exists at path."""
        ...

    async def read(self, path: str) -> bytes:
        """Read an object's content."""
        ...

    async def write(self, path: str, data: bytes) -> bool:
        """Create an object. Returns False if it already exists."""
        ...

    async def write_stream(self, path: str, stream: BinaryIO) -> bool:
        """Create an object from a stream. Returns False if it already exists."""
        ...

    async def put_stream(self, path: str, stream: BinaryIO) -> bool:
        """Create or replace an object from a stream."""
        ...

    async def delete(self, path: str) -> bool:
        """Delete an object. Returns False if nothing was deleted."""
        ...

    async def list_contents(self, directory: str) -> list[str]:
        """List the direct children of a directory."""
        ...
