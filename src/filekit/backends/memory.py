"""In-memory storage backend."""

import asyncio
from typing import Any, BinaryIO


class MemoryBackend:
    """In-memory storage backend.

    Suitable for development and testing. Data is lost on restart.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize memory backend.

        Args:
            **kwargs: Ignored (for compatibility with other backends)
        """
        self._data: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _normalize(path: str) -> str:
        """Strip leading and trailing slashes from a key."""
        key = path.strip("/")
        if not key or ".." in key.split("/"):
            raise ValueError(f"Invalid path: {path}")
        return key

    async def has(self, path: str) -> bool:
        """Check whether an object exists."""
        key = self._normalize(path)
        async with self._lock:
            return key in self._data

    async def read(self, path: str) -> bytes:
        """Read an object's content."""
        key = self._normalize(path)
        async with self._lock:
            if key not in self._data:
                raise FileNotFoundError(path)
            return self._data[key]

    async def write(self, path: str, data: bytes) -> bool:
        """Create an object unless it already exists."""
        key = self._normalize(path)
        async with self._lock:
            if key in self._data:
                return False
            self._data[key] = bytes(data)
            return True

    async def write_stream(self, path: str, stream: BinaryIO) -> bool:
        """Create an object from a stream unless it already exists."""
        return await self.write(path, stream.read())

    async def put_stream(self, path: str, stream: BinaryIO) -> bool:
        """Create or replace an object from a stream."""
        key = self._normalize(path)
        content = stream.read()
        async with self._lock:
            self._data[key] = content
            return True

    async def delete(self, path: str) -> bool:
        """Delete an object."""
        key = self._normalize(path)
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def list_contents(self, directory: str) -> list[str]:
        """List direct children (files and subdirectories) of a directory."""
        prefix = directory.strip("/")
        if prefix:
            prefix += "/"
        async with self._lock:
            children = {
                prefix + key[len(prefix):].split("/", 1)[0]
                for key in self._data
                if key.startswith(prefix)
            }
        return sorted(children)

    async def clear(self) -> None:
        """Clear all data. Useful for testing."""
        async with self._lock:
            self._data.clear()
