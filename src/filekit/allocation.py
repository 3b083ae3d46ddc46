"""Storage path allocation with collision avoidance."""

import secrets
from typing import Callable

from filekit.exceptions import AllocationError, BackendError
from filekit.files import File, StoragePath
from filekit.observability import get_logger
from filekit.protocols import StorageBackend

logger = get_logger(__name__)

NameGenerator = Callable[[], str]


def generate_random_name(length: int = 32) -> str:
    """Generate a cryptographically secure random filename stem.

    Args:
        length: Number of characters, drawn from the URL-safe alphabet

    Returns:
        Random string of exactly ``length`` characters
    """
    # token_urlsafe yields ~4/3 characters per byte
    return secrets.token_urlsafe(length)[:length]


def build_path(shard_index: int, filename: str) -> StoragePath:
    """Join a shard index and filename into a storage path."""
    return f"{shard_index}/{filename}"


class PathAllocator:
    """Chooses where a file is stored inside a shard."""

    def __init__(
        self,
        backend: StorageBackend,
        name_generator: NameGenerator | None = None,
        max_attempts: int = 10,
    ) -> None:
        """Initialize the allocator.

        Args:
            backend: Backend queried for existing paths
            name_generator: Zero-argument callable returning random stems
            max_attempts: Generated names tried before giving up
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.backend = backend
        self.name_generator = name_generator or generate_random_name
        self.max_attempts = max_attempts

    def _candidate(self, file: File) -> str:
        stem = self.name_generator()
        if not file.extension:
            return stem
        return f"{stem}.{file.extension}"

    async def allocate(
        self,
        file: File,
        shard_index: int,
        preserve_file_name: bool = False,
    ) -> StoragePath:
        """Compute the storage path for a file.

        Preserved names are used as-is without an existence check.
        Generated names are retried until one is free.

        Raises:
            BackendError: If the existence check fails
            AllocationError: If every generated name was taken
        """
        if preserve_file_name:
            return build_path(shard_index, file.base_filename)

        for attempt in range(1, self.max_attempts + 1):
            path = build_path(shard_index, self._candidate(file))
            try:
                exists = await self.backend.has(path)
            except Exception as e:
                raise BackendError(f"Existence check failed for {path}: {e}") from e
            if not exists:
                return path
            logger.debug(
                "Generated path already taken",
                context={"path": path, "attempt": attempt},
            )

        raise AllocationError(
            f"No free path in shard {shard_index} after {self.max_attempts} attempts"
        )
