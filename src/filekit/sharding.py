"""Directory sharding: bounds the number of files stored per directory."""

import asyncio
import io
import re

from filekit.config import DEFAULT_MAX_DIR_FILES, UNLIMITED
from filekit.exceptions import BackendError, ShardIndexError
from filekit.observability import emit_counter, get_logger
from filekit.protocols import StorageBackend

logger = get_logger(__name__)

SHARD_INDEX_KEY = ".dirindex"

_DECIMAL = re.compile(r"[0-9]+")


class ShardTracker:
    """Tracks the shard that new files are written into.

    The current index lives in the backend under ``.dirindex`` and is
    read on every call. Rollover is lazy: a shard is only found to be
    full when it already holds more than ``max_files`` entries, so each
    shard overshoots the limit by at most the writes made before the
    next check.
    """

    def __init__(
        self,
        backend: StorageBackend,
        max_files: int = DEFAULT_MAX_DIR_FILES,
        index_key: str = SHARD_INDEX_KEY,
    ) -> None:
        if max_files != UNLIMITED and max_files < 1:
            raise ValueError("max_files must be >= 1 or -1 for unlimited")
        self.backend = backend
        self.max_files = max_files
        self.index_key = index_key
        # Serializes the read-check-increment-persist sequence in this process
        self._lock = asyncio.Lock()

    async def current_shard(self) -> int:
        """Return the shard index to use for the next save.

        Raises:
            BackendError: If the index cannot be read or persisted
        """
        async with self._lock:
            try:
                if not await self.backend.has(self.index_key):
                    if await self.backend.write(self.index_key, b"1"):
                        logger.info("Initialized shard index", context={"shard": 1})
                        return 1
                    # Created concurrently; use the stored value
                index = await self._read_index()
                if self.max_files == UNLIMITED:
                    return index

                entries = await self.backend.list_contents(str(index))
                if len(entries) > self.max_files:
                    index += 1
                    await self._persist(index)
                    logger.info(
                        "Shard full, rolled over",
                        context={"shard": index, "entries": len(entries)},
                    )
                    emit_counter("filekit.shard.rollover", {"shard": index})
                return index
            except BackendError:
                raise
            except Exception as e:
                raise BackendError(f"Shard index lookup failed: {e}") from e

    async def _read_index(self) -> int:
        raw = await self.backend.read(self.index_key)
        try:
            text = raw.decode("ascii") if isinstance(raw, bytes) else str(raw)
        except UnicodeDecodeError as e:
            raise ShardIndexError(f"Malformed shard index: {raw!r}") from e
        text = text.strip()
        if not _DECIMAL.fullmatch(text):
            raise ShardIndexError(f"Malformed shard index: {text!r}")
        index = int(text)
        if index < 1:
            raise ShardIndexError(f"Shard index must be positive, got {index}")
        return index

    async def _persist(self, index: int) -> None:
        stored = await self.backend.put_stream(
            self.index_key, io.BytesIO(str(index).encode())
        )
        if not stored:
            raise BackendError(f"Backend declined to persist shard index {index}")
