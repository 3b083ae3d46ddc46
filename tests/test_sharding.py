"""Tests for the shard tracker."""

import io

import pytest

from filekit.backends.memory import MemoryBackend
from filekit.exceptions import BackendError, ShardIndexError
from filekit.sharding import SHARD_INDEX_KEY, ShardTracker


class RecordingBackend(MemoryBackend):
    """Memory backend that records writes to the shard index."""

    def __init__(self) -> None:
        super().__init__()
        self.index_writes: list[bytes] = []

    async def write(self, path, data):
        if path == SHARD_INDEX_KEY:
            self.index_writes.append(bytes(data))
        return await super().write(path, data)

    async def put_stream(self, path, stream):
        if path == SHARD_INDEX_KEY:
            data = stream.read()
            self.index_writes.append(data)
            stream = io.BytesIO(data)
        return await super().put_stream(path, stream)


async def fill(backend, shard: int, count: int) -> None:
    for i in range(count):
        await backend.write(f"{shard}/file{i}.jpg", b"x")


@pytest.fixture
def recording_backend():
    return RecordingBackend()


class TestShardTracker:
    """Tests for ShardTracker."""

    def test_invalid_max_files(self, backend):
        """max_files must be positive or -1."""
        with pytest.raises(ValueError):
            ShardTracker(backend, max_files=0)

    @pytest.mark.asyncio
    async def test_initializes_index(self, backend):
        """An empty backend starts at shard 1 and persists it."""
        tracker = ShardTracker(backend)
        assert await tracker.current_shard() == 1
        assert await backend.read(SHARD_INDEX_KEY) == b"1"

    @pytest.mark.asyncio
    async def test_initialization_written_once(self, recording_backend):
        """Two calls on an empty backend return 1 and write the index once."""
        tracker = ShardTracker(recording_backend, max_files=10)
        assert await tracker.current_shard() == 1
        assert await tracker.current_shard() == 1
        assert recording_backend.index_writes == [b"1"]

    @pytest.mark.asyncio
    async def test_reads_persisted_index(self, backend):
        """An existing index is used as-is."""
        await backend.write(SHARD_INDEX_KEY, b"7")
        tracker = ShardTracker(backend, max_files=10)
        assert await tracker.current_shard() == 7

    @pytest.mark.asyncio
    async def test_rollover(self, backend):
        """A shard holding more than max_files entries rolls over."""
        await backend.write(SHARD_INDEX_KEY, b"1")
        await fill(backend, 1, 3)
        tracker = ShardTracker(backend, max_files=2)

        assert await tracker.current_shard() == 2
        assert await backend.read(SHARD_INDEX_KEY) == b"2"

    @pytest.mark.asyncio
    async def test_no_rollover_at_limit(self, backend):
        """A shard holding exactly max_files entries is still used."""
        await backend.write(SHARD_INDEX_KEY, b"1")
        await fill(backend, 1, 2)
        tracker = ShardTracker(backend, max_files=2)

        assert await tracker.current_shard() == 1
        assert await backend.read(SHARD_INDEX_KEY) == b"1"

    @pytest.mark.asyncio
    async def test_rollover_increments_by_one(self, backend):
        """Rollover advances exactly one shard even if the next is also full."""
        await backend.write(SHARD_INDEX_KEY, b"1")
        await fill(backend, 1, 3)
        await fill(backend, 2, 3)
        tracker = ShardTracker(backend, max_files=2)

        assert await tracker.current_shard() == 2
        assert await tracker.current_shard() == 3

    @pytest.mark.asyncio
    async def test_unlimited_never_rolls_over(self, backend):
        """With -1 the index never changes."""
        await backend.write(SHARD_INDEX_KEY, b"1")
        await fill(backend, 1, 50)
        tracker = ShardTracker(backend, max_files=-1)

        assert await tracker.current_shard() == 1
        assert await backend.read(SHARD_INDEX_KEY) == b"1"

    @pytest.mark.asyncio
    async def test_index_not_cached(self, backend):
        """The persisted value is re-read on every call."""
        tracker = ShardTracker(backend, max_files=10)
        assert await tracker.current_shard() == 1

        await backend.delete(SHARD_INDEX_KEY)
        await backend.write(SHARD_INDEX_KEY, b"5")
        assert await tracker.current_shard() == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw", [b"abc", b"0", b"-3", b"", b"1_0", b"+3", b"2.0", b"\xff\xfe"]
    )
    async def test_malformed_index(self, backend, raw):
        """Anything but a positive decimal string raises ShardIndexError."""
        await backend.write(SHARD_INDEX_KEY, raw)
        tracker = ShardTracker(backend)
        with pytest.raises(ShardIndexError):
            await tracker.current_shard()

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self, backend):
        """Backend failures are not masked by a default shard."""

        async def broken_read(path):
            raise OSError("permission denied")

        await backend.write(SHARD_INDEX_KEY, b"4")
        backend.read = broken_read
        tracker = ShardTracker(backend)
        with pytest.raises(BackendError):
            await tracker.current_shard()

    @pytest.mark.asyncio
    async def test_declined_persist_raises(self, backend):
        """A rollover that cannot be persisted is an error."""

        async def declining_put(path, stream):
            return False

        await backend.write(SHARD_INDEX_KEY, b"1")
        await fill(backend, 1, 2)
        backend.put_stream = declining_put
        tracker = ShardTracker(backend, max_files=1)
        with pytest.raises(BackendError):
            await tracker.current_shard()

    @pytest.mark.asyncio
    async def test_concurrent_initialization(self, backend):
        """If another writer creates the index first, its value is used."""
        original_has = backend.has

        async def racing_has(path):
            exists = await original_has(path)
            if path == SHARD_INDEX_KEY and not exists:
                await backend.write(SHARD_INDEX_KEY, b"3")
            return exists

        backend.has = racing_has
        tracker = ShardTracker(backend, max_files=10)
        assert await tracker.current_shard() == 3
