"""Storage facade: sharded, collision-free saves with lifecycle events."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, BinaryIO

from filekit.allocation import NameGenerator, PathAllocator, generate_random_name
from filekit.config import FilekitConfig
from filekit.events import EventBus, EventHandler, StorageEventName
from filekit.exceptions import BackendError, FilekitError
from filekit.files import File, StoragePath
from filekit.observability import OperationContext, Timer, emit_counter, emit_timer, get_logger
from filekit.plugins import create_backend
from filekit.protocols import StorageBackend
from filekit.sharding import ShardTracker

logger = get_logger(__name__)


@dataclass
class SaveResult:
    """Outcome of one item in a batch save."""

    file: File
    path: StoragePath | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.path is not None


@dataclass
class DeleteResult:
    """Outcome of one item in a batch delete."""

    path: StoragePath
    deleted: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.deleted


class Storage:
    """Single entry point for saving and deleting files on a backend.

    Example:
        storage = Storage(MemoryBackend(), FilekitConfig(max_dir_files=1000))
        storage.on("afterSave", lambda event: print(event.file))
        path = await storage.save(File.from_path("/tmp/a.jpg"))
    """

    def __init__(
        self,
        backend: StorageBackend,
        config: FilekitConfig | None = None,
        events: EventBus | None = None,
        name_generator: NameGenerator | None = None,
    ) -> None:
        """Initialize storage.

        Args:
            backend: Backend that holds the stored objects
            config: Policies; defaults apply when omitted
            events: Event bus to fire lifecycle events on
            name_generator: Source of random filename stems
        """
        self.config = config or FilekitConfig()
        self.events = events or EventBus()
        self._name_generator = name_generator or (
            lambda: generate_random_name(self.config.random_name_length)
        )
        self.backend = backend

    @classmethod
    def from_config(cls, config: FilekitConfig, **kwargs: Any) -> "Storage":
        """Create storage with the backend named in the configuration."""
        backend = create_backend(config.backend.name, **config.backend.options)
        return cls(backend, config, **kwargs)

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @backend.setter
    def backend(self, backend: StorageBackend) -> None:
        self._backend = backend
        self.tracker = ShardTracker(backend, self.config.max_dir_files)
        self.allocator = PathAllocator(
            backend,
            name_generator=self._name_generator,
            max_attempts=self.config.max_allocation_attempts,
        )

    def on(self, name: StorageEventName | str, handler: EventHandler) -> None:
        """Register a lifecycle event handler."""
        self.events.on(name, handler)

    def url(self, path: StoragePath) -> str | None:
        """Public URL for a stored path, if a base URL is configured."""
        if self.config.base_url is None:
            return None
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def save(
        self,
        file: File,
        preserve_file_name: bool | None = None,
        overwrite: bool | None = None,
    ) -> StoragePath | None:
        """Store a file and return its path.

        Args:
            file: File to store
            preserve_file_name: Keep the file's own name instead of a random
                one. Defaults to the configured filename policy.
            overwrite: Replace an existing object at the path. Defaults to
                the configured overwrite policy.

        Returns:
            The storage path, or None if the backend declined the write

        Raises:
            BackendError: If a backend call failed
            AllocationError: If no free path could be found
            ObserverError: If an event handler raised. A failing afterSave
                handler raises after the object has been stored.
            SourceError: If the file to store cannot be read
        """
        if preserve_file_name is None:
            preserve_file_name = self.config.preserve_file_names
        if overwrite is None:
            overwrite = self.config.overwrite

        with OperationContext("save") as op:
            with Timer() as timer:
                shard = await self.tracker.current_shard()
                path = await self.allocator.allocate(file, shard, preserve_file_name)
                op.bind(path=path, shard=shard)

                await self.events.before_save(file)

                with file.open() as stream:
                    path, success = await self._write(
                        file, stream, shard, path, preserve_file_name, overwrite
                    )

            context = {"path": path, "source": str(file.path)}
            if not success:
                logger.warning("Backend declined write", context=context)
                emit_counter("filekit.save.declined")
                return None

            await self.events.after_save(file)
            logger.info("File saved", context=context, duration_ms=timer.duration_ms)
            emit_counter("filekit.save")
            emit_timer("filekit.save.duration_ms", timer.duration_ms)
            return path

    async def _write(
        self,
        file: File,
        stream: BinaryIO,
        shard: int,
        path: StoragePath,
        preserve_file_name: bool,
        overwrite: bool,
    ) -> tuple[StoragePath, bool]:
        """Write the stream, reallocating if a generated path was taken meanwhile."""
        retries = 0
        while True:
            try:
                if overwrite:
                    success = await self.backend.put_stream(path, stream)
                else:
                    success = await self.backend.write_stream(path, stream)
                if success or overwrite or preserve_file_name:
                    return path, success
                lost_race = await self.backend.has(path)
            except Exception as e:
                raise BackendError(f"Write failed for {path}: {e}") from e

            if not lost_race or retries >= self.config.max_allocation_attempts:
                return path, False

            retries += 1
            logger.debug(
                "Generated path claimed concurrently, reallocating",
                context={"path": path, "retry": retries},
            )
            stream.seek(0)
            path = await self.allocator.allocate(file, shard)

    async def save_all(
        self,
        files: Iterable[File],
        preserve_file_name: bool | None = None,
        overwrite: bool | None = None,
    ) -> list[SaveResult]:
        """Save each file independently, in order.

        A failure on one file does not stop the rest; every outcome is
        reported in the returned list.
        """
        results = []
        for file in files:
            try:
                path = await self.save(file, preserve_file_name, overwrite)
                results.append(SaveResult(file=file, path=path))
            except FilekitError as e:
                logger.error(
                    "Save failed", context={"source": str(file.path)}, error=e
                )
                results.append(SaveResult(file=file, error=e))
        return results

    async def delete(self, path: StoragePath) -> bool:
        """Delete a stored object.

        Returns:
            Whether the backend deleted the object

        Raises:
            BackendError: If the backend call failed
            ObserverError: If an event handler raised
        """
        with OperationContext("delete") as op:
            op.bind(path=path)
            await self.events.before_delete(path)
            try:
                deleted = await self.backend.delete(path)
            except Exception as e:
                raise BackendError(f"Delete failed for {path}: {e}") from e

            if not deleted:
                logger.warning("Backend declined delete", context={"path": path})
                return False

            await self.events.after_delete(path)
            logger.info("File deleted", context={"path": path})
            emit_counter("filekit.delete")
            return True

    async def delete_all(self, paths: Iterable[StoragePath]) -> list[DeleteResult]:
        """Delete each path independently, in order, reporting every outcome."""
        results = []
        for path in paths:
            try:
                deleted = await self.delete(path)
                results.append(DeleteResult(path=path, deleted=deleted))
            except FilekitError as e:
                logger.error("Delete failed", context={"path": path}, error=e)
                results.append(DeleteResult(path=path, error=e))
        return results
