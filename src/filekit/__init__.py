"""Filekit - sharded file storage with lifecycle events over pluggable backends."""

from filekit.allocation import PathAllocator, generate_random_name
from filekit.backends import MemoryBackend
from filekit.config import BackendConfig, FilekitConfig, FilenamePolicy, OverwritePolicy
from filekit.events import EventBus, StorageEvent, StorageEventName
from filekit.exceptions import (
    AllocationError,
    BackendError,
    ConfigError,
    FilekitError,
    ObserverError,
    ShardIndexError,
    SourceError,
)
from filekit.files import File, StoragePath
from filekit.observability import (
    OperationContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    register_metric_callback,
)
from filekit.protocols import StorageBackend
from filekit.sharding import ShardTracker
from filekit.storage import DeleteResult, SaveResult, Storage

__version__ = "0.1.0"
__all__ = [
    # Core
    "DeleteResult",
    "File",
    "SaveResult",
    "Storage",
    "StoragePath",
    # Policy components
    "PathAllocator",
    "ShardTracker",
    "generate_random_name",
    # Events
    "EventBus",
    "StorageEvent",
    "StorageEventName",
    # Backends
    "MemoryBackend",
    "StorageBackend",
    # Configuration
    "BackendConfig",
    "FilekitConfig",
    "FilenamePolicy",
    "OverwritePolicy",
    # Errors
    "AllocationError",
    "BackendError",
    "ConfigError",
    "FilekitError",
    "ObserverError",
    "ShardIndexError",
    "SourceError",
    # Observability
    "OperationContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "register_metric_callback",
]
