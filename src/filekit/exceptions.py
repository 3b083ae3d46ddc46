"""Filekit exceptions."""


class FilekitError(Exception):
    """Base exception for filekit."""

    pass


class ConfigError(FilekitError):
    """Configuration error."""

    pass


class BackendError(FilekitError):
    """A storage backend call failed (connectivity, permissions, quota)."""

    pass


class ShardIndexError(BackendError):
    """The persisted shard index is missing or malformed."""

    pass


class AllocationError(FilekitError):
    """No free storage path was found within the attempt limit."""

    pass


class ObserverError(FilekitError):
    """A registered event handler raised an error."""

    pass


class SourceError(FilekitError):
    """The file to be stored could not be read."""

    pass
