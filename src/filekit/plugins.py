"""Backend discovery via Python entry points."""

from importlib.metadata import entry_points
from typing import Any

from filekit.backends.memory import MemoryBackend
from filekit.exceptions import ConfigError
from filekit.protocols import StorageBackend

BACKEND_GROUP = "filekit.backends"

# Always available, even when the distribution metadata is not installed
BUILTIN_BACKENDS: dict[str, Any] = {
    "memory": MemoryBackend,
}


def discover_backends() -> dict[str, Any]:
    """Discover all registered storage backends.

    Returns:
        Dictionary mapping backend names to their classes
    """
    backends = dict(BUILTIN_BACKENDS)
    for ep in entry_points(group=BACKEND_GROUP):
        backends[ep.name] = ep.load()
    return backends


def get_backend(name: str) -> Any:
    """Get a backend class by name.

    Args:
        name: The backend name (e.g., "memory", "s3")

    Returns:
        The backend class

    Raises:
        ConfigError: If the backend is not registered
    """
    backends = discover_backends()
    if name not in backends:
        available = ", ".join(sorted(backends.keys())) or "(none)"
        raise ConfigError(f"Backend '{name}' not found. Available: {available}")
    return backends[name]


def create_backend(name: str, **kwargs: Any) -> StorageBackend:
    """Create a StorageBackend instance.

    Args:
        name: The backend name
        **kwargs: Backend-specific configuration

    Returns:
        A StorageBackend implementation
    """
    cls = get_backend(name)
    return cls(**kwargs)
