"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from filekit.backends.memory import MemoryBackend
from filekit.files import File


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "base_url": "https://cdn.example.com/files",
        "max_dir_files": 100,
        "filename_policy": "generated",
        "overwrite_policy": "write_new_only",
        "backend": {"name": "memory", "options": {}},
    }


@pytest.fixture
def backend():
    """Create an empty memory backend."""
    return MemoryBackend()


@pytest.fixture
def make_file(tmp_path: Path):
    """Factory writing a source file to disk and wrapping it in a File."""

    def _make(name: str = "a.jpg", content: bytes = b"image-bytes") -> File:
        source = tmp_path / name
        source.write_bytes(content)
        return File.from_path(source)

    return _make
