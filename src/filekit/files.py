"""Files pending storage and the paths they are stored under."""

import mimetypes
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from filekit.exceptions import SourceError

# "<shard index>/<filename>", relative to the backend root
StoragePath = str


@dataclass(frozen=True)
class File:
    """A disk-backed file waiting to be saved to a backend."""

    path: Path
    extension: str
    base_filename: str

    @classmethod
    def from_path(cls, path: str | Path) -> "File":
        """Create a File from a filesystem path.

        The extension is taken from the last suffix, without the dot.
        """
        source = Path(path).absolute()
        return cls(
            path=source,
            extension=source.suffix.lstrip("."),
            base_filename=source.stem,
        )

    @property
    def filename(self) -> str:
        """Name including the extension."""
        return self.path.name

    @property
    def size(self) -> int:
        """Size of the source file in bytes."""
        return self.path.stat().st_size

    @property
    def mime_type(self) -> str | None:
        """MIME type guessed from the extension."""
        mime_type, _ = mimetypes.guess_type(self.path.name)
        return mime_type

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        """Open the source content for reading. Always closed on exit.

        Raises:
            SourceError: If the source cannot be opened
        """
        try:
            stream = self.path.open("rb")
        except OSError as e:
            raise SourceError(f"Cannot read {self.path}: {e}") from e
        with stream:
            yield stream
