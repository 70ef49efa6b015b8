"""Persistence gateway backed by the local filesystem."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from core.errors import IOFailure
from core.logging import logger
from core.paths import to_canonical


@dataclass(frozen=True)
class FileStat:
    """Size and modification time of a file."""
    size: int
    modified_time: float


class FileGateway:
    """
    File access for canonical paths.

    Canonical paths are resolved below ``root``, so ``/notes/a.py`` with a root
    of ``/home/me`` maps to ``/home/me/notes/a.py``.
    """

    def __init__(self, root: Union[str, Path] = "/"):
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        """Map a canonical path onto the local filesystem."""
        relative = to_canonical(path).lstrip("/")
        return self.root / relative if relative else self.root

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_directory(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def list(self, path: str) -> List[str]:
        """
        List the entry names of a directory.

        Raises:
            IOFailure: If the directory cannot be read.
        """
        try:
            return sorted(entry.name for entry in self.resolve(path).iterdir())
        except OSError as e:
            raise IOFailure(f"Unable to list {path}: {e.strerror or e}", path=path) from e

    def read(self, path: str) -> bytes:
        """
        Read a whole file.

        Raises:
            IOFailure: If the file cannot be read.
        """
        try:
            return self.resolve(path).read_bytes()
        except OSError as e:
            logger.warning(f"Read failed for {path}: {e}")
            raise IOFailure(e.strerror or "Unable to read file", path=path) from e

    def write(self, path: str, data: bytes) -> None:
        """
        Replace a file's contents.

        Raises:
            IOFailure: If the file cannot be written.
        """
        try:
            self.resolve(path).write_bytes(data)
        except OSError as e:
            logger.warning(f"Write failed for {path}: {e}")
            raise IOFailure(e.strerror or "Unable to open file for writing", path=path) from e

    def make_directory(self, path: str) -> None:
        """
        Create a directory and any missing parents.

        Raises:
            IOFailure: If the directory cannot be created.
        """
        try:
            self.resolve(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure(e.strerror or f"Unable to create {path}", path=path) from e

    def stat(self, path: str) -> Optional[FileStat]:
        """Return size and mtime, or None when the path does not exist."""
        try:
            st = self.resolve(path).stat()
        except OSError:
            return None
        return FileStat(size=st.st_size, modified_time=st.st_mtime)
