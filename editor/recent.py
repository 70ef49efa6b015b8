"""Recently used files, most recent first."""

import time
from dataclasses import dataclass
from typing import Iterator, List, Optional

from core.paths import base_name, normalize_path, parent_dir
from core.storage import FileGateway

MAX_RECENT_FILES = 8


class RecentFiles:
    """Bounded, duplicate-free list of canonical paths."""

    def __init__(self, limit: int = MAX_RECENT_FILES):
        self.limit = limit
        self.paths: List[str] = []

    def __len__(self) -> int:
        return len(self.paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __getitem__(self, index: int) -> str:
        return self.paths[index]

    def add(self, path: str) -> None:
        """Move ``path`` to the front, dropping the oldest entry past the limit."""
        path = normalize_path(path)
        if path in self.paths:
            self.paths.remove(path)
        self.paths.insert(0, path)
        del self.paths[self.limit:]

    def remove(self, path: str) -> None:
        if path in self.paths:
            self.paths.remove(path)

    def clear(self) -> None:
        self.paths.clear()


@dataclass(frozen=True)
class RecentEntry:
    """A recent file with what the gateway currently knows about it."""
    path: str
    size: Optional[int] = None
    modified_time: Optional[float] = None

    @property
    def exists(self) -> bool:
        return self.size is not None


def describe_recent(recent: RecentFiles, gateway: FileGateway) -> List[RecentEntry]:
    """Stat every recent file; files that are gone have no size or time."""
    entries = []
    for path in recent:
        stat = gateway.stat(path)
        if stat is None:
            entries.append(RecentEntry(path))
        else:
            entries.append(RecentEntry(path, stat.size, stat.modified_time))
    return entries


def format_size(size: int) -> str:
    """Human readable byte count, e.g. ``512 B`` or ``1.5 KB``."""
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}"


def format_modified(modified_time: float) -> str:
    return time.strftime("%Y-%m-%d %H:%M", time.localtime(modified_time))


def format_recent_entry(position: int, entry: RecentEntry) -> str:
    """
    One row of the recent files list.

    ``position`` is the 1-based number shown to the user, which is also the
    Alt shortcut for the entry.
    """
    name = base_name(entry.path)
    directory = parent_dir(entry.path)
    if not entry.exists:
        return f"{position}. {name}  {directory}  (missing)"
    details = format_size(entry.size)
    if entry.modified_time is not None:
        details += f"  {format_modified(entry.modified_time)}"
    return f"{position}. {name}  {directory}  {details}"
