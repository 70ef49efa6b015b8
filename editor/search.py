"""Directory browsing and fuzzy filtering for the file picker."""

from dataclasses import dataclass
from typing import List, Optional

from rapidfuzz import fuzz, process

from core.errors import DirectoryConflictError, InvalidPathError, IOFailure
from core.paths import ROOT, base_name, join, parent_dir, to_canonical
from core.storage import FileGateway
from editor.presenter import FilePickerRequest, PickerMode


@dataclass(frozen=True)
class DirectoryEntry:
    """One row of the picker listing."""
    label: str
    path: str
    is_dir: bool


def list_entries(gateway: FileGateway, directory: str) -> List[DirectoryEntry]:
    """
    List a directory for display, case-insensitively sorted.

    Directories carry a trailing "/" and a "../" row leads to the parent
    unless ``directory`` is the root.

    Raises:
        IOFailure: If the directory cannot be read.
    """
    directory = to_canonical(directory)
    entries = []
    if directory != ROOT:
        entries.append(DirectoryEntry("../", parent_dir(directory), True))
    for name in sorted(gateway.list(directory), key=str.lower):
        full = join(directory, name)
        is_dir = gateway.is_directory(full)
        entries.append(DirectoryEntry(name + "/" if is_dir else name, full, is_dir))
    return entries


def fuzzy_filter(query: str, entries: List[DirectoryEntry], limit: int = 20) -> List[DirectoryEntry]:
    """
    Rank entries against a query.

    Args:
        query: Search text; blank returns the first ``limit`` entries.
        entries: Candidate rows.
        limit: Maximum results.

    Returns:
        Best matching entries, best first.
    """
    if not query.strip():
        return entries[:limit]

    labels = [entry.label for entry in entries]
    results = process.extract(query, labels, scorer=fuzz.WRatio, limit=limit)
    return [entries[index] for _, score, index in results if score > 0]


class FilePicker:
    """
    State of an open/save picker, independent of how it is drawn.

    ``activate`` and ``confirm`` return the chosen path once the user has
    picked one, else None with ``message`` explaining why not.
    """

    def __init__(self, gateway: FileGateway, request: FilePickerRequest):
        self.gateway = gateway
        self.mode = request.mode
        self.filename = request.default_name
        self.message = ""
        self.current_path = to_canonical(request.start_path)
        if not gateway.is_directory(self.current_path):
            self.current_path = ROOT
        self.entries: List[DirectoryEntry] = []
        self.rebuild()

    def rebuild(self) -> None:
        try:
            self.entries = list_entries(self.gateway, self.current_path)
        except IOFailure:
            self.entries = []
            self.message = "Error reading directory"

    def filtered(self, query: str) -> List[DirectoryEntry]:
        return fuzzy_filter(query, self.entries, limit=len(self.entries) or 1)

    def activate(self, entry: Optional[DirectoryEntry]) -> Optional[str]:
        """Descend into a directory, or choose a file."""
        if entry is None:
            self.message = "Select a file"
            return None
        if entry.is_dir:
            self.current_path = entry.path
            self.message = ""
            self.rebuild()
            return None
        if self.mode == PickerMode.SAVE:
            self.filename = base_name(entry.path)
            return None
        return entry.path

    def confirm(self, entry: Optional[DirectoryEntry] = None) -> Optional[str]:
        """Accept the current selection (open) or file name (save)."""
        if self.mode == PickerMode.OPEN:
            return self.activate(entry)
        try:
            return resolve_save_target(self.gateway, self.current_path, self.filename)
        except (InvalidPathError, DirectoryConflictError) as e:
            self.message = e.message
            return None


def resolve_save_target(gateway: FileGateway, directory: str, filename: str) -> str:
    """
    Combine a directory and typed file name into a save target.

    Raises:
        InvalidPathError: If the file name is blank.
        DirectoryConflictError: If the target is an existing directory.
    """
    filename = (filename or "").strip()
    if not filename:
        raise InvalidPathError("Enter a file name")
    full = join(directory, filename)
    if gateway.exists(full) and gateway.is_directory(full):
        raise DirectoryConflictError("Cannot overwrite directory", path=full)
    return full
