"""Error types raised by the editing session."""

from typing import Optional


class TermpadError(Exception):
    """Base class for recoverable session errors."""

    title = "Error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class InvalidPathError(TermpadError):
    """Raised when a path is empty or cannot be normalized."""

    title = "Invalid Path"


class IOFailure(TermpadError):
    """Raised when the persistence gateway cannot complete a read or write."""

    title = "I/O Error"


class DirectoryConflictError(TermpadError):
    """Raised when a save target already exists as a directory."""

    title = "Save Failed"


class PathInUseError(TermpadError):
    """Raised when a save target is already open in another buffer."""

    title = "Save Failed"
