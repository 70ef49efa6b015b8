"""Multi-buffer and tab management."""

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from core.logging import logger
from editor.diagnostics import Diagnostic
from editor.surface import TextSurface

if TYPE_CHECKING:
    from editor.workflow import UnsavedChangesWorkflow

_buffer_ids = itertools.count(1)

RegistryCallback = Callable[["Buffer", int], None]


@dataclass(eq=False)
class Buffer:
    """Edit state of one open document."""
    display_name: str
    text: str = ""
    path: Optional[str] = None
    pending_path: Optional[str] = None
    saved_text: Optional[str] = None
    is_untitled: bool = True
    cursor_line: int = 1
    cursor_col: int = 1
    selection_length: int = 0
    split_cursor_line: int = 1
    split_cursor_col: int = 1
    split_selection_length: int = 0
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_expanded: bool = False
    id: int = field(default_factory=lambda: next(_buffer_ids))

    @property
    def dirty(self) -> bool:
        """True when the text differs from the last persisted snapshot."""
        return self.text != (self.saved_text or "")

    @property
    def label(self) -> str:
        """Tab label, prefixed with "* " while dirty."""
        return f"* {self.display_name}" if self.dirty else self.display_name

    def mark_saved(self, path: str, display_name: str) -> None:
        """Record a successful write of the current text to ``path``."""
        self.path = path
        self.pending_path = None
        self.display_name = display_name
        self.saved_text = self.text
        self.is_untitled = False

    def discard_changes(self) -> None:
        """Drop unsaved edits by returning to the saved snapshot."""
        self.text = self.saved_text or ""


class BufferRegistry:
    """
    Ordered collection of open buffers and the active-buffer pointer.

    Indexes are 1-based; ``active_index`` is 0 only while the registry is empty.
    Only the active buffer is bound to the live surfaces. Its record is brought
    up to date on sync-out, and the surfaces are reloaded on sync-in.
    """

    EVENTS = ("sync_out", "sync_in", "added", "removed")

    def __init__(self, primary: TextSurface, workflow: Optional["UnsavedChangesWorkflow"] = None):
        self.primary = primary
        self.workflow = workflow
        self.buffers: List[Buffer] = []
        self.active_index = 0
        self._callbacks: Dict[str, List[RegistryCallback]] = {event: [] for event in self.EVENTS}

    def __len__(self) -> int:
        return len(self.buffers)

    def __iter__(self):
        return iter(self.buffers)

    def register_callback(self, event: str, callback: RegistryCallback) -> None:
        """
        Register a callback for a registry event.

        Args:
            event: One of "sync_out", "sync_in", "added", "removed".
            callback: Called with the buffer and its 1-based index.
        """
        if event not in self._callbacks:
            raise ValueError(f"Unknown registry event: {event}")
        self._callbacks[event].append(callback)

    def _emit(self, event: str, buffer: Buffer, index: int) -> None:
        for callback in list(self._callbacks[event]):
            callback(buffer, index)

    def get(self, index: int) -> Optional[Buffer]:
        """Return the buffer at a 1-based index, or None."""
        if 1 <= index <= len(self.buffers):
            return self.buffers[index - 1]
        return None

    def active(self) -> Optional[Buffer]:
        """Return the live buffer, or None when empty."""
        return self.get(self.active_index)

    def index_of(self, buffer: Buffer) -> int:
        """1-based index of ``buffer``, 0 when it is not open."""
        for i, candidate in enumerate(self.buffers, start=1):
            if candidate is buffer:
                return i
        return 0

    def find_by_path(self, path: str) -> int:
        """1-based index of the buffer open on, or waiting to be saved to, ``path``; 0 if none."""
        for i, buffer in enumerate(self.buffers, start=1):
            if path and path in (buffer.path, buffer.pending_path):
                return i
        return 0

    def relabel(self, buffer: Buffer) -> str:
        return buffer.label

    def add(self, buffer: Buffer, select: bool = True) -> int:
        """
        Append a buffer.

        Returns:
            The new buffer's 1-based index.
        """
        self.buffers.append(buffer)
        index = len(self.buffers)
        logger.debug(f"Buffer {buffer.id} added at {index}: {buffer.display_name}")
        self._emit("added", buffer, index)
        if select or self.active_index == 0:
            self.activate(index)
        return index

    def activate(self, index: int, force: bool = False) -> None:
        """
        Bind the buffer at ``index`` to the live surfaces.

        Args:
            index: 1-based target index.
            force: Reload the surfaces even when ``index`` is already active.
        """
        if not 1 <= index <= len(self.buffers):
            raise IndexError(f"No buffer at index {index}")
        if index == self.active_index and not force:
            return
        self.sync_out()
        self.active_index = index
        self.sync_in()

    def sync_out(self) -> None:
        """Copy the live surface state into the active buffer's record."""
        buffer = self.active()
        if buffer is None:
            return
        buffer.text = self.primary.get_text()
        buffer.cursor_line, buffer.cursor_col, buffer.selection_length = self.primary.get_cursor()
        self._emit("sync_out", buffer, self.active_index)

    def sync_in(self) -> None:
        """Load the active buffer into the live surfaces."""
        buffer = self.active()
        if buffer is None:
            return
        self.primary.set_text(buffer.text, internal=True)
        self.primary.set_cursor(buffer.cursor_line, buffer.cursor_col)
        self._emit("sync_in", buffer, self.active_index)

    def close(self, index: int, on_closed: Optional[Callable[[Buffer], None]] = None,
              on_cancel: Optional[Callable[[], None]] = None) -> None:
        """
        Close a buffer once the unsaved-changes guard allows it.

        Args:
            index: 1-based index of the buffer to close.
            on_closed: Called with the removed buffer.
            on_cancel: Called when the user cancels the guard.
        """
        buffer = self.get(index)
        if buffer is None:
            raise IndexError(f"No buffer at index {index}")
        if index == self.active_index:
            self.sync_out()

        def remove_buffer():
            removed = self.remove(self.index_of(buffer))
            if on_closed:
                on_closed(removed)

        if self.workflow is None:
            remove_buffer()
        else:
            self.workflow.guard(buffer.dirty, remove_buffer, buffer=buffer, on_cancel=on_cancel)

    def remove(self, index: int) -> Buffer:
        """
        Remove a buffer without any confirmation and re-derive the active index.

        Returns:
            The removed buffer.
        """
        buffer = self.get(index)
        if buffer is None:
            raise IndexError(f"No buffer at index {index}")
        old = self.active_index
        del self.buffers[index - 1]

        if index < old:
            new = old - 1
        elif index == old:
            new = min(index, len(self.buffers))
        else:
            new = old

        self.active_index = new
        logger.debug(f"Buffer {buffer.id} removed from {index}, active {old} -> {new}")
        self._emit("removed", buffer, index)

        if new == 0:
            self.primary.set_text("", internal=True)
            self.primary.set_cursor(1, 1)
        elif index == old:
            self.sync_in()
        return buffer
