"""Split view: two panes over the active document."""

from enum import Enum
from typing import Callable, Dict, List, Tuple

from core.logging import logger
from editor.buffers import Buffer, BufferRegistry
from editor.surface import TextSurface

PRIMARY = 1
SECONDARY = 2


class SplitDirection(str, Enum):
    """Pane arrangement; VERTICAL puts the panes side by side."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class SplitViewCoordinator:
    """
    Keeps the secondary pane showing the active buffer's text.

    A user edit in one pane is copied into the other as an internal write, which
    raises no change events of its own and leaves that pane's cursor where it
    was. Both panes' edits reach ``text_changed`` listeners exactly once.
    """

    EVENTS = ("text_changed", "cursor_moved", "layout")

    def __init__(self, registry: BufferRegistry, secondary: TextSurface,
                 direction: SplitDirection = SplitDirection.VERTICAL):
        self.registry = registry
        self.primary = registry.primary
        self.secondary = secondary
        self.active = False
        self.direction = SplitDirection(direction)
        self.focused_pane = PRIMARY
        self._cursors: Dict[int, Tuple[int, int, int]] = {PRIMARY: (1, 1, 0), SECONDARY: (1, 1, 0)}
        self._callbacks: Dict[str, List[Callable]] = {event: [] for event in self.EVENTS}

        self.primary.on_change(lambda text: self._handle_change(PRIMARY, text))
        self.secondary.on_change(lambda text: self._handle_change(SECONDARY, text))
        self.primary.on_cursor_move(lambda line, col, sel: self._handle_cursor(PRIMARY, line, col, sel))
        self.secondary.on_cursor_move(lambda line, col, sel: self._handle_cursor(SECONDARY, line, col, sel))

        registry.register_callback("sync_out", self._on_sync_out)
        registry.register_callback("sync_in", self._on_sync_in)
        registry.register_callback("removed", self._on_removed)

    def register_callback(self, event: str, callback: Callable) -> None:
        """
        Register a callback.

        ``text_changed`` gets the new text, ``cursor_moved`` gets line, column
        and selection length of the focused pane, ``layout`` gets no arguments.
        """
        if event not in self._callbacks:
            raise ValueError(f"Unknown split event: {event}")
        self._callbacks[event].append(callback)

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._callbacks[event]):
            callback(*args)

    def surface(self, pane: int) -> TextSurface:
        return self.primary if pane == PRIMARY else self.secondary

    def cursor(self, pane: int) -> Tuple[int, int, int]:
        """Last known line, column and selection length of a pane."""
        return self._cursors[pane]

    @property
    def reported_cursor(self) -> Tuple[int, int, int]:
        """Cursor shown in the status bar: the focused pane's."""
        return self._cursors[self.focused_pane]

    def enable(self) -> bool:
        """
        Show the secondary pane on the active buffer.

        Returns:
            False when there is no buffer to split.
        """
        buffer = self.registry.active()
        if buffer is None:
            return False
        if self.active:
            return True
        self.secondary.set_text(self.primary.get_text(), internal=True)
        self.secondary.set_cursor(buffer.split_cursor_line or 1, buffer.split_cursor_col or 1)
        self._cursors[SECONDARY] = self.secondary.get_cursor()
        self.active = True
        logger.debug(f"Split enabled ({self.direction.value}) on buffer {buffer.id}")
        self._emit("layout")
        return True

    def disable(self) -> None:
        """Hide the secondary pane, remembering its cursor on the buffer."""
        if not self.active:
            return
        buffer = self.registry.active()
        if buffer is not None:
            self._store_secondary_cursor(buffer)
        self._hide()

    def toggle(self) -> bool:
        if self.active:
            self.disable()
            return True
        return self.enable()

    def set_direction(self, direction: SplitDirection) -> None:
        """Change pane arrangement; text and cursors are untouched."""
        self.direction = SplitDirection(direction)
        self._emit("layout")

    def toggle_direction(self) -> SplitDirection:
        if self.direction == SplitDirection.VERTICAL:
            self.set_direction(SplitDirection.HORIZONTAL)
        else:
            self.set_direction(SplitDirection.VERTICAL)
        return self.direction

    def focus(self, pane: int) -> None:
        """Move focus to a pane and report that pane's cursor."""
        if pane not in (PRIMARY, SECONDARY):
            raise ValueError(f"Invalid pane: {pane}")
        if pane == SECONDARY and not self.active:
            return
        self.focused_pane = pane
        self._emit("cursor_moved", *self._cursors[pane])

    def _hide(self) -> None:
        self.secondary.set_text("", internal=True)
        self._cursors[SECONDARY] = (1, 1, 0)
        self.active = False
        if self.focused_pane == SECONDARY:
            self.focus(PRIMARY)
        self._emit("layout")

    def _store_secondary_cursor(self, buffer: Buffer) -> None:
        line, col, selection_length = self.secondary.get_cursor()
        buffer.split_cursor_line = line
        buffer.split_cursor_col = col
        buffer.split_selection_length = selection_length

    def _handle_change(self, pane: int, text: str) -> None:
        if pane == SECONDARY and not self.active:
            return
        if self.active:
            other = SECONDARY if pane == PRIMARY else PRIMARY
            target = self.surface(other)
            target.set_text(text, internal=True)
            self._cursors[other] = target.get_cursor()
        self._emit("text_changed", text)

    def _handle_cursor(self, pane: int, line: int, col: int, selection_length: int) -> None:
        self._cursors[pane] = (line, col, selection_length)
        if pane == self.focused_pane:
            self._emit("cursor_moved", line, col, selection_length)

    def _on_sync_out(self, buffer: Buffer, _index: int) -> None:
        if self.active:
            self._store_secondary_cursor(buffer)

    def _on_sync_in(self, buffer: Buffer, _index: int) -> None:
        self._cursors[PRIMARY] = self.primary.get_cursor()
        if self.active:
            self.secondary.set_text(buffer.text, internal=True)
            self.secondary.set_cursor(buffer.split_cursor_line or 1, buffer.split_cursor_col or 1)
            self._cursors[SECONDARY] = self.secondary.get_cursor()

    def _on_removed(self, _buffer: Buffer, _index: int) -> None:
        if self.active and len(self.registry) == 0:
            self._hide()
