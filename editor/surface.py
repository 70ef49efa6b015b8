"""Live text editing surfaces.

A surface is what the user types into. The session only talks to the
``TextSurface`` protocol; ``BufferSurface`` adapts a prompt_toolkit ``Buffer``.
"""

from typing import Callable, List, Optional, Protocol, Tuple

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document

ChangeCallback = Callable[[str], None]
CursorCallback = Callable[[int, int, int], None]


class TextSurface(Protocol):
    """Minimal editing surface interface (1-based lines and columns)."""

    def get_text(self) -> str:
        ...

    def set_text(self, text: str, internal: bool = True) -> None:
        ...

    def get_cursor(self) -> Tuple[int, int, int]:
        ...

    def set_cursor(self, line: int, col: int) -> None:
        ...

    def set_offset(self, offset: int) -> None:
        ...

    def on_change(self, callback: ChangeCallback) -> None:
        ...

    def on_cursor_move(self, callback: CursorCallback) -> None:
        ...


class BufferSurface:
    """
    TextSurface over a prompt_toolkit Buffer.

    Writes flagged ``internal`` replace the text without notifying change or
    cursor listeners, and keep the cursor on the same line and column.
    """

    def __init__(self, buffer: Optional[Buffer] = None, name: str = "primary"):
        self.name = name
        self.buffer = buffer or Buffer(multiline=True)
        self._internal = False
        self._change_callbacks: List[ChangeCallback] = []
        self._cursor_callbacks: List[CursorCallback] = []
        self.buffer.on_text_changed += self._handle_text_changed
        self.buffer.on_cursor_position_changed += self._handle_cursor_changed

    def get_text(self) -> str:
        return self.buffer.text

    def set_text(self, text: str, internal: bool = True) -> None:
        """Replace the whole text, keeping the cursor's line and column."""
        line, col, _ = self.get_cursor()
        target = Document(text)
        position = target.translate_row_col_to_index(line - 1, col - 1)
        previous = self._internal
        self._internal = internal
        try:
            self.buffer.set_document(Document(text, cursor_position=position), bypass_readonly=True)
        finally:
            self._internal = previous

    def get_cursor(self) -> Tuple[int, int, int]:
        document = self.buffer.document
        selection = self.buffer.selection_state
        selection_length = 0
        if selection is not None:
            selection_length = abs(self.buffer.cursor_position - selection.original_cursor_position)
        return document.cursor_position_row + 1, document.cursor_position_col + 1, selection_length

    def set_cursor(self, line: int, col: int) -> None:
        document = self.buffer.document
        self.buffer.cursor_position = document.translate_row_col_to_index(max(0, line - 1), max(0, col - 1))

    def set_offset(self, offset: int) -> None:
        self.buffer.cursor_position = max(0, min(offset, len(self.buffer.text)))

    def on_change(self, callback: ChangeCallback) -> None:
        self._change_callbacks.append(callback)

    def on_cursor_move(self, callback: CursorCallback) -> None:
        self._cursor_callbacks.append(callback)

    def _handle_text_changed(self, _sender: Buffer) -> None:
        if self._internal:
            return
        text = self.buffer.text
        for callback in list(self._change_callbacks):
            callback(text)

    def _handle_cursor_changed(self, _sender: Buffer) -> None:
        if self._internal:
            return
        line, col, selection_length = self.get_cursor()
        for callback in list(self._cursor_callbacks):
            callback(line, col, selection_length)
