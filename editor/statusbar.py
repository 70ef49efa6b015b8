"""Status bar component."""

from dataclasses import dataclass
from typing import Callable, Optional

from prompt_toolkit.application.current import get_app
from prompt_toolkit.layout.controls import FormattedTextControl

from core.timers import Scheduler, TimerHandle


@dataclass(frozen=True)
class StatusSnapshot:
    """What the status line shows for the focused pane."""
    name: str = "Untitled"
    dirty: bool = False
    path: Optional[str] = None
    line: int = 1
    col: int = 1
    selection_length: int = 0
    diagnostics: Optional[int] = None


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[:width - 3] + "..."


def format_status(snapshot: StatusSnapshot, width: int, message: Optional[str] = None) -> str:
    """
    Lay out the status line.

    The left side holds the file name (with "*" when dirty) and either the
    transient message or the path; the right side holds position and
    diagnostics counts. The left side is cut first when space runs out.
    """
    right_parts = [f"Ln {snapshot.line}", f"Col {snapshot.col}"]
    if snapshot.selection_length > 0:
        right_parts.append(f"Sel {snapshot.selection_length}")
    if snapshot.diagnostics is not None:
        right_parts.append(f"Diag {snapshot.diagnostics}")
    right = "  ".join(right_parts)

    if len(right) >= width:
        return truncate(right, width)

    left_capacity = width - len(right) - 1
    if left_capacity == 0:
        return right.rjust(width)

    left_parts = [snapshot.name + ("*" if snapshot.dirty else "")]
    if message:
        left_parts.append(message)
    elif snapshot.path:
        left_parts.append(snapshot.path)
    left = truncate("  ".join(left_parts), left_capacity).ljust(left_capacity)

    return f"{left} {right}".ljust(width)


class StatusBar:
    """Status line with transient messages that clear themselves."""

    def __init__(self, scheduler: Optional[Scheduler] = None, visible: bool = True):
        self.scheduler = scheduler
        self.visible = visible
        self.snapshot = StatusSnapshot()
        self.current_message: Optional[str] = None
        self._timer: Optional[TimerHandle] = None
        self.on_expire: Optional[Callable[[], None]] = None
        self.control = FormattedTextControl(text=self._get_text)

    def update(self, snapshot: StatusSnapshot) -> None:
        self.snapshot = snapshot

    def set_message(self, message: Optional[str], duration: Optional[float] = None) -> None:
        """
        Show a message; with a duration it clears itself afterwards.

        A newer message cancels the previous message's timer.
        """
        self.current_message = message
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if message and duration and duration > 0 and self.scheduler is not None:
            self._timer = self.scheduler.call_later(duration, self._expire, message)

    def clear_message(self) -> None:
        self.set_message(None)

    def _expire(self, message: str) -> None:
        self._timer = None
        if self.current_message == message:
            self.current_message = None
            if self.on_expire:
                self.on_expire()

    def render(self, width: int) -> str:
        if not self.visible:
            return ""
        return format_status(self.snapshot, width, self.current_message)

    def _get_text(self) -> str:
        return self.render(get_app().output.get_size().columns)
