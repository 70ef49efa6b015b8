"""Shared fakes for session tests."""

from typing import Callable, List, Optional, Tuple

import pytest

from core.config import DEFAULT_CONFIG
from core.storage import FileGateway
from editor.presenter import ConfirmChoice, ConfirmRequest, FilePickerRequest, InputRequest, ListRequest
from editor.session import EditorSession


class FakeTimer:
    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Scheduler driven by a manual clock."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float):
        """Move the clock forward, firing every timer that comes due."""
        self.now += seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= self.now + 1e-9]
            if not due:
                return
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            timer.callback(*timer.args)


class FakeSurface:
    """
    In-memory text surface.

    ``type`` stands in for a user edit; ``set_text`` with ``internal=True``
    notifies nobody, like the real surface.
    """

    def __init__(self):
        self.text = ""
        self.line = 1
        self.col = 1
        self.selection_length = 0
        self.change_callbacks = []
        self.cursor_callbacks = []

    def get_text(self):
        return self.text

    def set_text(self, text, internal=True):
        self.text = text
        self._clamp()
        if not internal:
            for callback in list(self.change_callbacks):
                callback(text)
            self._cursor_moved()

    def type(self, text):
        self.set_text(text, internal=False)

    def get_cursor(self):
        return self.line, self.col, self.selection_length

    def set_cursor(self, line, col):
        self.line, self.col = line, col
        self._clamp()
        self._cursor_moved()

    def set_offset(self, offset):
        before = self.text[:max(0, min(offset, len(self.text)))]
        lines = before.split("\n")
        self.set_cursor(len(lines), len(lines[-1]) + 1)

    def on_change(self, callback):
        self.change_callbacks.append(callback)

    def on_cursor_move(self, callback):
        self.cursor_callbacks.append(callback)

    def _clamp(self):
        lines = self.text.split("\n")
        self.line = max(1, min(self.line, len(lines)))
        self.col = max(1, min(self.col, len(lines[self.line - 1]) + 1))

    def _cursor_moved(self):
        for callback in list(self.cursor_callbacks):
            callback(self.line, self.col, self.selection_length)


class RecordingPresenter:
    """Presenter that records calls and leaves modal answers to the test."""

    def __init__(self):
        self.tabs: List[str] = []
        self.selected_tab = 0
        self.tab_selections: List[int] = []
        self.confirms: List[Tuple[ConfirmRequest, Callable]] = []
        self.pickers: List[Tuple[FilePickerRequest, Callable]] = []
        self.inputs: List[Tuple[InputRequest, Callable]] = []
        self.lists: List[Tuple[ListRequest, Callable]] = []
        self.errors: List[Tuple[str, str]] = []
        self.refreshes = 0
        self.exited = False

    def add_tab(self, label):
        self.tabs.append(label)

    def remove_tab(self, index):
        del self.tabs[index - 1]

    def select_tab(self, index):
        self.selected_tab = index
        self.tab_selections.append(index)

    def relabel_tab(self, index, label):
        self.tabs[index - 1] = label

    def confirm(self, request, callback):
        self.confirms.append((request, callback))

    def pick_file(self, request, callback):
        self.pickers.append((request, callback))

    def prompt_input(self, request, callback):
        self.inputs.append((request, callback))

    def choose(self, request, callback):
        self.lists.append((request, callback))

    def show_error(self, title, message):
        self.errors.append((title, message))

    def refresh(self):
        self.refreshes += 1

    def exit(self):
        self.exited = True

    def answer_confirm(self, choice: ConfirmChoice):
        _, callback = self.confirms.pop(0)
        callback(choice)

    def answer_picker(self, path: Optional[str]):
        _, callback = self.pickers.pop(0)
        callback(path)

    def answer_input(self, value: Optional[str]) -> bool:
        _, callback = self.inputs[0]
        accepted = callback(value)
        if accepted:
            self.inputs.pop(0)
        return accepted

    def answer_list(self, index: Optional[int]):
        _, callback = self.lists.pop(0)
        callback(index)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def primary():
    return FakeSurface()


@pytest.fixture
def secondary():
    return FakeSurface()


@pytest.fixture
def gateway(tmp_path):
    return FileGateway(tmp_path)


@pytest.fixture
def session(gateway, presenter, primary, secondary, scheduler):
    return EditorSession(gateway, presenter, primary, secondary, scheduler=scheduler, config=DEFAULT_CONFIG)
