"""Interface between the editing session and whatever draws it.

The terminal application implements ``Presenter``; tests use a recording fake.
Every modal request is an explicit dataclass, and answers come back through a
callback so the session never blocks waiting for the user.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, Tuple


class ConfirmChoice(str, Enum):
    """Answers to the unsaved-changes prompt."""
    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


class PickerMode(str, Enum):
    OPEN = "open"
    SAVE = "save"


@dataclass(frozen=True)
class ConfirmRequest:
    title: str
    message: str
    choices: Tuple[ConfirmChoice, ...] = (ConfirmChoice.SAVE, ConfirmChoice.DISCARD, ConfirmChoice.CANCEL)


@dataclass(frozen=True)
class FilePickerRequest:
    mode: PickerMode
    start_path: str
    default_name: str = ""


@dataclass(frozen=True)
class InputRequest:
    title: str
    prompt: str
    value: str = ""


@dataclass(frozen=True)
class ListRequest:
    """Pick one row from a list; the callback gets its 0-based index or None."""
    title: str
    items: Tuple[str, ...]


class Presenter(Protocol):
    """Presentation operations the session drives."""

    def add_tab(self, label: str) -> None:
        ...

    def remove_tab(self, index: int) -> None:
        ...

    def select_tab(self, index: int) -> None:
        ...

    def relabel_tab(self, index: int, label: str) -> None:
        ...

    def confirm(self, request: ConfirmRequest, callback: Callable[[ConfirmChoice], None]) -> None:
        ...

    def pick_file(self, request: FilePickerRequest, callback: Callable[[Optional[str]], None]) -> None:
        ...

    def prompt_input(self, request: InputRequest, callback: Callable[[Optional[str]], bool]) -> None:
        """Ask for a value; the callback returns False to keep the prompt open."""
        ...

    def choose(self, request: ListRequest, callback: Callable[[Optional[int]], None]) -> None:
        ...

    def show_error(self, title: str, message: str) -> None:
        ...

    def refresh(self) -> None:
        """Redraw after session state changed."""
        ...

    def exit(self) -> None:
        ...
