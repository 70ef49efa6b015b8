"""Terminal editor application."""

from typing import Callable, List, Optional, Sequence, Tuple

from prompt_toolkit import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import (ConditionalContainer, DynamicContainer, Float, FloatContainer,
                                   HSplit, VSplit, Window)
from prompt_toolkit.layout.controls import BufferControl, FormattedTextControl
from prompt_toolkit.layout.layout import Layout
from prompt_toolkit.layout.margins import NumberedMargin
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Button, Dialog, Label, TextArea

from core.config import Config, get_config
from core.logging import logger
from core.storage import FileGateway
from core.timers import LoopScheduler
from editor.diagnostics import format_diagnostic
from editor.keymap import describe_bindings, format_help
from editor.presenter import ConfirmChoice, ConfirmRequest, FilePickerRequest, InputRequest, ListRequest, PickerMode
from editor.search import DirectoryEntry, FilePicker
from editor.session import EditorSession
from editor.split import SECONDARY, SplitDirection
from editor.surface import BufferSurface


class ConfirmDialog:
    """Save / Discard / Cancel prompt showing the choices the request offers."""

    def __init__(self):
        self.visible = False
        self.callback: Optional[Callable[[ConfirmChoice], None]] = None
        self.choices: Tuple[ConfirmChoice, ...] = tuple(ConfirmChoice)
        self.label = Label(text="")
        self.buttons = {
            choice: Button(text=choice.value.capitalize(), handler=lambda c=choice: self._answer(c))
            for choice in ConfirmChoice
        }
        self.dialog = self._build("")

    def _build(self, title: str) -> Dialog:
        return Dialog(title=title, body=self.label,
                      buttons=[self.buttons[choice] for choice in self.choices], modal=True)

    def get_layout(self):
        return ConditionalContainer(DynamicContainer(lambda: self.dialog), filter=Condition(lambda: self.visible))

    @property
    def default_button(self) -> Button:
        choice = ConfirmChoice.SAVE if ConfirmChoice.SAVE in self.choices else self.choices[0]
        return self.buttons[choice]

    def show(self, request: ConfirmRequest, callback: Callable[[ConfirmChoice], None]):
        self.choices = request.choices
        self.dialog = self._build(request.title)
        self.label.text = request.message
        self.callback = callback
        self.visible = True

    def _answer(self, choice: ConfirmChoice):
        callback, self.callback = self.callback, None
        self.visible = False
        if callback:
            callback(choice)


class FilePickerDialog:
    """
    Open/save file picker.

    In open mode the text field filters the listing; in save mode it holds
    the file name. Up/down move through the listing.
    """

    def __init__(self, gateway: FileGateway):
        self.gateway = gateway
        self.visible = False
        self.picker: Optional[FilePicker] = None
        self.callback: Optional[Callable[[Optional[str]], None]] = None
        self.selected_index = 0
        self.list_selected = False

        self.input = TextArea(multiline=False, accept_handler=self._accept)
        self.input.buffer.on_text_changed += self._on_input_changed
        self.path_label = Label(text="")
        self.message_label = Label(text="", style="class:dialog.error")
        self.list_control = FormattedTextControl(text=self._format_entries)
        self.dialog = Dialog(
            title="Open File",
            body=HSplit([
                self.path_label,
                self.input,
                Window(self.list_control, height=12),
                self.message_label,
            ]),
            buttons=[
                Button(text="OK", handler=self._confirm),
                Button(text="Cancel", handler=lambda: self._finish(None)),
            ],
            width=70,
            modal=True
        )

    def get_layout(self):
        return ConditionalContainer(self.dialog, filter=Condition(lambda: self.visible))

    def show(self, request: FilePickerRequest, callback: Callable[[Optional[str]], None]):
        self.picker = FilePicker(self.gateway, request)
        self.callback = callback
        self.dialog.title = "Open File" if request.mode == PickerMode.OPEN else "Save As"
        self.input.text = request.default_name if request.mode == PickerMode.SAVE else ""
        self.selected_index = 0
        self.list_selected = False
        self._sync_labels()
        self.visible = True

    def entries(self) -> List[DirectoryEntry]:
        if self.picker is None:
            return []
        if self.picker.mode == PickerMode.OPEN:
            return self.picker.filtered(self.input.text)
        return self.picker.entries

    def move(self, delta: int):
        entries = self.entries()
        if entries:
            self.selected_index = max(0, min(len(entries) - 1, self.selected_index + delta))
            self.list_selected = True

    def cancel(self):
        self._finish(None)

    def _selected(self) -> Optional[DirectoryEntry]:
        entries = self.entries()
        if 0 <= self.selected_index < len(entries):
            return entries[self.selected_index]
        return None

    def _accept(self, _buffer) -> bool:
        if self.picker is None:
            return True
        if self.picker.mode == PickerMode.OPEN or self.list_selected:
            chosen = self.picker.activate(self._selected())
            if self.picker.mode == PickerMode.SAVE:
                self.input.text = self.picker.filename
            self._after_activate()
            if chosen:
                self._finish(chosen)
            return True
        self._confirm()
        return True

    def _confirm(self):
        if self.picker is None:
            return
        if self.picker.mode == PickerMode.SAVE:
            self.picker.filename = self.input.text
            chosen = self.picker.confirm()
        else:
            chosen = self.picker.confirm(self._selected())
            self._after_activate()
        if chosen:
            self._finish(chosen)
        else:
            self._sync_labels()

    def _after_activate(self):
        if self.picker.mode == PickerMode.OPEN:
            self.input.text = ""
        self.selected_index = 0
        self.list_selected = False
        self._sync_labels()

    def _on_input_changed(self, _buffer):
        if self.picker is not None and self.picker.mode == PickerMode.OPEN:
            self.selected_index = 0
        self.list_selected = False

    def _sync_labels(self):
        self.path_label.text = self.picker.current_path if self.picker else ""
        self.message_label.text = self.picker.message if self.picker else ""

    def _finish(self, path: Optional[str]):
        callback, self.callback = self.callback, None
        self.visible = False
        self.picker = None
        if callback:
            callback(path)

    def _format_entries(self) -> FormattedText:
        lines = []
        for i, entry in enumerate(self.entries()):
            style = "class:picker.selected" if i == self.selected_index else ""
            lines.append((style, f" {entry.label}\n"))
        return FormattedText(lines)


class InputDialog:
    """Single-value prompt; stays open while the callback rejects the value."""

    def __init__(self):
        self.visible = False
        self.callback: Optional[Callable[[Optional[str]], bool]] = None
        self.prompt = Label(text="")
        self.error = Label(text="", style="class:dialog.error")
        self.input = TextArea(multiline=False, accept_handler=lambda _buffer: self._submit() or True)
        self.dialog = Dialog(
            title="",
            body=HSplit([self.prompt, self.input, self.error]),
            buttons=[
                Button(text="OK", handler=self._submit),
                Button(text="Cancel", handler=self.cancel),
            ],
            width=50,
            modal=True
        )

    def get_layout(self):
        return ConditionalContainer(self.dialog, filter=Condition(lambda: self.visible))

    def show(self, request: InputRequest, callback: Callable[[Optional[str]], bool]):
        self.dialog.title = request.title
        self.prompt.text = request.prompt
        self.error.text = ""
        self.input.text = request.value
        self.callback = callback
        self.visible = True

    def _submit(self):
        callback = self.callback
        self._close()
        if callback is not None and not callback(self.input.text):
            self.callback = callback
            self.visible = True
            self.error.text = "Invalid value"

    def cancel(self):
        callback = self.callback
        self._close()
        if callback:
            callback(None)

    def _close(self):
        self.callback = None
        self.visible = False


class ListDialog:
    """Pick one row from a list. Up/down move the highlight, Open confirms."""

    def __init__(self):
        self.visible = False
        self.callback: Optional[Callable[[Optional[int]], None]] = None
        self.items: Tuple[str, ...] = ()
        self.selected_index = 0
        self.list_control = FormattedTextControl(text=self._format_items)
        self.open_button = Button(text="Open", handler=self._confirm)
        self.dialog = Dialog(
            title="",
            body=Window(self.list_control, height=8),
            buttons=[self.open_button, Button(text="Cancel", handler=self.cancel)],
            width=80,
            modal=True
        )

    def get_layout(self):
        return ConditionalContainer(self.dialog, filter=Condition(lambda: self.visible))

    def show(self, request: ListRequest, callback: Callable[[Optional[int]], None]):
        self.dialog.title = request.title
        self.items = request.items
        self.selected_index = 0
        self.callback = callback
        self.visible = True

    def move(self, delta: int):
        if self.items:
            self.selected_index = max(0, min(len(self.items) - 1, self.selected_index + delta))

    def cancel(self):
        self._finish(None)

    def _confirm(self):
        self._finish(self.selected_index if self.items else None)

    def _finish(self, index: Optional[int]):
        callback, self.callback = self.callback, None
        self.visible = False
        if callback:
            callback(index)

    def _format_items(self) -> FormattedText:
        return FormattedText([
            ("class:picker.selected" if i == self.selected_index else "", f" {item}\n")
            for i, item in enumerate(self.items)
        ])


class MessageDialog:
    """Message with a single OK button, used for errors and help."""

    def __init__(self, on_close: Optional[Callable[[], None]] = None):
        self.visible = False
        self.on_close = on_close
        self.label = Label(text="")
        self.ok_button = Button(text="OK", handler=self.hide)
        self.dialog = Dialog(title="", body=self.label, buttons=[self.ok_button], modal=True)

    def get_layout(self):
        return ConditionalContainer(self.dialog, filter=Condition(lambda: self.visible))

    def show(self, title: str, message: str):
        self.dialog.title = title
        self.label.text = message
        self.visible = True

    def hide(self):
        self.visible = False
        if self.on_close:
            self.on_close()


class TerminalPresenter:
    """Presenter drawing the session with prompt_toolkit widgets."""

    def __init__(self, gateway: FileGateway):
        self.app: Optional[Application] = None
        self.tabs: List[str] = []
        self.selected_tab = 0
        self.confirm_dialog = ConfirmDialog()
        self.picker_dialog = FilePickerDialog(gateway)
        self.input_dialog = InputDialog()
        self.list_dialog = ListDialog()
        self.error_dialog = MessageDialog(on_close=self._restore)
        self.help_dialog = MessageDialog(on_close=self._restore)
        self.tab_control = FormattedTextControl(text=self._format_tabs)
        self.restore_focus: Callable[[], None] = lambda: None

    @property
    def modal_open(self) -> bool:
        return (self.confirm_dialog.visible or self.picker_dialog.visible
                or self.input_dialog.visible or self.list_dialog.visible
                or self.error_dialog.visible or self.help_dialog.visible)

    def add_tab(self, label: str) -> None:
        self.tabs.append(label)

    def remove_tab(self, index: int) -> None:
        if 1 <= index <= len(self.tabs):
            del self.tabs[index - 1]
        self.selected_tab = min(self.selected_tab, len(self.tabs))

    def select_tab(self, index: int) -> None:
        self.selected_tab = index

    def relabel_tab(self, index: int, label: str) -> None:
        if 1 <= index <= len(self.tabs):
            self.tabs[index - 1] = label

    def confirm(self, request: ConfirmRequest, callback: Callable[[ConfirmChoice], None]) -> None:
        self.confirm_dialog.show(request, self._after_modal(callback))
        self._focus(self.confirm_dialog.default_button)

    def pick_file(self, request: FilePickerRequest, callback: Callable[[Optional[str]], None]) -> None:
        self.picker_dialog.show(request, self._after_modal(callback))
        self._focus(self.picker_dialog.input)

    def prompt_input(self, request: InputRequest, callback: Callable[[Optional[str]], bool]) -> None:
        def answered(value: Optional[str]) -> bool:
            accepted = callback(value)
            if accepted:
                self._restore()
            return accepted

        self.input_dialog.show(request, answered)
        self._focus(self.input_dialog.input)

    def choose(self, request: ListRequest, callback: Callable[[Optional[int]], None]) -> None:
        self.list_dialog.show(request, self._after_modal(callback))
        self._focus(self.list_dialog.open_button)

    def show_error(self, title: str, message: str) -> None:
        logger.warning(f"{title}: {message}")
        self.error_dialog.show(title, message)
        self._focus(self.error_dialog.ok_button)

    def show_help(self, text: str) -> None:
        self.help_dialog.show("Keyboard Shortcuts", text)
        self._focus(self.help_dialog.ok_button)

    def refresh(self) -> None:
        if self.app is not None and self.app.is_running:
            self.app.invalidate()

    def exit(self) -> None:
        if self.app is not None and self.app.is_running:
            self.app.exit()

    def _after_modal(self, callback):
        def wrapped(*args):
            self._restore()
            return callback(*args)
        return wrapped

    def _restore(self):
        if not self.modal_open:
            self.restore_focus()
        self.refresh()

    def _focus(self, widget):
        if self.app is not None and self.app.is_running:
            self.app.layout.focus(widget)

    def _format_tabs(self) -> FormattedText:
        parts = []
        for i, label in enumerate(self.tabs, start=1):
            style = "class:tab.selected" if i == self.selected_tab else "class:tab"
            parts.append((style, f" {label} "))
            parts.append(("", " "))
        return FormattedText(parts)


def _diagnostics_text(session: EditorSession) -> FormattedText:
    buffer = session.active_buffer
    if buffer is None or not buffer.diagnostics:
        return FormattedText([("", "No problems")])
    return FormattedText([("class:diagnostic", format_diagnostic(d) + "\n") for d in buffer.diagnostics])


def create_app(paths: Sequence[str] = (), config: Optional[Config] = None, root: str = "/",
               cwd: str = "/") -> Application:
    """
    Create the editor application.

    Args:
        paths: Files to open at startup.
        config: Settings; read from ~/.termpad.toml when omitted.
        root: Local directory that canonical "/" maps to.
        cwd: Canonical directory relative paths are resolved against.
    """
    config = config or get_config()
    gateway = FileGateway(root)
    presenter = TerminalPresenter(gateway)
    primary = BufferSurface(name="primary")
    secondary = BufferSurface(name="secondary")
    session = EditorSession(gateway, presenter, primary, secondary,
                            scheduler=LoopScheduler(), config=config, cwd=cwd)

    has_buffer = Condition(lambda: bool(session.buffers))
    primary.buffer.read_only = ~has_buffer
    secondary.buffer.read_only = ~has_buffer

    margins = [NumberedMargin()] if config.show_line_numbers else []
    primary_window = Window(
        BufferControl(primary.buffer),
        left_margins=margins,
        wrap_lines=config.soft_wrap
    )
    secondary_window = Window(
        BufferControl(secondary.buffer),
        left_margins=[NumberedMargin()] if config.show_line_numbers else [],
        wrap_lines=config.soft_wrap
    )

    def editor_area():
        if not session.split_active:
            return primary_window
        if session.split_direction == SplitDirection.VERTICAL:
            return VSplit([primary_window, Window(width=1, char="│", style="class:separator"), secondary_window])
        return HSplit([primary_window, Window(height=1, char="─", style="class:separator"), secondary_window])

    def focus_editor():
        window = secondary_window if session.active_pane_index == SECONDARY else primary_window
        if presenter.app is not None and presenter.app.is_running:
            presenter.app.layout.focus(window)

    presenter.restore_focus = focus_editor

    diagnostics_visible = Condition(
        lambda: session.status.visible and session.active_buffer is not None
        and session.active_buffer.diagnostics_expanded
    )

    body = HSplit([
        Window(presenter.tab_control, height=1, style="class:tabs"),
        DynamicContainer(editor_area),
        ConditionalContainer(
            Window(FormattedTextControl(text=lambda: _diagnostics_text(session)), height=5,
                   style="class:diagnostics"),
            filter=diagnostics_visible
        ),
        ConditionalContainer(
            Window(session.status.control, height=1, style="class:status"),
            filter=Condition(lambda: session.status.visible)
        ),
    ])

    layout = Layout(
        FloatContainer(
            content=body,
            floats=[
                Float(presenter.confirm_dialog.get_layout()),
                Float(presenter.picker_dialog.get_layout()),
                Float(presenter.input_dialog.get_layout()),
                Float(presenter.list_dialog.get_layout()),
                Float(presenter.error_dialog.get_layout()),
                Float(presenter.help_dialog.get_layout()),
            ]
        ),
        focused_element=primary_window
    )

    kb = KeyBindings()
    editing = Condition(lambda: not presenter.modal_open)
    picking = Condition(lambda: presenter.picker_dialog.visible)
    listing = Condition(lambda: presenter.list_dialog.visible)

    # Files
    @kb.add('c-n', filter=editing)
    def new_file(event):
        """New untitled buffer."""
        session.new_file()

    @kb.add('c-o', filter=editing)
    def open_file(event):
        """Open a file."""
        session.open_file()

    @kb.add('c-s', filter=editing)
    def save_file(event):
        """Save the active buffer."""
        session.save()

    @kb.add('escape', 's', filter=editing)
    def save_as(event):
        """Save the active buffer under a new name."""
        session.save_as()

    @kb.add('escape', 'r', filter=editing)
    def revert(event):
        """Revert to the saved file."""
        session.revert()

    @kb.add('c-w', filter=editing)
    def close_buffer(event):
        """Close the active buffer."""
        session.close()

    @kb.add('c-q', filter=editing)
    def quit_app(event):
        """Quit, resolving unsaved buffers first."""
        session.request_exit()

    for n in range(1, 9):
        @kb.add('escape', str(n), filter=editing)
        def open_recent(event, index=n - 1):
            """Open a recent file."""
            session.open_recent(index)

    @kb.add('f2', filter=editing)
    def recent_files(event):
        """List recent files."""
        session.show_recent_files()

    @kb.add('escape', 'c', filter=editing)
    def clear_recent(event):
        """Forget recent files."""
        session.clear_recent_files()

    # Buffers
    @kb.add('c-pagedown', filter=editing)
    @kb.add('escape', 'right', filter=editing)
    def next_buffer(event):
        """Next buffer."""
        session.next_buffer()

    @kb.add('c-pageup', filter=editing)
    @kb.add('escape', 'left', filter=editing)
    def previous_buffer(event):
        """Previous buffer."""
        session.previous_buffer()

    # Split view
    @kb.add('f6', filter=editing)
    def toggle_split(event):
        """Toggle the split view."""
        session.toggle_split()
        focus_editor()

    @kb.add('escape', 'v', filter=editing)
    def toggle_split_direction(event):
        """Switch between side-by-side and stacked panes."""
        session.toggle_split_direction()

    @kb.add('f7', filter=editing)
    def other_pane(event):
        """Move focus to the other pane."""
        session.toggle_pane_focus()
        focus_editor()

    # Editing
    @kb.add('c-g', filter=editing)
    def go_to_line(event):
        """Go to line."""
        session.prompt_go_to_line()

    @kb.add('c-d', filter=editing)
    def duplicate_line(event):
        """Duplicate the current line."""
        session.duplicate_line()

    @kb.add('escape', 'w', filter=editing)
    def trim_whitespace(event):
        """Trim trailing whitespace."""
        session.trim_trailing_whitespace()

    @kb.add('escape', 't', filter=editing)
    def tab_size(event):
        """Set the tab width."""
        session.prompt_tab_size()

    @kb.add('tab', filter=editing & has_buffer)
    def insert_tab(event):
        """Insert spaces up to the tab width."""
        event.current_buffer.insert_text(" " * session.tab_width)

    # View
    @kb.add('f8', filter=editing)
    def toggle_diagnostics(event):
        """Toggle the diagnostics panel."""
        session.toggle_diagnostics_panel()

    @kb.add('escape', 'd', filter=editing)
    def jump_to_diagnostic(event):
        """Jump to the first diagnostic."""
        session.jump_to_diagnostic(0)

    @kb.add('escape', 'b', filter=editing)
    def toggle_status_bar(event):
        """Toggle the status bar."""
        session.toggle_status_bar()

    @kb.add('f5', filter=editing)
    def run_file(event):
        """Run the current file."""
        session.run_current_file()

    @kb.add('f1', filter=editing)
    def show_help(event):
        """Show keyboard shortcuts."""
        presenter.show_help(format_help(describe_bindings(kb)))

    # Dialog navigation
    @kb.add('up', filter=picking, eager=True)
    def picker_up(event):
        presenter.picker_dialog.move(-1)

    @kb.add('down', filter=picking, eager=True)
    def picker_down(event):
        presenter.picker_dialog.move(1)

    @kb.add('up', filter=listing, eager=True)
    def list_up(event):
        presenter.list_dialog.move(-1)

    @kb.add('down', filter=listing, eager=True)
    def list_down(event):
        presenter.list_dialog.move(1)

    @kb.add('escape', filter=Condition(lambda: presenter.modal_open), eager=True)
    def cancel_dialog(event):
        """Dismiss the open dialog."""
        if presenter.confirm_dialog.visible:
            presenter.confirm_dialog._answer(ConfirmChoice.CANCEL)
        elif presenter.picker_dialog.visible:
            presenter.picker_dialog.cancel()
        elif presenter.input_dialog.visible:
            presenter.input_dialog.cancel()
        elif presenter.list_dialog.visible:
            presenter.list_dialog.cancel()
        elif presenter.error_dialog.visible:
            presenter.error_dialog.hide()
        elif presenter.help_dialog.visible:
            presenter.help_dialog.hide()

    style = Style.from_dict({
        'status': 'bg:#444444 #ffffff',
        'tabs': 'bg:#222222 #aaaaaa',
        'tab.selected': 'bg:#005f87 #ffffff bold',
        'separator': '#666666',
        'diagnostics': 'bg:#1c1c1c',
        'diagnostic': '#ff5f5f',
        'picker.selected': 'reverse',
        'dialog.error': '#ff5f5f',
    })

    app = Application(
        layout=layout,
        key_bindings=kb,
        style=style,
        full_screen=True,
        mouse_support=True
    )
    presenter.app = app
    app.pre_run_callables.append(lambda: session.initialize(paths))
    app.pre_run_callables.append(focus_editor)
    return app


if __name__ == "__main__":
    create_app().run()
