"""Editing session: wires user intents to buffers, diagnostics and the split view."""

from typing import Callable, List, Optional, Sequence

from core.config import DEFAULT_CONFIG, Config
from core.errors import DirectoryConflictError, InvalidPathError, IOFailure, PathInUseError, TermpadError
from core.logging import logger
from core.paths import ROOT, base_name, normalize_path, parent_dir, to_canonical
from core.storage import FileGateway
from core.timers import Scheduler
from editor import textops
from editor.buffers import Buffer, BufferRegistry
from editor.diagnostics import Diagnostic, DiagnosticsEngine
from editor.presenter import FilePickerRequest, InputRequest, ListRequest, PickerMode, Presenter
from editor.recent import RecentEntry, RecentFiles, describe_recent, format_recent_entry
from editor.runner import run_file
from editor.split import PRIMARY, SECONDARY, SplitDirection, SplitViewCoordinator
from editor.statusbar import StatusBar, StatusSnapshot
from editor.surface import TextSurface
from editor.workflow import ExitSequence, UnsavedChangesWorkflow

SavedCallback = Optional[Callable[[bool], None]]


class EditorSession:
    """
    Facade over the editing session.

    Destructive intents (new, open, switch, close, revert, exit) pass through
    the unsaved-changes workflow first. The buffer registry is the only source
    of truth for document state; the live surfaces are a projection of the
    active buffer.
    """

    def __init__(self, gateway: FileGateway, presenter: Presenter,
                 primary: TextSurface, secondary: TextSurface,
                 scheduler: Optional[Scheduler] = None,
                 config: Optional[Config] = None,
                 cwd: str = ROOT):
        self.config = config or DEFAULT_CONFIG
        self.gateway = gateway
        self.presenter = presenter
        self.cwd = to_canonical(cwd)
        self.tab_width = self.config.tab_width
        self.next_untitled_id = 1
        self.recent = RecentFiles()

        self.registry = BufferRegistry(primary)
        self.workflow = UnsavedChangesWorkflow(presenter, save_handler=self.save_buffer,
                                               discard_handler=self._discard)
        self.registry.workflow = self.workflow
        self.diagnostics = DiagnosticsEngine(scheduler, debounce_ms=self.config.diagnostics_debounce_ms)
        self.diagnostics.enabled = self.config.diagnostics_enabled
        self.split = SplitViewCoordinator(self.registry, secondary, SplitDirection(self.config.split_direction))
        self.exit_sequence = ExitSequence(self.registry, self.workflow, presenter.exit)
        self.status = StatusBar(scheduler, visible=self.config.show_status_bar)
        self.status.on_expire = presenter.refresh

        self.registry.register_callback("added", self._on_added)
        self.registry.register_callback("removed", self._on_removed)
        self.registry.register_callback("sync_in", self._on_sync_in)
        self.split.register_callback("text_changed", self._on_text_changed)
        self.split.register_callback("cursor_moved", self._on_cursor_moved)
        self.split.register_callback("layout", presenter.refresh)
        self.diagnostics.register_callback(self._on_diagnostics)

    # State projections

    @property
    def buffers(self) -> List[Buffer]:
        return self.registry.buffers

    @property
    def active_index(self) -> int:
        return self.registry.active_index

    @property
    def active_buffer(self) -> Optional[Buffer]:
        return self.registry.active()

    @property
    def recent_files(self) -> List[str]:
        return list(self.recent)

    @property
    def split_active(self) -> bool:
        return self.split.active

    @property
    def split_direction(self) -> SplitDirection:
        return self.split.direction

    @property
    def active_pane_index(self) -> int:
        return self.split.focused_pane

    def focused_surface(self) -> TextSurface:
        return self.split.surface(self.split.focused_pane)

    # Startup

    def initialize(self, paths: Sequence[str] = ()) -> None:
        """
        Open the files named on the command line.

        Missing files become empty buffers that remember the path they were
        meant for; with no paths a single untitled buffer is created.
        """
        for path in paths:
            try:
                normalized = normalize_path(path, self.cwd)
            except InvalidPathError as e:
                self.presenter.show_error("Open Failed", e.message)
                continue
            existing = self.registry.find_by_path(normalized)
            if self.gateway.exists(normalized):
                self.open_path(normalized)
            elif existing:
                self.registry.activate(existing)
            else:
                buffer = Buffer(display_name=base_name(normalized), saved_text="", pending_path=normalized)
                self.registry.add(buffer)
        if not self.buffers:
            self._create_untitled()
        self._update_status()

    # File intents

    def new_file(self) -> None:
        """Create an untitled buffer once the active buffer's edits are resolved."""
        self._guard_active(self._create_untitled)

    def _create_untitled(self) -> Buffer:
        name = f"Untitled-{self.next_untitled_id}"
        self.next_untitled_id += 1
        buffer = Buffer(display_name=name, saved_text="")
        self.registry.add(buffer)
        self._update_status()
        return buffer

    def open_file(self) -> None:
        """Ask for a file and open it."""
        def pick():
            active = self.active_buffer
            start = parent_dir(active.path) if active and active.path else self.cwd
            self.presenter.pick_file(
                FilePickerRequest(mode=PickerMode.OPEN, start_path=start),
                lambda selected: self.open_path(selected) if selected else None
            )

        self._guard_active(pick)

    def open_recent(self, index: int) -> None:
        """Open the ``index``-th (0-based) recent file."""
        if not 0 <= index < len(self.recent):
            return
        path = self.recent[index]
        self._guard_active(lambda: self.open_path(path))

    def open_path(self, path: str) -> bool:
        """
        Open ``path`` in a new buffer, or focus the buffer already showing it.

        Returns:
            True if the file is now the active buffer.
        """
        try:
            normalized = normalize_path(path, self.cwd)
        except InvalidPathError as e:
            self.presenter.show_error("Open Failed", e.message)
            return False

        existing = self.registry.find_by_path(normalized)
        if existing:
            self.registry.activate(existing)
            self.recent.add(normalized)
            self._update_status()
            return True

        if not self.gateway.exists(normalized):
            self.recent.remove(normalized)
            self.presenter.show_error("Open Failed", f"{normalized} not found")
            return False
        if self.gateway.is_directory(normalized):
            self.presenter.show_error("Open Failed", "Cannot open a directory")
            return False

        try:
            data = self.gateway.read(normalized)
        except IOFailure as e:
            logger.error(f"Open failed for {normalized}: {e.message}")
            self.presenter.show_error("Open Failed", e.message)
            return False

        text = data.decode(self.config.encoding, errors="replace")
        buffer = Buffer(display_name=base_name(normalized), text=text, path=normalized,
                        saved_text=text, is_untitled=False)
        self.registry.add(buffer)
        self.diagnostics.refresh(buffer)
        self.recent.add(normalized)
        logger.info(f"Opened {normalized}")
        self._message(f"Opened {normalized}")
        return True

    def save(self, on_saved: SavedCallback = None) -> None:
        """Save the active buffer, asking for a path if it has none."""
        self.save_buffer(self.active_buffer, on_saved)

    def save_buffer(self, buffer: Optional[Buffer], on_saved: SavedCallback = None) -> None:
        """Save ``buffer`` (the active one when None) and report success to ``on_saved``."""
        buffer = buffer or self.active_buffer
        if buffer is None:
            if on_saved:
                on_saved(False)
            return
        if buffer.path:
            saved = self.save_to_path(buffer, buffer.path)
            if on_saved:
                on_saved(saved)
            return
        self.save_as(buffer, on_saved)

    def save_as(self, buffer: Optional[Buffer] = None, on_saved: SavedCallback = None) -> None:
        """Pick a destination and save ``buffer`` there."""
        buffer = buffer or self.active_buffer
        if buffer is None:
            if on_saved:
                on_saved(False)
            return

        if buffer.path:
            start, default_name = parent_dir(buffer.path), base_name(buffer.path)
        elif buffer.pending_path:
            start, default_name = parent_dir(buffer.pending_path), base_name(buffer.pending_path)
        else:
            start, default_name = self.cwd, buffer.display_name

        def picked(selected: Optional[str]):
            saved = self.save_to_path(buffer, selected) if selected else False
            if on_saved:
                on_saved(saved)

        self.presenter.pick_file(
            FilePickerRequest(mode=PickerMode.SAVE, start_path=start, default_name=default_name),
            picked
        )

    def save_to_path(self, buffer: Buffer, target: str) -> bool:
        """
        Write ``buffer`` to ``target``.

        Creates a missing parent directory and refuses to overwrite a
        directory or a file open in another buffer. On any failure the
        buffer is left untouched.

        Returns:
            True if the file was written.
        """
        try:
            normalized = normalize_path(target, self.cwd)
            owner = self.registry.get(self.registry.find_by_path(normalized))
            if owner is not None and owner is not buffer:
                raise PathInUseError(f"{normalized} is open in another tab", path=normalized)
            directory = parent_dir(normalized)
            if directory != ROOT and not self.gateway.exists(directory):
                self.gateway.make_directory(directory)
            if self.gateway.exists(normalized) and self.gateway.is_directory(normalized):
                raise DirectoryConflictError("Cannot overwrite a directory", path=normalized)
            if buffer is self.active_buffer:
                self.registry.sync_out()
            self.gateway.write(normalized, buffer.text.encode(self.config.encoding))
        except TermpadError as e:
            logger.error(f"Save failed for {target}: {e.message}")
            self.presenter.show_error("Save Failed", e.message)
            return False

        buffer.mark_saved(normalized, base_name(normalized))
        self.recent.add(normalized)
        self._relabel(buffer)
        logger.info(f"Saved {normalized}")
        self._message(f"Saved to {normalized}")
        return True

    def revert(self) -> None:
        """Return the active buffer to its saved contents."""
        buffer = self.active_buffer
        if buffer is None or buffer.saved_text is None:
            return

        def do_revert():
            if self.active_buffer is not buffer:
                return
            self._load_text(buffer, buffer.saved_text or "")
            self.focused_surface().set_cursor(1, 1)
            self._message("Reverted to saved")

        self._guard_active(do_revert)

    # Buffer intents

    def switch_to(self, index: int) -> None:
        """
        Make the buffer at ``index`` active.

        The tab strip selects the target straight away and goes back to the
        previous tab if the user cancels.
        """
        if index == self.active_index or self.registry.get(index) is None:
            return
        previous = self.active_index
        self.presenter.select_tab(index)
        self._guard_active(
            lambda: self.registry.activate(index),
            on_cancel=lambda: self.presenter.select_tab(previous)
        )

    def next_buffer(self) -> None:
        if len(self.registry) > 1:
            self.switch_to(self.active_index % len(self.registry) + 1)

    def previous_buffer(self) -> None:
        if len(self.registry) > 1:
            self.switch_to((self.active_index - 2) % len(self.registry) + 1)

    def close(self, index: Optional[int] = None) -> None:
        """Close a buffer (the active one by default) once edits are resolved."""
        index = index or self.active_index
        if self.registry.get(index) is None:
            return
        previous = self.active_index
        self.registry.close(
            index,
            on_closed=lambda buffer: logger.info(f"Closed {buffer.display_name}"),
            on_cancel=lambda: self.presenter.select_tab(previous)
        )

    def request_exit(self) -> None:
        """Resolve every dirty buffer, then exit."""
        self.exit_sequence.start()

    # Split view

    def toggle_split(self) -> None:
        if not self.split.toggle():
            self._message("Open a file to split the view")

    def set_split_direction(self, direction: SplitDirection) -> None:
        self.split.set_direction(direction)

    def toggle_split_direction(self) -> None:
        direction = self.split.toggle_direction()
        self._message(f"Split {direction.value}")

    def focus_pane(self, pane: int) -> None:
        self.split.focus(pane)
        self.presenter.refresh()

    def toggle_pane_focus(self) -> None:
        self.focus_pane(SECONDARY if self.split.focused_pane == PRIMARY else PRIMARY)

    # Edit commands

    def trim_trailing_whitespace(self) -> None:
        if self.active_buffer is None:
            return
        surface = self.focused_surface()
        text, changed = textops.trim_trailing_whitespace(surface.get_text())
        if not changed:
            self._message("No trailing whitespace")
            return
        surface.set_text(text, internal=False)
        self._message("Trimmed trailing whitespace")

    def duplicate_line(self) -> None:
        if self.active_buffer is None:
            return
        surface = self.focused_surface()
        line, _, _ = surface.get_cursor()
        text, copy_line = textops.duplicate_line(surface.get_text(), line)
        surface.set_text(text, internal=False)
        surface.set_cursor(copy_line, 1)
        self._message("Duplicated line")

    def go_to_line(self, number: int) -> int:
        """
        Move the focused cursor to the start of a line.

        Returns:
            The line actually used after clamping.
        """
        surface = self.focused_surface()
        number = textops.clamp(number, 1, textops.line_count(surface.get_text()))
        surface.set_cursor(number, 1)
        self._message(f"Moved to line {number}")
        return number

    def prompt_go_to_line(self) -> None:
        if self.active_buffer is None:
            return
        surface = self.focused_surface()
        total = textops.line_count(surface.get_text())
        line, _, _ = surface.get_cursor()

        def submit(value: Optional[str]) -> bool:
            if value is None:
                return True
            try:
                number = int(float(value) + 0.5)
            except ValueError:
                return False
            self.go_to_line(number)
            return True

        self.presenter.prompt_input(
            InputRequest(title="Go To Line", prompt=f"Line number (1-{total}):", value=str(line)),
            submit
        )

    def set_tab_size(self, size: int) -> bool:
        if not 1 <= size <= 8:
            return False
        self.tab_width = size
        self._message(f"Tab width set to {size}")
        return True

    def prompt_tab_size(self) -> None:
        def submit(value: Optional[str]) -> bool:
            if value is None:
                return True
            try:
                return self.set_tab_size(int(float(value)))
            except ValueError:
                return False

        self.presenter.prompt_input(
            InputRequest(title="Tab Size", prompt="Enter tab width (1-8):", value=str(self.tab_width)),
            submit
        )

    # View commands

    def toggle_status_bar(self) -> None:
        self.status.visible = not self.status.visible
        buffer = self.active_buffer
        if not self.status.visible and buffer is not None:
            buffer.diagnostics_expanded = False
        self._message("Status bar shown" if self.status.visible else "Status bar hidden")

    def toggle_diagnostics_panel(self) -> None:
        buffer = self.active_buffer
        if buffer is None:
            return
        buffer.diagnostics_expanded = not buffer.diagnostics_expanded
        self.presenter.refresh()

    def jump_to_diagnostic(self, index: int) -> bool:
        """Put the focused cursor on a diagnostic's position, if it has one."""
        buffer = self.active_buffer
        if buffer is None or not 0 <= index < len(buffer.diagnostics):
            return False
        diagnostic: Diagnostic = buffer.diagnostics[index]
        if diagnostic.line is None:
            return False
        self.focused_surface().set_cursor(diagnostic.line, diagnostic.column or 1)
        return True

    def recent_entries(self) -> List[RecentEntry]:
        """Recent files with their current size and modification time."""
        return describe_recent(self.recent, self.gateway)

    def show_recent_files(self) -> None:
        """List the recent files and open the one the user picks."""
        entries = self.recent_entries()
        if not entries:
            self._message("No recent files")
            return
        items = tuple(format_recent_entry(i, entry) for i, entry in enumerate(entries, start=1))
        self.presenter.choose(
            ListRequest(title="Recent Files", items=items),
            lambda index: self.open_recent(index) if index is not None else None
        )

    def clear_recent_files(self) -> None:
        self.recent.clear()
        self._message("Recent files cleared")

    def run_current_file(self) -> None:
        """Run the active file, saving it first when needed."""
        buffer = self.active_buffer
        if buffer is None:
            return
        self.registry.sync_out()
        if buffer.dirty or not buffer.path:
            self._message("Save changes before running" if buffer.dirty else "Save file before running")
            self.save_buffer(buffer, lambda saved: self.run_current_file() if saved else None)
            return

        result = run_file(self.gateway.resolve(buffer.path), timeout=self.config.run_timeout_sec)
        if not result.ok:
            self.presenter.show_error("Run Failed", result.stderr.strip() or f"Exit code {result.exit_code}")
        else:
            self._message("Program finished")

    # Internals

    def _guard_active(self, action: Callable[[], None], on_cancel: Optional[Callable[[], None]] = None) -> None:
        buffer = self.active_buffer
        if buffer is None:
            action()
            return
        self.registry.sync_out()
        self.workflow.guard(buffer.dirty, action, buffer=buffer, on_cancel=on_cancel)

    def _discard(self, buffer: Buffer) -> None:
        buffer.discard_changes()
        if buffer is self.active_buffer:
            self._load_text(buffer, buffer.text)
        else:
            self._relabel(buffer)

    def _load_text(self, buffer: Buffer, text: str) -> None:
        """Replace the live text of the active buffer without a user edit."""
        buffer.text = text
        self.registry.primary.set_text(text, internal=True)
        if self.split.active:
            self.split.secondary.set_text(text, internal=True)
        self._relabel(buffer)
        self.diagnostics.schedule(buffer)
        self._update_status()

    def _relabel(self, buffer: Buffer) -> None:
        index = self.registry.index_of(buffer)
        if index:
            self.presenter.relabel_tab(index, self.registry.relabel(buffer))

    def _message(self, message: str) -> None:
        self.status.set_message(message, self.config.status_message_seconds)
        self._update_status()

    def _update_status(self) -> None:
        buffer = self.active_buffer
        if buffer is None:
            self.status.update(StatusSnapshot(name="No file", line=1, col=1))
        else:
            line, col, selection_length = self.split.reported_cursor
            self.status.update(StatusSnapshot(
                name=buffer.display_name or "Untitled",
                dirty=buffer.dirty,
                path=buffer.path,
                line=line,
                col=col,
                selection_length=selection_length,
                diagnostics=len(buffer.diagnostics)
            ))
        self.presenter.refresh()

    def _on_added(self, buffer: Buffer, _index: int) -> None:
        self.presenter.add_tab(self.registry.relabel(buffer))

    def _on_removed(self, _buffer: Buffer, index: int) -> None:
        self.presenter.remove_tab(index)
        if self.active_index:
            self.presenter.select_tab(self.active_index)
        else:
            self.diagnostics.cancel()
            self._update_status()

    def _on_sync_in(self, _buffer: Buffer, index: int) -> None:
        self.presenter.select_tab(index)
        self._update_status()

    def _on_text_changed(self, text: str) -> None:
        buffer = self.active_buffer
        if buffer is None:
            return
        was_dirty = buffer.dirty
        buffer.text = text
        if buffer.dirty != was_dirty:
            self._relabel(buffer)
        self.diagnostics.schedule(buffer)
        self._update_status()

    def _on_cursor_moved(self, _line: int, _col: int, _selection_length: int) -> None:
        self._update_status()

    def _on_diagnostics(self, buffer: Buffer) -> None:
        if buffer is self.active_buffer:
            self._update_status()
