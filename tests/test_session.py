"""Tests for the editing session."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from core.config import DEFAULT_CONFIG
from core.errors import IOFailure
from editor.presenter import ConfirmChoice, PickerMode
from editor.runner import RunResult
from editor.session import EditorSession
from editor.split import SECONDARY


@pytest.fixture
def files(tmp_path):
    (tmp_path / "a.py").write_text("a = 1\n")
    (tmp_path / "b.py").write_text("b = 2\n")
    (tmp_path / "broken.py").write_text("x = 1\ny = 2\nprint((1, 2)\n")
    (tmp_path / "pkg").mkdir()
    return tmp_path


class TestStartup:
    """Test session initialization."""

    def test_no_paths_gives_untitled_buffer(self, session, presenter):
        session.initialize([])
        assert [b.display_name for b in session.buffers] == ["Untitled-1"]
        assert session.active_index == 1
        assert presenter.tabs == ["Untitled-1"]
        assert session.next_untitled_id == 2

    def test_opens_existing_files(self, session, files, primary):
        session.initialize(["/a.py", "b.py"])
        assert [b.path for b in session.buffers] == ["/a.py", "/b.py"]
        assert session.active_index == 2
        assert primary.get_text() == "b = 2\n"
        assert session.recent_files == ["/b.py", "/a.py"]

    def test_missing_file_becomes_pending_buffer(self, session, files):
        session.initialize(["/new/thing.py"])
        buffer = session.active_buffer
        assert buffer.display_name == "thing.py"
        assert buffer.pending_path == "/new/thing.py"
        assert buffer.path is None
        assert not buffer.dirty

    def test_same_missing_path_twice_opens_one_buffer(self, session, presenter, files):
        session.initialize(["/new.py", "new.py"])
        assert len(session.buffers) == 1
        assert presenter.tabs == ["new.py"]

    def test_invalid_path_reported(self, session, presenter):
        session.initialize(["   "])
        assert presenter.errors == [("Open Failed", "Invalid path")]
        assert [b.display_name for b in session.buffers] == ["Untitled-1"]


class TestOpen:
    """Test opening files."""

    def test_open_same_path_focuses_existing(self, session, files):
        session.initialize(["/a.py", "/b.py"])
        assert session.open_path("/a.py")
        assert len(session.buffers) == 2
        assert session.active_index == 1
        assert session.recent_files[0] == "/a.py"

    def test_open_missing_file(self, session, presenter, files):
        session.initialize([])
        assert not session.open_path("/nope.py")
        assert presenter.errors == [("Open Failed", "/nope.py not found")]
        assert len(session.buffers) == 1

    def test_open_directory(self, session, presenter, files):
        assert not session.open_path("/pkg")
        assert presenter.errors == [("Open Failed", "Cannot open a directory")]

    def test_open_read_failure(self, session, presenter, gateway, files):
        with patch.object(gateway, "read", side_effect=IOFailure("Permission denied", path="/a.py")):
            assert not session.open_path("/a.py")
        assert presenter.errors == [("Open Failed", "Permission denied")]
        assert session.buffers == []

    def test_open_via_picker(self, session, presenter, files):
        session.initialize([])
        session.open_file()
        request, _ = presenter.pickers[0]
        assert request.mode == PickerMode.OPEN
        assert request.start_path == "/"

        presenter.answer_picker("/a.py")
        assert session.active_buffer.path == "/a.py"

    def test_open_picker_cancelled(self, session, presenter, files):
        session.initialize([])
        session.open_file()
        presenter.answer_picker(None)
        assert len(session.buffers) == 1

    def test_open_guarded_by_dirty_buffer(self, session, presenter, primary, files):
        session.initialize([])
        primary.type("draft")
        session.open_file()
        assert presenter.pickers == []
        presenter.answer_confirm(ConfirmChoice.CANCEL)
        assert presenter.pickers == []
        assert session.active_buffer.text == "draft"

    def test_open_recent(self, session, presenter, files):
        session.initialize(["/a.py", "/b.py"])
        session.close(1)
        session.open_recent(1)
        assert session.active_buffer.path == "/a.py"

    def test_open_computes_diagnostics(self, session, files):
        session.open_path("/broken.py")
        diagnostics = session.active_buffer.diagnostics
        assert len(diagnostics) == 1
        assert diagnostics[0].line == 3
        assert session.status.snapshot.diagnostics == 1

    def test_open_skips_diagnostics_when_disabled(self, gateway, presenter, primary, secondary, scheduler, files):
        config = replace(DEFAULT_CONFIG, diagnostics_enabled=False)
        session = EditorSession(gateway, presenter, primary, secondary, scheduler=scheduler, config=config)

        session.initialize(["/broken.py"])
        primary.type("x = (")
        scheduler.advance(1)

        assert session.active_buffer.diagnostics == []
        assert session.status.snapshot.diagnostics == 0

    def test_open_missing_recent_file_forgets_it(self, session, presenter, files):
        session.initialize(["/a.py", "/b.py"])
        session.close(1)
        (files / "a.py").unlink()

        session.open_recent(1)

        assert presenter.errors == [("Open Failed", "/a.py not found")]
        assert session.recent_files == ["/b.py"]


class TestNewAndClose:
    """Test new buffers and closing."""

    def test_untitled_numbering(self, session):
        session.initialize([])
        session.new_file()
        session.new_file()
        assert [b.display_name for b in session.buffers] == ["Untitled-1", "Untitled-2", "Untitled-3"]

    def test_close_untitled_discard_writes_nothing(self, session, presenter, primary, gateway):
        session.initialize([])
        primary.type("x=1")
        assert presenter.tabs == ["* Untitled-1"]

        with patch.object(gateway, "write", wraps=gateway.write) as write:
            session.close()
            request, _ = presenter.confirms[0]
            assert set(request.choices) == {ConfirmChoice.SAVE, ConfirmChoice.DISCARD, ConfirmChoice.CANCEL}
            presenter.answer_confirm(ConfirmChoice.DISCARD)

        write.assert_not_called()
        assert session.buffers == []
        assert session.active_index == 0
        assert presenter.tabs == []
        assert primary.get_text() == ""

    def test_close_untitled_cancel_keeps_buffer(self, session, presenter, primary):
        session.initialize([])
        primary.type("x=1")

        session.close()
        presenter.answer_confirm(ConfirmChoice.CANCEL)

        assert len(session.buffers) == 1
        assert session.active_buffer.dirty
        assert session.active_buffer.text == "x=1"
        assert presenter.selected_tab == 1

    def test_close_inactive_clean_buffer(self, session, files):
        session.initialize(["/a.py", "/b.py"])
        session.close(1)
        assert [b.path for b in session.buffers] == ["/b.py"]
        assert session.active_index == 1

    def test_close_only_buffer_empties_session(self, session, files):
        session.initialize(["/a.py"])
        session.close()
        assert session.buffers == []
        assert session.active_buffer is None
        assert session.status.snapshot.name == "No file"

    def test_new_file_guarded(self, session, presenter, primary):
        session.initialize([])
        primary.type("draft")
        session.new_file()
        presenter.answer_confirm(ConfirmChoice.CANCEL)
        assert len(session.buffers) == 1


class TestSwitching:
    """Test guarded buffer switching."""

    def test_switch_with_save(self, session, presenter, primary, files):
        session.initialize(["/a.py", "/b.py"])
        session.switch_to(1)
        primary.type("a = 10\n")

        session.switch_to(2)
        assert presenter.selected_tab == 2
        presenter.answer_confirm(ConfirmChoice.SAVE)

        first = session.buffers[0]
        assert not first.dirty
        assert (files / "a.py").read_text() == "a = 10\n"
        assert session.active_index == 2
        assert primary.get_text() == "b = 2\n"
        assert presenter.tabs == ["a.py", "b.py"]

    def test_switch_cancel_rolls_back_tab(self, session, presenter, primary, files):
        session.initialize(["/a.py", "/b.py"])
        session.switch_to(1)
        primary.type("a = 10\n")

        session.switch_to(2)
        presenter.answer_confirm(ConfirmChoice.CANCEL)

        assert session.active_index == 1
        assert presenter.tab_selections[-2:] == [2, 1]
        assert session.active_buffer.text == "a = 10\n"

    def test_switch_with_discard(self, session, presenter, primary, files):
        session.initialize(["/a.py", "/b.py"])
        session.switch_to(1)
        primary.type("a = 10\n")

        session.switch_to(2)
        presenter.answer_confirm(ConfirmChoice.DISCARD)
        session.switch_to(1)

        assert session.active_buffer.text == "a = 1\n"
        assert primary.get_text() == "a = 1\n"
        assert not session.active_buffer.dirty

    def test_next_and_previous_wrap(self, session, files):
        session.initialize(["/a.py", "/b.py"])
        session.next_buffer()
        assert session.active_index == 1
        session.previous_buffer()
        assert session.active_index == 2


class TestSave:
    """Test saving."""

    def test_save_existing_path(self, session, primary, files):
        session.initialize(["/a.py"])
        primary.type("a = 3\n")
        session.save()
        assert (files / "a.py").read_text() == "a = 3\n"
        assert not session.active_buffer.dirty
        assert session.status.current_message == "Saved to /a.py"

    def test_save_untitled_asks_for_path(self, session, presenter, primary, files):
        session.initialize([])
        primary.type("print('hi')\n")
        saved = []

        session.save(saved.append)
        request, _ = presenter.pickers[0]
        assert request.mode == PickerMode.SAVE
        assert request.default_name == "Untitled-1"
        presenter.answer_picker("/sub/dir/hello.py")

        assert saved == [True]
        assert (files / "sub" / "dir" / "hello.py").read_text() == "print('hi')\n"
        buffer = session.active_buffer
        assert buffer.path == "/sub/dir/hello.py"
        assert buffer.display_name == "hello.py"
        assert presenter.tabs == ["hello.py"]
        assert session.recent_files == ["/sub/dir/hello.py"]

    def test_save_pending_buffer_defaults_to_its_path(self, session, presenter, primary, files):
        session.initialize(["/later/notes.py"])
        primary.type("n = 1\n")
        session.save()
        request, _ = presenter.pickers[0]
        assert request.start_path == "/later"
        assert request.default_name == "notes.py"

    def test_save_as_cancelled(self, session, presenter, primary):
        session.initialize([])
        primary.type("x")
        saved = []
        session.save_as(on_saved=saved.append)
        presenter.answer_picker(None)
        assert saved == [False]
        assert session.active_buffer.dirty

    def test_save_over_directory_rejected_before_write(self, session, presenter, primary, gateway, files):
        session.initialize([])
        primary.type("x")
        with patch.object(gateway, "write", wraps=gateway.write) as write:
            assert not session.save_to_path(session.active_buffer, "/pkg")
        write.assert_not_called()
        assert presenter.errors == [("Save Failed", "Cannot overwrite a directory")]
        assert session.active_buffer.dirty

    def test_save_as_onto_open_file_rejected(self, session, presenter, primary, files):
        session.initialize(["/a.py", "/b.py"])
        primary.type("b = 3\n")

        session.save_as()
        presenter.answer_picker("/a.py")

        assert presenter.errors == [("Save Failed", "/a.py is open in another tab")]
        assert (files / "a.py").read_text() == "a = 1\n"
        assert session.active_buffer.path == "/b.py"
        assert session.active_buffer.dirty
        assert len(session.buffers) == 2

    def test_save_io_failure_leaves_buffer_dirty(self, session, presenter, primary, gateway, files):
        session.initialize(["/a.py"])
        primary.type("changed")
        with patch.object(gateway, "write", side_effect=IOFailure("Permission denied", path="/a.py")):
            session.save()
        assert presenter.errors == [("Save Failed", "Permission denied")]
        assert session.active_buffer.dirty
        assert (files / "a.py").read_text() == "a = 1\n"

    def test_close_with_failed_save_keeps_buffer(self, session, presenter, primary, gateway, files):
        session.initialize(["/a.py"])
        primary.type("changed")
        with patch.object(gateway, "write", side_effect=IOFailure("Disk full")):
            session.close()
            presenter.answer_confirm(ConfirmChoice.SAVE)
        assert len(session.buffers) == 1


class TestRevert:
    """Test reverting to saved."""

    def test_revert_discard(self, session, presenter, primary, files):
        session.initialize(["/a.py"])
        primary.type("scratch\nmore")
        session.revert()
        presenter.answer_confirm(ConfirmChoice.DISCARD)

        assert primary.get_text() == "a = 1\n"
        assert not session.active_buffer.dirty
        assert primary.get_cursor()[:2] == (1, 1)
        assert presenter.tabs == ["a.py"]

    def test_revert_cancel(self, session, presenter, primary, files):
        session.initialize(["/a.py"])
        primary.type("scratch")
        session.revert()
        presenter.answer_confirm(ConfirmChoice.CANCEL)
        assert primary.get_text() == "scratch"


class TestDiagnostics:
    """Test diagnostics scheduling through the session."""

    def test_edits_are_debounced(self, session, primary, scheduler, files):
        session.initialize(["/broken.py"])
        with patch.object(session.diagnostics, "compute", wraps=session.diagnostics.compute) as compute:
            primary.type("x = (")
            scheduler.advance(0.05)
            primary.type("x = (1")
            scheduler.advance(0.05)
            primary.type("x = (1)")
            scheduler.advance(0.25)
        assert compute.call_count == 1
        assert session.active_buffer.diagnostics == []

    def test_split_edit_schedules_once(self, session, secondary, files):
        session.initialize(["/a.py"])
        session.toggle_split()
        with patch.object(session.diagnostics, "schedule", wraps=session.diagnostics.schedule) as schedule:
            secondary.type("a = 2\n")
        assert schedule.call_count == 1
        assert session.active_buffer.text == "a = 2\n"

    def test_edit_in_other_buffer_keeps_first_results(self, session, presenter, primary, scheduler, files):
        session.initialize(["/a.py", "/b.py"])
        session.switch_to(1)
        primary.type("x = (\n")
        session.switch_to(2)
        presenter.answer_confirm(ConfirmChoice.SAVE)

        primary.type("b = 3\n")
        scheduler.advance(1)

        first, second = session.buffers
        assert first.text == "x = (\n"
        assert len(first.diagnostics) == 1
        assert second.diagnostics == []

    def test_jump_to_diagnostic(self, session, primary, files):
        session.initialize(["/broken.py"])
        assert session.jump_to_diagnostic(0)
        assert primary.get_cursor()[0] == 3
        assert not session.jump_to_diagnostic(5)

    def test_toggle_panel_is_per_buffer(self, session, files):
        session.initialize(["/a.py", "/b.py"])
        session.toggle_diagnostics_panel()
        assert session.buffers[1].diagnostics_expanded
        session.switch_to(1)
        assert not session.active_buffer.diagnostics_expanded
        session.switch_to(2)
        assert session.active_buffer.diagnostics_expanded


class TestSplit:
    """Test split view through the session."""

    def test_split_needs_a_buffer(self, session):
        session.toggle_split()
        assert not session.split_active
        assert session.status.current_message == "Open a file to split the view"

    def test_split_mirrors_and_reports_focused_cursor(self, session, primary, secondary, files):
        session.initialize(["/a.py"])
        session.toggle_split()
        assert session.split_active
        assert secondary.get_text() == "a = 1\n"

        session.focus_pane(SECONDARY)
        secondary.set_cursor(2, 1)
        assert session.active_pane_index == SECONDARY
        assert session.status.snapshot.line == 2

        primary.type("a = 1\nb = 2\nc = 3\n")
        assert secondary.get_text() == "a = 1\nb = 2\nc = 3\n"
        assert secondary.get_cursor()[:2] == (2, 1)

    def test_toggle_direction(self, session, files):
        session.initialize(["/a.py"])
        session.toggle_split_direction()
        assert session.split_direction.value == "horizontal"


class TestEditCommands:
    """Test line commands and prompts."""

    def test_trim_trailing_whitespace(self, session, primary):
        session.initialize([])
        primary.type("a  \nb\t")
        session.trim_trailing_whitespace()
        assert primary.get_text() == "a\nb"
        assert session.active_buffer.text == "a\nb"

    def test_duplicate_line(self, session, primary):
        session.initialize([])
        primary.type("one\ntwo")
        primary.set_cursor(1, 2)
        session.duplicate_line()
        assert session.active_buffer.text == "one\none\ntwo"
        assert primary.get_cursor()[:2] == (2, 1)

    def test_go_to_line_clamps(self, session, primary):
        session.initialize([])
        primary.type("1\n2\n3")
        assert session.go_to_line(99) == 3
        assert primary.get_cursor()[:2] == (3, 1)

    def test_go_to_line_prompt(self, session, presenter, primary):
        session.initialize([])
        primary.type("1\n2\n3")
        session.prompt_go_to_line()
        request, _ = presenter.inputs[0]
        assert request.prompt == "Line number (1-3):"
        assert not presenter.answer_input("abc")
        assert presenter.answer_input("2")
        assert primary.get_cursor()[0] == 2

    def test_tab_size(self, session, presenter):
        session.initialize([])
        assert not session.set_tab_size(9)
        assert session.set_tab_size(2)
        assert session.tab_width == 2
        session.prompt_tab_size()
        assert not presenter.answer_input("0")
        assert presenter.answer_input("8")
        assert session.tab_width == 8

    def test_toggle_status_bar_collapses_panel(self, session, files):
        session.initialize(["/broken.py"])
        session.toggle_diagnostics_panel()
        session.toggle_status_bar()
        assert not session.status.visible
        assert not session.active_buffer.diagnostics_expanded

    def test_clear_recent_files(self, session, files):
        session.initialize(["/a.py"])
        session.clear_recent_files()
        assert session.recent_files == []


class TestRecentFiles:
    """Test the recent files list."""

    def test_list_shows_size_and_opens_choice(self, session, presenter, files):
        session.initialize(["/a.py", "/b.py"])
        session.close(1)

        session.show_recent_files()
        request, _ = presenter.lists[0]
        assert request.title == "Recent Files"
        assert request.items[0].startswith("1. b.py  /  6 B  ")
        assert request.items[1].startswith("2. a.py  /  6 B  ")

        presenter.answer_list(1)
        assert session.active_buffer.path == "/a.py"

    def test_list_cancelled(self, session, presenter, files):
        session.initialize(["/a.py"])
        session.show_recent_files()
        presenter.answer_list(None)
        assert len(session.buffers) == 1

    def test_empty_list_shows_message(self, session, presenter):
        session.initialize([])
        session.show_recent_files()
        assert presenter.lists == []
        assert session.status.current_message == "No recent files"

    def test_missing_file_marked(self, session, files):
        session.initialize(["/a.py"])
        (files / "a.py").unlink()
        entries = session.recent_entries()
        assert not entries[0].exists


class TestRun:
    """Test running the current file."""

    def test_run_clean_file(self, session, presenter, gateway, files):
        session.initialize(["/a.py"])
        with patch("editor.session.run_file", return_value=RunResult(0, "", "")) as run:
            session.run_current_file()
        run.assert_called_once_with(gateway.resolve("/a.py"), timeout=60)
        assert session.status.current_message == "Program finished"

    def test_run_failure_shows_error(self, session, presenter, files):
        session.initialize(["/a.py"])
        with patch("editor.session.run_file", return_value=RunResult(1, "", "Traceback\n")):
            session.run_current_file()
        assert presenter.errors == [("Run Failed", "Traceback")]

    def test_run_saves_dirty_file_first(self, session, primary, files):
        session.initialize(["/a.py"])
        primary.type("print(1)\n")
        with patch("editor.session.run_file", return_value=RunResult(0, "1\n", "")) as run:
            session.run_current_file()
        assert (files / "a.py").read_text() == "print(1)\n"
        run.assert_called_once()


class TestExit:
    """Test exit through the session."""

    def test_exit_resolves_dirty_buffers(self, session, presenter, primary, files):
        session.initialize(["/a.py", "/b.py", "/broken.py"])
        session.buffers[0].text = "a = 100\n"
        primary.type("fixed = True\n")

        session.request_exit()
        assert session.active_index == 1
        assert primary.get_text() == "a = 100\n"
        presenter.answer_confirm(ConfirmChoice.SAVE)
        assert session.active_index == 3
        assert not presenter.exited
        presenter.answer_confirm(ConfirmChoice.DISCARD)

        assert presenter.exited
        assert (files / "a.py").read_text() == "a = 100\n"
        assert (files / "broken.py").read_text() == "x = 1\ny = 2\nprint((1, 2)\n"

    def test_exit_cancel_on_second(self, session, presenter, primary, files):
        session.initialize(["/a.py", "/b.py"])
        session.buffers[0].text = "a = 5\n"
        primary.type("b = 5\n")

        session.request_exit()
        presenter.answer_confirm(ConfirmChoice.SAVE)
        presenter.answer_confirm(ConfirmChoice.CANCEL)

        assert not presenter.exited
        assert (files / "a.py").read_text() == "a = 5\n"
        assert not session.buffers[0].dirty
        assert session.buffers[1].dirty

    def test_exit_with_clean_buffers(self, session, presenter, files):
        session.initialize(["/a.py"])
        session.request_exit()
        assert presenter.confirms == []
        assert presenter.exited
