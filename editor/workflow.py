"""Unsaved-changes confirmation and exit sequencing."""

from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from core.logging import logger
from editor.presenter import ConfirmChoice, ConfirmRequest, Presenter

if TYPE_CHECKING:
    from editor.buffers import Buffer, BufferRegistry

SaveHandler = Callable[[Optional["Buffer"], Callable[[bool], None]], None]
DiscardHandler = Callable[["Buffer"], None]


def _discard(buffer: "Buffer") -> None:
    buffer.discard_changes()


class UnsavedChangesWorkflow:
    """
    Gate for operations that would lose edits.

    ``guard`` runs the continuation right away for clean buffers. For dirty ones
    it asks Save / Discard / Cancel and only continues after a successful save
    or a discard. Cancelling, or a save that fails, calls ``on_cancel`` instead.
    """

    def __init__(self, presenter: Presenter, save_handler: Optional[SaveHandler] = None,
                 discard_handler: Optional[DiscardHandler] = None):
        self.presenter = presenter
        self.save_handler = save_handler
        self.discard_handler = discard_handler or _discard

    def guard(self, is_dirty: bool, on_continue: Callable[[], None],
              buffer: Optional["Buffer"] = None,
              on_cancel: Optional[Callable[[], None]] = None) -> None:
        """
        Run ``on_continue`` once unsaved changes are resolved.

        Args:
            is_dirty: Whether the affected buffer has unsaved edits.
            on_continue: The guarded action.
            buffer: Buffer to save or discard.
            on_cancel: Rolls back speculative UI state when the action is dropped.
        """
        if not is_dirty:
            on_continue()
            return

        def cancelled():
            logger.debug("Unsaved-changes prompt cancelled")
            if on_cancel:
                on_cancel()

        def saved(success: bool):
            if success:
                on_continue()
            else:
                cancelled()

        def on_result(choice: ConfirmChoice):
            if choice == ConfirmChoice.SAVE:
                if self.save_handler is None:
                    cancelled()
                    return
                self.save_handler(buffer, saved)
            elif choice == ConfirmChoice.DISCARD:
                if buffer is not None:
                    self.discard_handler(buffer)
                on_continue()
            else:
                cancelled()

        name = buffer.display_name if buffer is not None else "this file"
        self.presenter.confirm(
            ConfirmRequest(title="Unsaved Changes", message=f"Save changes to {name} before continuing?"),
            on_result
        )


class ExitState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    AWAITING_CONFIRM = "awaiting_confirm"
    EXITING = "exiting"


class ExitSequence:
    """
    Resolves every dirty buffer, lowest index first, before exiting.

    Each dirty buffer is activated and guarded in turn. A cancel at any point
    drops the whole exit; buffers already saved stay saved.
    """

    def __init__(self, registry: "BufferRegistry", workflow: UnsavedChangesWorkflow,
                 on_exit: Callable[[], None]):
        self.registry = registry
        self.workflow = workflow
        self.on_exit = on_exit
        self.state = ExitState.IDLE
        self.awaiting_index = 0

    @property
    def running(self) -> bool:
        return self.state in (ExitState.SCANNING, ExitState.AWAITING_CONFIRM)

    def start(self) -> None:
        if self.running:
            return
        self._scan()

    def _scan(self) -> None:
        self.state = ExitState.SCANNING
        self.awaiting_index = 0
        self.registry.sync_out()

        index = next((i for i, buffer in enumerate(self.registry, start=1) if buffer.dirty), 0)
        if not index:
            self.state = ExitState.EXITING
            logger.info("No unsaved buffers left, exiting")
            self.on_exit()
            return

        self.registry.activate(index)
        buffer = self.registry.get(index)
        self.state = ExitState.AWAITING_CONFIRM
        self.awaiting_index = index
        self.workflow.guard(True, lambda: self._resolved(buffer), buffer=buffer, on_cancel=self._abort)

    def _resolved(self, buffer: "Buffer") -> None:
        if buffer.dirty:
            self.workflow.discard_handler(buffer)
        # the next scan syncs out, so the surface must match the resolved record
        if buffer is self.registry.active():
            self.registry.sync_in()
        self._scan()

    def _abort(self) -> None:
        logger.info(f"Exit cancelled at buffer {self.awaiting_index}")
        self.state = ExitState.IDLE
        self.awaiting_index = 0
