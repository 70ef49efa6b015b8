"""Debounced syntax diagnostics for open buffers."""

import ast
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol

from core.logging import logger
from core.timers import Scheduler, TimerHandle

if TYPE_CHECKING:
    from editor.buffers import Buffer

DEFAULT_DEBOUNCE_MS = 200

# "<source>:<line>:<col>: <message>" with the column optional
_SOURCE_LINE = re.compile(r":(\d+):(?:(\d+):)?\s*(.*)", re.DOTALL)
# "<line>: <message>"
_BARE_LINE = re.compile(r"(\d+)\s*:\s*(.*)", re.DOTALL)


class Severity(str, Enum):
    """Diagnostic severity."""
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single problem found in a buffer."""
    severity: Severity
    message: str
    line: Optional[int] = None
    column: Optional[int] = None


def parse_syntax_error(err: Optional[str]) -> Diagnostic:
    """
    Turn a checker error string into a diagnostic.

    Tries ``<source>:<line>[:<col>]: <message>``, then ``<line>: <message>``.
    When neither matches, the raw string becomes the message with no line.
    """
    if not err:
        return Diagnostic(Severity.ERROR, "syntax error")

    match = _SOURCE_LINE.search(err)
    if match:
        column = int(match.group(2)) if match.group(2) else None
        return Diagnostic(Severity.ERROR, match.group(3) or err, int(match.group(1)), column)

    match = _BARE_LINE.search(err)
    if match:
        return Diagnostic(Severity.ERROR, match.group(2) or err, int(match.group(1)))

    return Diagnostic(Severity.ERROR, err)


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic as a panel row, e.g. ``E 3: invalid syntax``."""
    prefix = "W" if diagnostic.severity == Severity.WARNING else "E"
    line = str(diagnostic.line) if diagnostic.line is not None else "?"
    return f"{prefix} {line}: {diagnostic.message}"


class SyntaxChecker(Protocol):
    """Returns None for valid source, else an error string."""

    def check(self, text: str, source: str) -> Optional[str]:
        ...


class PythonSyntaxChecker:
    """
    Syntax check with the Python compiler, no execution.

    Errors are rendered as ``<source>:<line>:<col>: <message>``; the column is
    left out when the compiler does not report one, and errors without a
    position (null bytes) are returned as the bare message.
    """

    def check(self, text: str, source: str) -> Optional[str]:
        try:
            compile(text, source, "exec", flags=ast.PyCF_ONLY_AST, dont_inherit=True)
        except SyntaxError as e:
            message = e.msg or "invalid syntax"
            if e.lineno is None:
                return message
            if e.offset:
                return f"{source}:{e.lineno}:{e.offset}: {message}"
            return f"{source}:{e.lineno}: {message}"
        except ValueError as e:
            return str(e)
        return None


class DiagnosticsEngine:
    """
    Computes diagnostics for a buffer, debounced.

    Only one timer is pending per engine: scheduling again cancels it, and the
    generation counter makes a stale timer a no-op if it fires anyway. When
    the new request is for a different buffer, the pending one is computed
    immediately so it is never left with stale results.
    """

    def __init__(self, scheduler: Optional[Scheduler] = None,
                 checker: Optional[SyntaxChecker] = None,
                 debounce_ms: int = DEFAULT_DEBOUNCE_MS):
        self.scheduler = scheduler
        self.checker = checker or PythonSyntaxChecker()
        self.debounce_ms = debounce_ms
        self.enabled = True
        self.generation = 0
        self._timer: Optional[TimerHandle] = None
        self._pending_buffer: Optional["Buffer"] = None
        self._callbacks: List[Callable[["Buffer"], None]] = []

    def register_callback(self, callback: Callable[["Buffer"], None]) -> None:
        """Register a callback run after each completed computation."""
        self._callbacks.append(callback)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, buffer: "Buffer") -> None:
        """Recompute ``buffer`` once edits have been quiet for the debounce window."""
        if not self.enabled:
            return
        previous = self._pending_buffer
        self.cancel()
        if previous is not None and previous is not buffer:
            self.compute(previous)
        if self.scheduler is None:
            self.compute(buffer)
            return
        self.generation += 1
        self._pending_buffer = buffer
        self._timer = self.scheduler.call_later(
            self.debounce_ms / 1000.0, self._fire, self.generation, buffer
        )

    def refresh(self, buffer: "Buffer") -> List[Diagnostic]:
        """Compute ``buffer`` right away, or clear its results when disabled."""
        if not self.enabled:
            buffer.diagnostics = []
            return []
        if self._pending_buffer is buffer:
            self.cancel()
        return self.compute(buffer)

    def cancel(self) -> None:
        """Cancel the pending timer, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending_buffer = None

    def _fire(self, generation: int, buffer: "Buffer") -> None:
        if generation != self.generation:
            return
        self._timer = None
        self._pending_buffer = None
        self.compute(buffer)

    def compute(self, buffer: "Buffer") -> List[Diagnostic]:
        """Check ``buffer.text`` now and store the result on the buffer."""
        source = buffer.path or buffer.pending_path or buffer.display_name
        err = self.checker.check(buffer.text, source)
        diagnostics = [] if err is None else [parse_syntax_error(err)]
        buffer.diagnostics = diagnostics
        if diagnostics:
            logger.debug(f"{source}: {format_diagnostic(diagnostics[0])}")
        for callback in list(self._callbacks):
            callback(buffer)
        return diagnostics
