"""Run the current file with the Python interpreter."""

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def run_file(path: Path, timeout: int = 60) -> RunResult:
    """
    Run a script and capture its output.

    Args:
        path: Local filesystem path of the script.
        timeout: Seconds before the run is abandoned.

    Returns:
        Exit code and captured output; exit code -1 on timeout.
    """
    try:
        result = subprocess.run(
            [sys.executable, str(path)],
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(path.parent)
        )
    except subprocess.TimeoutExpired:
        return RunResult(exit_code=-1, stdout="", stderr=f"Timed out after {timeout}s")
    return RunResult(exit_code=result.returncode, stdout=result.stdout, stderr=result.stderr)
