"""CLI entrypoint for termpad using Typer."""

import os
import shutil
import sys
from pathlib import Path
from typing import List, Optional

import typer

from core.config import DEFAULT_CONFIG, config_path, get_config, save_config
from core.logging import setup_logging
from core.paths import to_canonical
from editor.diagnostics import PythonSyntaxChecker, format_diagnostic, parse_syntax_error

app = typer.Typer()


@app.callback()
def callback():
    """termpad - a small terminal code editor."""


@app.command()
def open(paths: Optional[List[str]] = typer.Argument(None, help="Files to open; missing files are created on save")):
    """Open the editor."""
    from editor.app import create_app

    config = get_config()
    setup_logging(config.log_level, config.log_file)
    editor = create_app(paths or [], config=config, cwd=to_canonical(os.getcwd()))
    editor.run()


@app.command()
def check(paths: List[Path] = typer.Argument(..., help="Python files to check")):
    """Report syntax errors without opening the editor."""
    checker = PythonSyntaxChecker()
    encoding = get_config().encoding
    failed = False
    for path in paths:
        try:
            text = path.read_text(encoding=encoding, errors="replace")
        except OSError as e:
            typer.echo(f"{path}: cannot read ({e})", err=True)
            failed = True
            continue
        err = checker.check(text, str(path))
        if err is None:
            typer.echo(f"{path}: ok")
        else:
            failed = True
            typer.echo(f"{path}: {format_diagnostic(parse_syntax_error(err))}")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def doctor():
    """Diagnose the environment."""
    typer.echo("termpad doctor")
    typer.echo("==============")

    typer.echo(f"Python {sys.version.split()[0]} at {sys.executable}")

    path = config_path()
    if path.exists():
        typer.echo(f"Config file found at {path}")
    else:
        typer.echo(f"Config file not found at {path} (using defaults)")

    config = get_config()
    log_dir = Path(config.log_file).expanduser().parent
    if log_dir.exists() and not os.access(log_dir, os.W_OK):
        typer.echo(f"Log directory {log_dir} is not writable")
    else:
        typer.echo(f"Logging {config.log_level} to {Path(config.log_file).expanduser()}")

    if shutil.which("python3") or shutil.which("python"):
        typer.echo("Python interpreter on PATH")
    else:
        typer.echo("No python interpreter on PATH; run-file will use the current one")


@app.command("init-config")
def init_config(force: bool = typer.Option(False, "--force", help="Overwrite an existing config")):
    """Write the default configuration to ~/.termpad.toml."""
    path = config_path()
    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(code=1)
    save_config(DEFAULT_CONFIG, path)
    typer.echo(f"Wrote {path}")


if __name__ == "__main__":
    app()
