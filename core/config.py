"""Configuration loading."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib

import tomli_w

from core.logging import logger

CONFIG_FILENAME = ".termpad.toml"


@dataclass(frozen=True)
class Config:
    """Application configuration."""
    theme: str
    tab_width: int
    soft_wrap: bool
    show_status_bar: bool
    show_line_numbers: bool
    encoding: str
    # Diagnostics settings
    diagnostics_enabled: bool
    diagnostics_debounce_ms: int
    # Status bar settings
    status_message_seconds: float
    # Split view settings
    split_direction: str
    # Run settings
    run_timeout_sec: int
    # Logging settings
    log_level: str
    log_file: str


DEFAULT_CONFIG = Config(
    theme="native",
    tab_width=4,
    soft_wrap=False,
    show_status_bar=True,
    show_line_numbers=True,
    encoding="utf-8",
    diagnostics_enabled=True,
    diagnostics_debounce_ms=200,
    status_message_seconds=3.0,
    split_direction="vertical",
    run_timeout_sec=60,
    log_level="WARNING",
    log_file="~/.termpad/termpad.log"
)


def config_path() -> Path:
    """Location of the user configuration file."""
    return Path.home() / CONFIG_FILENAME


def get_config(path: Optional[Path] = None) -> Config:
    """
    Load configuration from ~/.termpad.toml if present, else use defaults.

    Args:
        path: Alternative configuration file.

    Returns:
        The loaded configuration.
    """
    path = path or config_path()

    if not path.exists():
        return DEFAULT_CONFIG

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return DEFAULT_CONFIG

    return config_from_dict(data)


def config_from_dict(data: dict) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per key."""
    return Config(
        theme=data.get("editor", {}).get("theme", DEFAULT_CONFIG.theme),
        tab_width=_tab_width(data.get("editor", {}).get("tab_width", DEFAULT_CONFIG.tab_width)),
        soft_wrap=data.get("editor", {}).get("soft_wrap", DEFAULT_CONFIG.soft_wrap),
        show_status_bar=data.get("editor", {}).get("show_status_bar", DEFAULT_CONFIG.show_status_bar),
        show_line_numbers=data.get("editor", {}).get("show_line_numbers", DEFAULT_CONFIG.show_line_numbers),
        encoding=data.get("editor", {}).get("encoding", DEFAULT_CONFIG.encoding),
        diagnostics_enabled=data.get("diagnostics", {}).get("enabled", DEFAULT_CONFIG.diagnostics_enabled),
        diagnostics_debounce_ms=data.get("diagnostics", {}).get("debounce_ms", DEFAULT_CONFIG.diagnostics_debounce_ms),
        status_message_seconds=data.get("status", {}).get("message_seconds", DEFAULT_CONFIG.status_message_seconds),
        split_direction=_split_direction(data.get("split", {}).get("direction", DEFAULT_CONFIG.split_direction)),
        run_timeout_sec=data.get("run", {}).get("timeout_sec", DEFAULT_CONFIG.run_timeout_sec),
        log_level=data.get("logging", {}).get("level", DEFAULT_CONFIG.log_level),
        log_file=data.get("logging", {}).get("file", DEFAULT_CONFIG.log_file)
    )


def _tab_width(value) -> int:
    if not isinstance(value, int) or not 1 <= value <= 8:
        logger.warning(f"tab_width must be between 1 and 8, got {value!r}")
        return DEFAULT_CONFIG.tab_width
    return value


def _split_direction(value) -> str:
    if value not in ("horizontal", "vertical"):
        logger.warning(f"split direction must be 'horizontal' or 'vertical', got {value!r}")
        return DEFAULT_CONFIG.split_direction
    return value


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """
    Save configuration to ~/.termpad.toml.

    Args:
        config: The configuration to save.
        path: Alternative destination.

    Returns:
        The written path.
    """
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = {
        "editor": {
            "theme": config.theme,
            "tab_width": config.tab_width,
            "soft_wrap": config.soft_wrap,
            "show_status_bar": config.show_status_bar,
            "show_line_numbers": config.show_line_numbers,
            "encoding": config.encoding
        },
        "diagnostics": {
            "enabled": config.diagnostics_enabled,
            "debounce_ms": config.diagnostics_debounce_ms
        },
        "status": {
            "message_seconds": config.status_message_seconds
        },
        "split": {
            "direction": config.split_direction
        },
        "run": {
            "timeout_sec": config.run_timeout_sec
        },
        "logging": {
            "level": config.log_level,
            "file": config.log_file
        }
    }

    with open(path, "wb") as f:
        tomli_w.dump(config_dict, f)
    return path
