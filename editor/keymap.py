"""Readable descriptions of key bindings for the help dialog."""

import inspect
from typing import Dict, List, Sequence, Tuple, Union

from prompt_toolkit.key_binding import KeyBindingsBase
from prompt_toolkit.keys import Keys

_KEY_NAMES = {
    "escape": "Esc",
    "c-i": "Tab",
    "c-m": "Enter",
    "pageup": "PageUp",
    "pagedown": "PageDown",
}


def key_name(key: Union[Keys, str]) -> str:
    """Display name of one key, e.g. ``c-s`` -> ``Ctrl-S``."""
    name = key.value if isinstance(key, Keys) else str(key)
    if name in _KEY_NAMES:
        return _KEY_NAMES[name]
    if name.startswith("c-") and len(name) > 2:
        return "Ctrl-" + key_name(name[2:])
    if len(name) == 1 or (name[0] == "f" and name[1:].isdigit()):
        return name.upper()
    return name.capitalize()


def format_keys(keys: Sequence[Union[Keys, str]]) -> str:
    """Display name of a key sequence; Esc followed by a key reads as Alt."""
    names = [key_name(key) for key in keys]
    if len(names) == 2 and names[0] == "Esc":
        return f"Alt-{names[1]}"
    return " ".join(names)


def describe_bindings(key_bindings: KeyBindingsBase) -> List[Tuple[str, str]]:
    """
    List ``(keys, description)`` rows in binding order.

    The description is the handler's docstring; handlers without one are
    internal and left out. Bindings sharing a description become one row.
    """
    rows: Dict[str, List[str]] = {}
    for binding in key_bindings.bindings:
        description = inspect.getdoc(binding.handler)
        if not description:
            continue
        rows.setdefault(description.rstrip("."), []).append(format_keys(binding.keys))
    return [(_join_keys(keys), description) for description, keys in rows.items()]


def _join_keys(keys: List[str]) -> str:
    # a run such as Alt-1 .. Alt-8
    if len(keys) > 3:
        return f"{keys[0]} .. {keys[-1]}"
    return " / ".join(keys)


def format_help(rows: Sequence[Tuple[str, str]]) -> str:
    if not rows:
        return "No shortcuts"
    width = max(len(keys) for keys, _ in rows)
    return "\n".join(f"{keys.ljust(width)}  {description}" for keys, description in rows)
