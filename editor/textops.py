"""Line-oriented text helpers used by edit commands."""

from typing import List, Tuple


def split_lines(text: str) -> List[str]:
    """Split text on newlines, always returning at least one (possibly empty) line."""
    if not text:
        return [""]
    return text.split("\n")


def clamp(value: int, minimum: int, maximum: int) -> int:
    return max(minimum, min(value, maximum))


def trim_trailing_whitespace(text: str) -> Tuple[str, bool]:
    """
    Strip trailing whitespace from every line.

    Returns:
        The new text and whether anything changed.
    """
    lines = split_lines(text)
    trimmed = [line.rstrip() for line in lines]
    if trimmed == lines:
        return text, False
    return "\n".join(trimmed), True


def duplicate_line(text: str, line: int) -> Tuple[str, int]:
    """
    Insert a copy of ``line`` directly below it.

    Returns:
        The new text and the 1-based line number of the copy.
    """
    lines = split_lines(text)
    line = clamp(line, 1, len(lines))
    lines.insert(line, lines[line - 1])
    return "\n".join(lines), line + 1


def line_count(text: str) -> int:
    return len(split_lines(text))
