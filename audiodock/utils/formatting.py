"""
Helper functions for formatting data into human-readable or log-safe strings.
"""

import json


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def tail_lines(text: str, count: int) -> list[str]:
    """Returns the last *count* lines of *text*."""
    if count <= 0 or not text:
        return []
    return text.splitlines()[-count:]


def single_line(value: str | list[str]) -> str:
    """
    Encodes a string (or list of lines) as one JSON string literal, so it can be
    stored on a single log line and decoded back with json.loads.
    """
    if isinstance(value, list):
        value = "\n".join(value)
    return json.dumps(value, ensure_ascii=False)


def escape_newlines(line: str) -> str:
    """Escapes CR/LF so a free-form line cannot span several log records."""
    return line.replace("\r", "\\r").replace("\n", "\\n")
