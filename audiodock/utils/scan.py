"""
Directory scanning helpers.

The walk uses an explicit stack instead of recursion so that deep trees cannot
exhaust the interpreter's recursion limit.
"""

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

log = logging.getLogger(__name__)


def iter_files(root: Path, suffixes: Iterable[str] | None = None) -> Iterator[Path]:
    """
    Lazily yields every regular file under *root*.

    Args:
        root: Directory to walk.
        suffixes: Optional extensions to keep (e.g. {'.mp3'}), case-insensitive.

    Symlinks are neither followed nor yielded. Unreadable directories are skipped
    with a debug message.
    """
    wanted = {s.lower() for s in suffixes} if suffixes is not None else None
    stack = [Path(root)]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(Path(entry.path))
                        elif entry.is_file(follow_symlinks=False):
                            path = Path(entry.path)
                            if wanted is None or path.suffix.lower() in wanted:
                                yield path
                    except OSError as e:
                        log.debug(f"Skipping '{entry.path}': {e}")
        except OSError as e:
            log.debug(f"Cannot scan '{current}': {e}")


def newest_file(root: Path, suffixes: Iterable[str] | None = None) -> Path | None:
    """Returns the most recently modified matching file under *root*, or None."""
    newest: Path | None = None
    newest_mtime = float("-inf")
    for path in iter_files(root, suffixes):
        try:
            mtime = path.stat().st_mtime
        except OSError:
            continue
        if mtime > newest_mtime:
            newest, newest_mtime = path, mtime
    return newest
