"""
Utilities for sandboxing file paths, validating identifiers, and sanitizing names.

Every path that arrives from the UI layer goes through `ensure_within` before it
is read or written.
"""

import logging
import os
import re
import uuid
from collections.abc import Iterable
from pathlib import Path

from pathvalidate import sanitize_filename

from audiodock.exceptions import PathSecurityError, StorageError, ValidationError

log = logging.getLogger(__name__)

DATE_FOLDER_RE = re.compile(r"^[0-9-]+$")
STAMP_RE = re.compile(r"^[0-9_]+$")

EXPORT_FORMATS = frozenset({"mp3", "wav", "flac", "m4a", "ogg", "opus", "aac"})

_TOKEN_RULES = {
    "date_folder": (DATE_FOLDER_RE, "digits and dashes"),
    "session_id": (STAMP_RE, "digits and underscores"),
    "log_stamp": (STAMP_RE, "digits and underscores"),
}


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def require_token(value: str, kind: str) -> str:
    """
    Checks an identifier against its restricted charset.

    Args:
        value: The identifier received from the UI.
        kind: One of 'date_folder', 'session_id' or 'log_stamp'.

    Returns:
        The identifier, unchanged.

    Raises:
        ValidationError: If the identifier is empty or has a disallowed character.
    """
    pattern, allowed = _TOKEN_RULES[kind]
    if not isinstance(value, str) or not pattern.fullmatch(value):
        raise ValidationError(f"Invalid {kind}: only {allowed} are allowed.")
    return value


def _canonical(path: Path) -> Path:
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise StorageError(f"Cannot resolve '{path}': {e}") from e


def _is_descendant(root: Path, candidate: Path) -> bool:
    return candidate == root or root in candidate.parents


def is_within(root: Path, candidate: Path) -> bool:
    """
    Returns True if the canonical parent directory of *candidate* is *root* or
    one of its descendants.

    Raises:
        StorageError: If either side cannot be resolved.
    """
    candidate = Path(candidate)
    canonical_root = _canonical(Path(root))
    canonical_parent = _canonical(candidate.parent)
    return _is_descendant(canonical_root, canonical_parent)


def is_dir_within(root: Path, directory: Path) -> bool:
    """Like `is_within`, but canonicalizes *directory* itself."""
    return _is_descendant(_canonical(Path(root)), _canonical(Path(directory)))


def ensure_within(roots: Iterable[Path], candidate: str | Path) -> Path:
    """
    Validates a UI-supplied file path against one or more sandbox roots.

    Returns:
        The candidate with its parent directory canonicalized.

    Raises:
        PathSecurityError: If the path escapes every root or cannot be resolved.
        The OS error is logged, never returned.
    """
    raw = str(candidate or "").strip()
    if not raw or "\x00" in raw:
        raise PathSecurityError("Empty or malformed path supplied.")

    path = Path(raw)
    if path.name in ("", ".", ".."):
        raise PathSecurityError(f"Path '{raw}' does not name a file.")

    for root in roots:
        try:
            if not is_within(root, path):
                continue
            resolved = _canonical(path.parent) / path.name
            if path.is_symlink() and not _is_descendant(
                _canonical(Path(root)), _canonical(path)
            ):
                continue
            return resolved
        except StorageError as e:
            log.debug(f"Sandbox check against '{root}' failed: {e.detail}")
    raise PathSecurityError(f"Path '{raw}' is outside of the sandbox roots.")


def ensure_dir_within(roots: Iterable[Path], directory: str | Path) -> Path:
    """Validates a UI-supplied directory; returns its canonical path."""
    raw = str(directory or "").strip()
    if not raw or "\x00" in raw:
        raise PathSecurityError("Empty or malformed directory supplied.")
    for root in roots:
        try:
            if is_dir_within(root, Path(raw)):
                return _canonical(Path(raw))
        except StorageError as e:
            log.debug(f"Sandbox check against '{root}' failed: {e.detail}")
    raise PathSecurityError(f"Directory '{raw}' is outside of the sandbox roots.")


def ensure_new_dir_within(roots: Iterable[Path], directory: str | Path) -> Path:
    """
    Validates a UI-supplied directory that may not exist yet.

    The deepest existing ancestor is canonicalized and must lie inside one of
    *roots*; the missing components below it may not be '.' or '..'.

    Returns:
        The canonical ancestor joined with the missing components.

    Raises:
        PathSecurityError: If the path is relative, malformed, or escapes
        every root.
    """
    raw = str(directory or "").strip()
    if not raw or "\x00" in raw:
        raise PathSecurityError("Empty or malformed directory supplied.")
    path = Path(raw).expanduser()
    if not path.is_absolute():
        raise PathSecurityError(f"Directory '{raw}' is not absolute.")

    missing: list[str] = []
    existing = path
    while not existing.exists():
        if existing.name in ("", ".", ".."):
            raise PathSecurityError(f"Directory '{raw}' has unresolvable components.")
        missing.append(existing.name)
        existing = existing.parent

    try:
        base = _canonical(existing)
    except StorageError as e:
        raise PathSecurityError(e.detail) from e

    for root in roots:
        try:
            if _is_descendant(_canonical(Path(root)), base):
                return base.joinpath(*reversed(missing))
        except StorageError as e:
            log.debug(f"Sandbox check against '{root}' failed: {e.detail}")
    raise PathSecurityError(f"Directory '{raw}' is outside of the sandbox roots.")


def validate_writable_dir(path: Path) -> Path:
    """
    Creates *path* if needed and proves it is writable with a probe file.

    Returns:
        The canonical directory path.

    Raises:
        StorageError: If creation, the probe write, or the probe removal fails.
    """
    path = Path(path)
    try:
        create_dir(path)
    except OSError as e:
        raise StorageError(f"Cannot create directory '{path}': {e}") from e

    probe = path / f".write_probe_{os.getpid()}_{uuid.uuid4().hex}"
    try:
        probe.write_bytes(b"ok")
    except OSError as e:
        raise StorageError(f"Directory '{path}' is not writable: {e}") from e
    try:
        probe.unlink()
    except OSError as e:
        raise StorageError(f"Cannot remove probe file in '{path}': {e}") from e

    return _canonical(path)


def sanitize_export_name(file_name: str, fmt: str) -> str:
    """
    Builds a safe file name for an exported audio artifact.

    The format must be one of EXPORT_FORMATS; any extension already present on
    the supplied name is replaced.
    """
    fmt = str(fmt or "").strip().lower().lstrip(".")
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(
            f"Unsupported export format '{fmt}'. "
            f"Use one of: {', '.join(sorted(EXPORT_FORMATS))}."
        )
    name = Path(str(file_name or "").replace("\\", "/")).name
    if Path(name).suffix.lower().lstrip(".") in EXPORT_FORMATS:
        name = Path(name).stem
    stem = sanitize_filename(name, platform="universal").strip(" .") or "export"
    return f"{stem}.{fmt}"
