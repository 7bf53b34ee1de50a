"""
Append-only, per-session trace log for export attempts.
"""

import logging
import os
from datetime import datetime
from pathlib import Path

from audiodock.exceptions import StorageError
from audiodock.utils.formatting import escape_newlines
from audiodock.utils.path import require_token

log = logging.getLogger(__name__)


class SessionTraceLog:
    """
    Writes one file per session id.

    Each record is encoded as a single newline-terminated line and written with
    one `os.write` on an O_APPEND descriptor, so concurrent appenders to the same
    session never interleave partial lines.
    """

    def __init__(self, trace_dir: Path):
        self.trace_dir = Path(trace_dir)

    def path_for(self, session_id: str) -> Path:
        require_token(session_id, "session_id")
        return self.trace_dir / f"trace_{session_id}.log"

    def append(self, session_id: str, stage: str, payload: str = "") -> Path:
        """
        Appends one record: '<ISO timestamp> <stage> <payload>'.

        Raises:
            ValidationError: If the session id has a disallowed character.
            StorageError: If the record cannot be written.
        """
        path = self.path_for(session_id)
        record = f"{datetime.now().isoformat(timespec='milliseconds')} {stage}"
        if payload:
            record += f" {payload}"
        data = (escape_newlines(record) + "\n").encode("utf-8", errors="replace")

        try:
            self.trace_dir.mkdir(parents=True, exist_ok=True)
            flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND | getattr(os, "O_BINARY", 0)
            fd = os.open(path, flags, 0o644)
            try:
                os.write(fd, data)
            finally:
                os.close(fd)
        except OSError as e:
            raise StorageError(f"Cannot append to trace '{path}': {e}") from e
        return path

    def append_line(self, session_id: str, line: str) -> Path:
        """Appends a free-form line supplied by the UI."""
        return self.append(session_id, "ui", line)

    def read(self, session_id: str) -> list[str]:
        """Returns every record of a session in write order."""
        path = self.path_for(session_id)
        if not path.is_file():
            return []
        try:
            return path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Cannot read trace '{path}': {e}") from e
