"""
Structured logging system for backend commands.
Provides JSON-formatted event logs with context and metadata alongside the
regular console logger.
"""

import json
import logging
import os
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("audiodock", log_dir=Path("logs/events"))
        logger.info("export_completed",
                    session_id="20240101_1",
                    output="/exports/2024-01-01/...mp4")
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable console output
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)
        self._lock = threading.Lock()

        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"events_{timestamp}_{os.getpid()}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "process_session": f"{int(time.time())}_{os.getpid()}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    @staticmethod
    def _format_message(event: str, **context) -> str:
        """Console form: '[event] key=value ...'"""
        return " ".join([f"[{event}]", *(f"{key}={value}" for key, value in context.items())])

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            with self._lock:
                self._json_file.write(json.dumps(entry, default=str) + "\n")
                self._json_file.flush()
        except (OSError, ValueError) as e:
            # Fallback to stderr if JSON logging fails
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        """Log debug event."""
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        """Log info event."""
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        """Log warning event."""
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        """Log error event."""
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()


class CommandLogger:
    """Specialized logger for backend command events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def command_started(self, command: str):
        """Log command dispatch."""
        self.logger.debug("command_started", command=command)

    def command_completed(self, command: str, duration_ms: float):
        """Log command success."""
        self.logger.debug(
            "command_completed",
            command=command,
            duration_ms=round(duration_ms, 2),
        )

    def command_failed(self, command: str, kind: str, detail: str, duration_ms: float):
        """Log command failure with the full, non-public detail."""
        self.logger.warning(
            "command_failed",
            command=command,
            kind=kind,
            detail=detail,
            duration_ms=round(duration_ms, 2),
        )


class ExportLogger:
    """Specialized logger for export events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def export_completed(self, session_id: str, output: str, duration_s: float):
        """Log a finished export."""
        self.logger.info(
            "export_completed",
            session_id=session_id,
            output=output,
            duration_s=round(duration_s, 2),
        )

    def export_failed(self, session_id: str, kind: str, detail: str):
        """Log a failed export."""
        self.logger.error(
            "export_failed",
            session_id=session_id,
            kind=kind,
            detail=detail,
        )


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = True
) -> tuple[StructuredLogger, CommandLogger, ExportLogger]:
    """
    Create all structured loggers.

    Returns:
        Tuple of (base_logger, command_logger, export_logger)
    """
    base = StructuredLogger("audiodock.events", log_dir=log_dir, enable_json=enable_json)
    return base, CommandLogger(base), ExportLogger(base)
