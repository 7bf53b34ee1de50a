"""
The request/response surface the UI layer talks to.

Every command returns a `CommandResult`. Failures carry an error kind and a
non-leaking message; the full detail goes to the console log and the JSONL
event log only.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from audiodock.core.app_paths import get_app_root, settings_path
from audiodock.core.exporter import ExportOrchestrator
from audiodock.core.files import SandboxedFiles
from audiodock.core.locator import ExecutableLocator
from audiodock.core.provisioner import DirectoryProvisioner
from audiodock.core.support import write_support_bundle
from audiodock.exceptions import AudioDockError, StorageError
from audiodock.media.transcoder import run_process
from audiodock.models.export import ProcessResult
from audiodock.models.result import CommandResult
from audiodock.models.settings import RootKind
from audiodock.storage.settings_store import SettingsStore
from audiodock.storage.trace_log import SessionTraceLog
from audiodock.utils.path import require_token
from audiodock.utils.structured_logger import (
    CommandLogger,
    ExportLogger,
    StructuredLogger,
    create_structured_logger,
)

log = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Paths cross the boundary as strings."""
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


class BackendCommands:
    """
    One instance serves every UI request. Commands run synchronously on the
    calling thread and share no mutable state apart from the settings document.
    """

    def __init__(
        self,
        app_root: Path | None = None,
        locator: ExecutableLocator | None = None,
        runner: Callable[[list[str]], ProcessResult] = run_process,
        clock: Callable[[], datetime] = datetime.now,
        enable_event_log: bool = True,
    ):
        self.app_root = Path(app_root) if app_root else get_app_root()
        self.store = SettingsStore(settings_path(self.app_root))
        self.provisioner = DirectoryProvisioner(self.app_root, self.store)
        self.locator = locator or ExecutableLocator.for_running_app()
        self.files = SandboxedFiles(self.provisioner)
        self.runner = runner
        self.clock = clock
        self._event_loggers = self._create_loggers(enable_event_log)

    # ── Plumbing ──────────────────────────────────────────────────────────────

    def _create_loggers(
        self, enable_event_log: bool
    ) -> tuple[StructuredLogger, CommandLogger, ExportLogger]:
        log_dir = None
        if enable_event_log:
            try:
                log_dir = self.provisioner.resolve(RootKind.LOGS) / "events"
                log_dir.mkdir(parents=True, exist_ok=True)
            except AudioDockError as e:
                log.warning(f"Event log disabled: {e.detail}")
                log_dir = None
            except OSError as e:
                log.warning(f"Event log disabled: {e}")
                log_dir = None
        loggers = create_structured_logger(log_dir=log_dir, enable_json=log_dir is not None)
        loggers[0].set_session_context(app_root=str(self.app_root))
        return loggers

    def _dispatch(self, command: str, func: Callable[..., Any], *args: Any) -> CommandResult:
        _, commands, _ = self._event_loggers
        commands.command_started(command)
        started = time.monotonic()
        try:
            value = func(*args)
        except AudioDockError as e:
            error = e
        except (OSError, ValueError) as e:
            error = StorageError(f"{command}: {e}")
        else:
            commands.command_completed(command, (time.monotonic() - started) * 1000)
            return CommandResult.success(_plain(value))

        commands.command_failed(
            command, error.kind.value, error.detail, (time.monotonic() - started) * 1000
        )
        return CommandResult.failure(error)

    def close(self) -> None:
        self._event_loggers[0].close()

    # ── Roots ─────────────────────────────────────────────────────────────────

    def get_download_root(self) -> CommandResult:
        return self._dispatch("get_download_root", self.provisioner.resolve, RootKind.DOWNLOAD)

    def set_download_root(self, path: str) -> CommandResult:
        return self._dispatch(
            "set_download_root", self.provisioner.set_override, RootKind.DOWNLOAD, path
        )

    def get_export_root(self) -> CommandResult:
        return self._dispatch("get_export_root", self.provisioner.resolve, RootKind.EXPORT)

    def set_export_root(self, path: str) -> CommandResult:
        return self._dispatch(
            "set_export_root", self.provisioner.set_override, RootKind.EXPORT, path
        )

    # ── Download side ─────────────────────────────────────────────────────────

    def ensure_downloads_dir(self, date_folder: str) -> CommandResult:
        return self._dispatch("ensure_downloads_dir", self.files.ensure_downloads_dir, date_folder)

    def prepare_temp_audio(self, date_folder: str, log_stamp: str) -> CommandResult:
        return self._dispatch(
            "prepare_temp_audio", self.files.prepare_temp_audio, date_folder, log_stamp
        )

    def prepare_download(self, date_folder: str, log_stamp: str) -> CommandResult:
        return self._dispatch(
            "prepare_download", self.files.prepare_download, date_folder, log_stamp
        )

    def write_binary_file(self, path: str, data: bytes) -> CommandResult:
        return self._dispatch("write_binary_file", self.files.write_binary_file, path, data)

    def write_download_log(self, path: str, contents: str) -> CommandResult:
        return self._dispatch(
            "write_download_log", self.files.write_download_log, path, contents
        )

    def write_meta_file(self, path: str, contents: str) -> CommandResult:
        return self._dispatch("write_meta_file", self.files.write_meta_file, path, contents)

    def read_downloaded_file(self, path: str) -> CommandResult:
        return self._dispatch("read_downloaded_file", self.files.read_downloaded_file, path)

    def find_latest_download(self, download_dir: str) -> CommandResult:
        return self._dispatch(
            "find_latest_download", self.files.find_latest_download, download_dir
        )

    # ── Export side ───────────────────────────────────────────────────────────

    def export_black_video(
        self, input_audio_path: str, session_id: str, output_root: str | None = None
    ) -> CommandResult:
        def _export() -> Path:
            require_token(session_id, "session_id")
            trace_dir = self.provisioner.resolve(RootKind.LOGS) / "video"
            _, _, exports = self._event_loggers
            orchestrator = ExportOrchestrator(
                self.provisioner,
                self.locator,
                SessionTraceLog(trace_dir),
                runner=self.runner,
                clock=self.clock,
                events=exports,
            )
            return orchestrator.export(input_audio_path, session_id, output_root).output_path

        return self._dispatch("export_black_video", _export)

    def export_audio_file(
        self, file_name: str, fmt: str, data: bytes, output_root: str | None = None
    ) -> CommandResult:
        return self._dispatch(
            "export_audio_file",
            lambda: self.files.export_audio_file(
                file_name, fmt, data, output_root, now=self.clock()
            ),
        )

    def write_video_log(self, log_stamp: str, contents: str) -> CommandResult:
        return self._dispatch("write_video_log", self.files.write_video_log, log_stamp, contents)

    def append_video_trace(self, session_id: str, line: str) -> CommandResult:
        def _append() -> Path:
            require_token(session_id, "session_id")
            trace = SessionTraceLog(self.provisioner.resolve(RootKind.LOGS) / "video")
            return trace.append_line(session_id, line)

        return self._dispatch("append_video_trace", _append)

    # ── Diagnostics ───────────────────────────────────────────────────────────

    def get_binaries_dir(self) -> CommandResult:
        return self._dispatch("get_binaries_dir", lambda: self.locator.locate().directory)

    def write_support_bundle(self) -> CommandResult:
        return self._dispatch(
            "write_support_bundle", write_support_bundle, self.provisioner, self.locator
        )
