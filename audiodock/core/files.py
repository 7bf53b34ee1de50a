"""
Sandboxed file operations requested by the UI layer.

Identifiers are validated before any filesystem access, and every path is
checked against the relevant roots before it is read or written.
"""

import logging
from datetime import datetime
from pathlib import Path

from audiodock.core.provisioner import DirectoryProvisioner
from audiodock.exceptions import NotFoundError, StorageError
from audiodock.models.settings import RootKind
from audiodock.utils.path import (
    create_dir,
    ensure_dir_within,
    ensure_new_dir_within,
    ensure_within,
    require_token,
    sanitize_export_name,
    validate_writable_dir,
)
from audiodock.utils.scan import newest_file

log = logging.getLogger(__name__)

DOWNLOAD_AUDIO_EXTENSION = ".mp3"

# Which roots each kind of write or read may target
BINARY_WRITE_ROOTS = (RootKind.DOWNLOAD, RootKind.TEMP, RootKind.EXPORT)
DOWNLOAD_LOG_ROOTS = (RootKind.LOGS, RootKind.DOWNLOAD)
META_ROOTS = (RootKind.DOWNLOAD,)
READ_ROOTS = (RootKind.DOWNLOAD, RootKind.TEMP)
EXPORT_OUTPUT_ROOTS = (RootKind.EXPORT, RootKind.DOWNLOAD)


def encode_text(contents: str) -> bytes:
    """UTF-8 with unpaired surrogates from the UI replaced by '?'."""
    return contents.encode("utf-8", errors="replace")


class SandboxedFiles:
    """File operations confined to the provisioned roots."""

    def __init__(self, provisioner: DirectoryProvisioner):
        self.provisioner = provisioner

    def _roots(self, kinds: tuple[RootKind, ...]) -> list[Path]:
        return [self.provisioner.resolve(kind) for kind in kinds]

    # ── Directory preparation ─────────────────────────────────────────────────

    def ensure_downloads_dir(self, date_folder: str) -> Path:
        """Creates (if needed) and returns '<download>/<date_folder>'."""
        require_token(date_folder, "date_folder")
        return validate_writable_dir(
            self.provisioner.resolve(RootKind.DOWNLOAD) / date_folder
        )

    def prepare_temp_audio(self, date_folder: str, log_stamp: str) -> Path:
        """Returns the path of a temporary working audio file; its folder exists."""
        require_token(date_folder, "date_folder")
        require_token(log_stamp, "log_stamp")
        folder = validate_writable_dir(self.provisioner.resolve(RootKind.TEMP) / date_folder)
        return folder / f"audio_{log_stamp}{DOWNLOAD_AUDIO_EXTENSION}"

    def prepare_download(self, date_folder: str, log_stamp: str) -> dict[str, str]:
        """
        Prepares everything one downloader run needs.

        Returns:
            {'download_root', 'download_dir', 'log_path'}
        """
        require_token(date_folder, "date_folder")
        require_token(log_stamp, "log_stamp")
        download_root = self.provisioner.resolve(RootKind.DOWNLOAD)
        download_dir = validate_writable_dir(download_root / date_folder)
        log_dir = validate_writable_dir(self.provisioner.resolve(RootKind.LOGS) / "download")
        return {
            "download_root": str(download_root),
            "download_dir": str(download_dir),
            "log_path": str(log_dir / f"download_{log_stamp}.log"),
        }

    # ── Writes ────────────────────────────────────────────────────────────────

    def write_binary_file(self, path: str, data: bytes) -> Path:
        target = ensure_within(self._roots(BINARY_WRITE_ROOTS), path)
        return self._write(target, bytes(data))

    def write_download_log(self, path: str, contents: str) -> Path:
        target = ensure_within(self._roots(DOWNLOAD_LOG_ROOTS), path)
        return self._write(target, encode_text(contents))

    def write_meta_file(self, path: str, contents: str) -> Path:
        target = ensure_within(self._roots(META_ROOTS), path)
        return self._write(target, encode_text(contents))

    def write_video_log(self, log_stamp: str, contents: str) -> Path:
        """Writes '<logs>/video/video_<log_stamp>.log', replacing any previous one."""
        require_token(log_stamp, "log_stamp")
        folder = self.provisioner.resolve(RootKind.LOGS) / "video"
        try:
            create_dir(folder)
        except OSError as e:
            raise StorageError(f"Cannot create '{folder}': {e}") from e
        return self._write(folder / f"video_{log_stamp}.log", encode_text(contents))

    def export_audio_file(
        self,
        file_name: str,
        fmt: str,
        data: bytes,
        output_root: str | None = None,
        now: datetime | None = None,
    ) -> Path:
        """
        Writes an exported audio artifact under a sanitized name.

        Without an explicit *output_root* the file goes into the export root,
        inside a 'YYYY-MM-DD' bucket. An explicit root must lie inside the
        export or download root.
        """
        name = sanitize_export_name(file_name, fmt)
        if output_root and output_root.strip():
            folder = ensure_new_dir_within(self._roots(EXPORT_OUTPUT_ROOTS), output_root)
        else:
            bucket = (now or datetime.now()).strftime("%Y-%m-%d")
            folder = self.provisioner.resolve(RootKind.EXPORT) / bucket
        folder = validate_writable_dir(folder)
        return self._write(folder / name, bytes(data))

    # ── Reads ─────────────────────────────────────────────────────────────────

    def read_downloaded_file(self, path: str) -> bytes:
        source = ensure_within(self._roots(READ_ROOTS), path)
        try:
            return source.read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read '{source}': {e}") from e

    def find_latest_download(self, download_dir: str) -> Path:
        """
        Returns the most recently modified downloaded audio file under
        *download_dir*, which must lie inside the download root.

        Raises:
            NotFoundError: If there is no matching file.
        """
        directory = ensure_dir_within(self._roots((RootKind.DOWNLOAD,)), download_dir)
        latest = newest_file(directory, {DOWNLOAD_AUDIO_EXTENSION})
        if latest is None:
            raise NotFoundError(
                f"No '{DOWNLOAD_AUDIO_EXTENSION}' file under '{directory}'.",
                public_message="No downloaded file found.",
            )
        return latest

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _write(target: Path, data: bytes) -> Path:
        try:
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Cannot write '{target}': {e}") from e
        log.debug(f"Wrote {len(data)} bytes to '{target}'.")
        return target
