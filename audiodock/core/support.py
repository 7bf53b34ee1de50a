"""
Builds the support bundle: one text file a user can attach to a bug report.
"""

import logging
import platform
import sys
from datetime import datetime
from pathlib import Path

from audiodock import __version__
from audiodock.core.locator import ExecutableLocator
from audiodock.core.provisioner import DirectoryProvisioner
from audiodock.exceptions import NotFoundError, StorageError
from audiodock.models.settings import RootKind
from audiodock.utils.formatting import format_size, tail_lines
from audiodock.utils.scan import newest_file

log = logging.getLogger(__name__)

BUNDLE_TAIL_LINES = 200
LOG_SUFFIXES = {".log"}


def _section(title: str) -> list[str]:
    return ["", f"== {title} " + "=" * max(0, 60 - len(title))]


def _log_tail(label: str, directory: Path) -> list[str]:
    lines = _section(label)
    latest = newest_file(directory, LOG_SUFFIXES) if directory.is_dir() else None
    if latest is None:
        lines.append(f"(no log files under {directory})")
        return lines
    try:
        text = latest.read_text(encoding="utf-8", errors="replace")
        size = format_size(latest.stat().st_size)
    except OSError as e:
        lines.append(f"(cannot read {latest}: {e})")
        return lines
    lines.append(f"file: {latest} ({size})")
    lines.extend(tail_lines(text, BUNDLE_TAIL_LINES))
    return lines


def build_support_report(
    provisioner: DirectoryProvisioner, locator: ExecutableLocator
) -> str:
    """Collects resolved paths, the sidecar trail and recent log tails."""
    lines = [
        f"audiodock support bundle - {datetime.now().isoformat(timespec='seconds')}",
        f"version: {__version__}",
        f"python: {sys.version.split()[0]} ({sys.executable})",
        f"platform: {platform.platform()} [{platform.machine()}]",
    ]

    lines += _section("Resolved roots")
    roots = provisioner.describe()
    lines += [f"{name}: {value}" for name, value in roots.items()]

    lines += _section("Sidecar binaries")
    try:
        result = locator.locate()
        lines.append(f"directory: {result.directory}")
        trail = result.trail
    except NotFoundError as e:
        lines.append(f"directory: NOT FOUND ({e.detail})")
        trail = e.trail
    lines += [f"  {entry}" for entry in trail]

    logs_root = Path(roots.get(RootKind.LOGS.value, ""))
    if logs_root.is_absolute():
        lines += _log_tail("Latest download log", logs_root / "download")
        lines += _log_tail("Latest video log", logs_root / "video")
    else:
        lines += _section("Logs")
        lines.append("(logs root unavailable)")

    return "\n".join(lines) + "\n"


def write_support_bundle(
    provisioner: DirectoryProvisioner, locator: ExecutableLocator
) -> Path:
    """
    Writes the report under '<logs>/support/'.

    Raises:
        StorageError: If the logs root or the bundle file cannot be written.
    """
    report = build_support_report(provisioner, locator)
    try:
        support_dir = provisioner.resolve(RootKind.LOGS) / "support"
        support_dir.mkdir(parents=True, exist_ok=True)
        path = support_dir / f"support_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
        path.write_text(report, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Cannot write support bundle: {e}") from e
    log.info(f"Support bundle written to '{path}'.")
    return path
