"""
Descriptions of the sidecar executables shipped next to the application.
"""

import platform
import sys
from dataclasses import dataclass
from pathlib import Path

# (name, role) for every sidecar the backend depends on
REQUIRED_TOOLS = (
    ("ffmpeg", "transcoder"),
    ("ffprobe", "probe"),
    ("yt-dlp", "downloader"),
)

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
    "i386": "i686",
    "i686": "i686",
    "x86": "i686",
}


def target_triple(machine: str | None = None, os_name: str | None = None) -> str:
    """
    Returns the target triple used to qualify sidecar file names,
    e.g. 'x86_64-unknown-linux-gnu' or 'aarch64-apple-darwin'.
    """
    machine = (machine or platform.machine() or "x86_64").lower()
    arch = _ARCH_ALIASES.get(machine, machine)
    os_name = os_name or sys.platform
    if os_name == "win32":
        return f"{arch}-pc-windows-msvc"
    if os_name == "darwin":
        return f"{arch}-apple-darwin"
    return f"{arch}-unknown-linux-gnu"


@dataclass(frozen=True)
class BinaryCandidate:
    """A required executable and every file name it may be shipped under."""

    name: str
    role: str
    filenames: tuple[str, ...]

    @classmethod
    def for_platform(
        cls,
        name: str,
        role: str,
        machine: str | None = None,
        os_name: str | None = None,
    ) -> "BinaryCandidate":
        os_name = os_name or sys.platform
        suffix = ".exe" if os_name == "win32" else ""
        triple = target_triple(machine, os_name)
        return cls(
            name=name,
            role=role,
            filenames=(f"{name}{suffix}", f"{name}-{triple}{suffix}"),
        )

    def find_in(self, directory: Path) -> Path | None:
        """Returns the first existing file for this tool inside *directory*."""
        for filename in self.filenames:
            path = directory / filename
            if path.is_file():
                return path
        return None


def default_candidates() -> tuple[BinaryCandidate, ...]:
    return tuple(BinaryCandidate.for_platform(name, role) for name, role in REQUIRED_TOOLS)


@dataclass(frozen=True)
class LocatorResult:
    """The located sidecar directory and the trail that led to it."""

    directory: Path
    trail: tuple[str, ...]
