"""
Locates the directory holding the sidecar executables (ffmpeg, ffprobe, yt-dlp).

Installers place sidecars in different relative positions depending on the
build type (development run, installed package, portable archive), so the
search is an ordered list of probe strategies. Every probe appends an entry to
a diagnostic trail whether or not it matched; the trail is the primary
debugging artifact on end-user machines.
"""

import logging
import os
import shutil
import sys
from collections.abc import Iterator
from pathlib import Path

from audiodock.exceptions import NotFoundError
from audiodock.models.binaries import BinaryCandidate, LocatorResult, default_candidates

log = logging.getLogger(__name__)

BINARIES_DIRNAME = "binaries"
MAX_ANCESTOR_DEPTH = 6

# (label, directory); a None directory records a note without probing
Probe = tuple[str, Path | None]


def _default_resource_dir() -> Path | None:
    override = os.getenv("AUDIODOCK_RESOURCE_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    bundle_dir = getattr(sys, "_MEIPASS", None)
    return Path(bundle_dir) if bundle_dir else None


def _running_executable_dir() -> Path:
    return Path(sys.executable).resolve().parent


class ExecutableLocator:
    """
    Finds the directory containing at least one required sidecar executable.

    Search order:
        1. the packaged resource directory and its conventional neighbours;
        2. an ancestor walk from the running executable's directory;
        3. the same walk from the current working directory;
        4. repair: gather loose copies sitting beside the executable into a
           `binaries` folder, then check that folder again.
    """

    def __init__(
        self,
        exe_dir: Path,
        cwd: Path,
        resource_dir: Path | None = None,
        candidates: tuple[BinaryCandidate, ...] | None = None,
        max_depth: int = MAX_ANCESTOR_DEPTH,
    ):
        self.exe_dir = Path(exe_dir)
        self.cwd = Path(cwd)
        self.resource_dir = Path(resource_dir) if resource_dir else None
        self.candidates = candidates or default_candidates()
        self.max_depth = max(0, max_depth)

    @classmethod
    def for_running_app(cls) -> "ExecutableLocator":
        """Builds a locator for the current process and install layout."""
        return cls(
            exe_dir=_running_executable_dir(),
            cwd=Path.cwd(),
            resource_dir=_default_resource_dir(),
        )

    # ── Public API ────────────────────────────────────────────────────────────

    def locate(self) -> LocatorResult:
        """
        Runs every probe strategy in order, then the repair step.

        Returns:
            The canonical directory and the full diagnostic trail.

        Raises:
            NotFoundError: If no strategy succeeds; carries the trail.
        """
        trail: list[str] = []
        seen: set[str] = set()

        strategies = (
            ("resource", self._resource_probes),
            ("exe", lambda: self._ancestor_probes(self.exe_dir, "exe")),
            ("cwd", lambda: self._ancestor_probes(self.cwd, "cwd")),
        )
        for name, strategy in strategies:
            for label, directory in strategy():
                if directory is None:
                    trail.append(label)
                    continue
                found = self._probe(label, directory, trail, seen)
                if found is not None:
                    return self._result(found, trail)
            trail.append(f"{name}: no match")

        repaired = self._repair(trail)
        if repaired is not None:
            return self._result(repaired, trail)

        log.warning(
            f"Sidecar binaries not found after {len(trail)} diagnostic steps."
        )
        for entry in trail:
            log.debug(f"  {entry}")
        raise NotFoundError(
            "No directory containing the required sidecar binaries was found.",
            trail=tuple(trail),
        )

    def locate_tool(self, name: str) -> tuple[Path, LocatorResult]:
        """
        Resolves one specific tool inside the located directory.

        Raises:
            NotFoundError: If no directory is found, or the located directory
            holds other tools but not this one.
        """
        candidate = self._candidate(name)
        result = self.locate()
        path = candidate.find_in(result.directory)
        if path is None:
            raise NotFoundError(
                f"'{name}' is not present in '{result.directory}'.",
                trail=result.trail
                + (f"tool: {name} not found among {', '.join(candidate.filenames)}",),
            )
        return path, result

    # ── Probe strategies ──────────────────────────────────────────────────────

    def _resource_probes(self) -> Iterator[Probe]:
        if self.resource_dir is None:
            yield "resource: no packaged resource directory", None
            return
        res = self.resource_dir
        yield "resource/binaries", res / BINARIES_DIRNAME
        yield "resource", res
        yield "resource/..", res.parent
        yield "resource/../binaries", res / ".." / BINARIES_DIRNAME

    def _ancestor_probes(self, start: Path, prefix: str) -> Iterator[Probe]:
        """
        Probes each ancestor of *start*. The start directory itself is only
        searched for subfolders: loose files beside the executable are the
        repair step's job.
        """
        start = Path(os.path.abspath(start))
        ancestors = [start, *start.parents][: self.max_depth + 1]
        for depth, ancestor in enumerate(ancestors):
            tag = f"{prefix}[{depth}]"
            yield f"{tag} binaries", ancestor / BINARIES_DIRNAME
            if depth > 0:
                yield f"{tag} self", ancestor
            yield f"{tag} src/binaries", ancestor / "src" / BINARIES_DIRNAME
            yield f"{tag} src-tauri/binaries", ancestor / "src-tauri" / BINARIES_DIRNAME
            yield f"{tag} resources", ancestor / "resources"
            yield f"{tag} resources/binaries", ancestor / "resources" / BINARIES_DIRNAME

    # ── Repair ────────────────────────────────────────────────────────────────

    def _repair(self, trail: list[str]) -> Path | None:
        target = self.exe_dir / BINARIES_DIRNAME
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            trail.append(f"repair: cannot create {target}: {e}")
            return None
        trail.append(f"repair: using {target}")

        for candidate in self.candidates:
            existing = candidate.find_in(target)
            if existing is not None:
                trail.append(f"repair: {candidate.name} already in {target}")
                continue
            loose = candidate.find_in(self.exe_dir)
            if loose is None:
                trail.append(f"repair: no loose {candidate.name} beside executable")
                continue
            try:
                shutil.copy2(loose, target / loose.name)
                trail.append(f"repair: copied {loose} -> {target / loose.name}")
                log.info(f"Repaired sidecar layout: copied '{loose.name}' into '{target}'.")
            except OSError as e:
                trail.append(f"repair: failed to copy {loose}: {e}")

        found = self._probe("repair/recheck", target, trail, seen=set())
        return found

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _candidate(self, name: str) -> BinaryCandidate:
        for candidate in self.candidates:
            if candidate.name == name:
                return candidate
        raise NotFoundError(f"'{name}' is not a known sidecar executable.")

    def _present_tools(self, directory: Path) -> list[str]:
        return [c.name for c in self.candidates if c.find_in(directory) is not None]

    def _probe(
        self, label: str, directory: Path, trail: list[str], seen: set[str]
    ) -> Path | None:
        key = os.path.normcase(os.path.abspath(directory))
        if key in seen:
            trail.append(f"{label}: {directory} -> already checked")
            return None
        seen.add(key)

        if not directory.is_dir():
            trail.append(f"{label}: {directory} -> no such directory")
            return None
        present = self._present_tools(directory)
        if not present:
            trail.append(f"{label}: {directory} -> no required executables")
            return None
        trail.append(f"{label}: {directory} -> found {', '.join(present)}")
        return directory

    def _result(self, directory: Path, trail: list[str]) -> LocatorResult:
        canonical = directory.resolve()
        trail.append(f"selected: {canonical}")
        log.debug(f"Sidecar directory resolved to '{canonical}' ({len(trail)} steps).")
        return LocatorResult(directory=canonical, trail=tuple(trail))
