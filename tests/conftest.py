from datetime import datetime
from pathlib import Path

import pytest

from audiodock.api.commands import BackendCommands
from audiodock.core.app_paths import settings_path
from audiodock.core.locator import ExecutableLocator
from audiodock.core.provisioner import DirectoryProvisioner
from audiodock.models.binaries import default_candidates
from audiodock.models.export import ProcessResult
from audiodock.storage.settings_store import SettingsStore

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0)


def _tool_names(arch_qualified: bool = False) -> dict[str, str]:
    index = 1 if arch_qualified else 0
    return {c.name: c.filenames[index] for c in default_candidates()}


@pytest.fixture
def make_tools():
    """Creates placeholder sidecar files; returns the created paths by tool name."""

    def _make(directory: Path, names=("ffmpeg", "ffprobe", "yt-dlp"), arch_qualified=False):
        directory.mkdir(parents=True, exist_ok=True)
        filenames = _tool_names(arch_qualified)
        created = {}
        for name in names:
            path = directory / filenames[name]
            path.write_bytes(b"")
            created[name] = path
        return created

    return _make


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    return tmp_path / "home"


@pytest.fixture
def store(app_root: Path) -> SettingsStore:
    return SettingsStore(settings_path(app_root))


@pytest.fixture
def provisioner(app_root: Path, store: SettingsStore) -> DirectoryProvisioner:
    return DirectoryProvisioner(app_root, store)


@pytest.fixture
def install_dirs(tmp_path: Path) -> dict[str, Path]:
    exe_dir = tmp_path / "install" / "bin"
    cwd = tmp_path / "work" / "dir"
    exe_dir.mkdir(parents=True)
    cwd.mkdir(parents=True)
    return {"exe_dir": exe_dir, "cwd": cwd}


@pytest.fixture
def locator(install_dirs, make_tools) -> ExecutableLocator:
    make_tools(install_dirs["exe_dir"] / "binaries")
    return ExecutableLocator(install_dirs["exe_dir"], install_dirs["cwd"], max_depth=2)


@pytest.fixture
def empty_locator(install_dirs) -> ExecutableLocator:
    return ExecutableLocator(install_dirs["exe_dir"], install_dirs["cwd"], max_depth=2)


class FakeRunner:
    """Stands in for the transcoder: records calls and writes the output file."""

    def __init__(self, exit_code: int = 0, output: str = "frame=1\nvideo:1kB audio:2kB"):
        self.exit_code = exit_code
        self.output = output
        self.calls: list[list[str]] = []

    def __call__(self, cmd: list[str]) -> ProcessResult:
        self.calls.append(cmd)
        if self.exit_code == 0:
            Path(cmd[-1]).write_bytes(b"\x00\x00\x00\x18ftypmp42")
        return ProcessResult(
            exit_code=self.exit_code,
            output=self.output,
            tail=self.output.splitlines(),
        )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def backend(app_root, locator, fake_runner):
    commands = BackendCommands(
        app_root=app_root,
        locator=locator,
        runner=fake_runner,
        clock=lambda: FIXED_NOW,
    )
    yield commands
    commands.close()
