import os
import stat

import pytest

from audiodock.core.locator import ExecutableLocator
from audiodock.exceptions import NotFoundError
from audiodock.models.binaries import BinaryCandidate, target_triple


def _found_entries(trail):
    return [entry for entry in trail if "-> found" in entry]


def test_locate_prefers_binaries_beside_executable(locator, install_dirs):
    result = locator.locate()

    assert result.directory == (install_dirs["exe_dir"] / "binaries").resolve()
    assert result.trail[-1] == f"selected: {result.directory}"
    assert _found_entries(result.trail)[0].startswith("exe[0] binaries")


def test_locate_checks_packaged_resources_first(tmp_path, install_dirs, make_tools):
    make_tools(install_dirs["exe_dir"] / "binaries")
    resources = tmp_path / "bundle"
    make_tools(resources / "binaries", names=("ffmpeg",))

    result = ExecutableLocator(
        install_dirs["exe_dir"], install_dirs["cwd"], resource_dir=resources, max_depth=2
    ).locate()

    assert result.directory == (resources / "binaries").resolve()
    assert result.trail[0].startswith("resource/binaries")


def test_locate_records_missing_resource_directory(locator):
    result = locator.locate()
    assert result.trail[0] == "resource: no packaged resource directory"


def test_locate_walks_up_to_development_layout(tmp_path, make_tools):
    project = tmp_path / "project"
    exe_dir = project / "target" / "release"
    exe_dir.mkdir(parents=True)
    cwd = tmp_path / "elsewhere"
    cwd.mkdir()
    make_tools(project / "src-tauri" / "binaries")

    result = ExecutableLocator(exe_dir, cwd, max_depth=2).locate()

    assert result.directory == (project / "src-tauri" / "binaries").resolve()
    assert _found_entries(result.trail)[0].startswith("exe[2] src-tauri/binaries")


def test_locate_stops_walking_at_max_depth(tmp_path, make_tools):
    project = tmp_path / "project"
    exe_dir = project / "a" / "b" / "c"
    exe_dir.mkdir(parents=True)
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    make_tools(project / "binaries")

    with pytest.raises(NotFoundError):
        ExecutableLocator(exe_dir, cwd, max_depth=2).locate()


def test_locate_falls_back_to_working_directory(install_dirs, make_tools, empty_locator):
    make_tools(install_dirs["cwd"] / "resources", names=("yt-dlp",))

    result = empty_locator.locate()

    assert result.directory == (install_dirs["cwd"] / "resources").resolve()
    assert "exe: no match" in result.trail


def test_locate_accepts_architecture_qualified_names(install_dirs, make_tools, empty_locator):
    make_tools(install_dirs["exe_dir"] / "binaries", names=("ffmpeg",), arch_qualified=True)

    result = empty_locator.locate()

    assert result.directory == (install_dirs["exe_dir"] / "binaries").resolve()


def test_repair_gathers_loose_binaries_beside_executable(install_dirs, make_tools, empty_locator):
    loose = make_tools(install_dirs["exe_dir"], names=("ffmpeg", "ffprobe"))

    result = empty_locator.locate()

    target = install_dirs["exe_dir"] / "binaries"
    assert result.directory == target.resolve()
    assert (target / loose["ffmpeg"].name).is_file()
    assert (target / loose["ffprobe"].name).is_file()
    assert loose["ffmpeg"].is_file()
    assert any(entry.startswith("repair: copied") for entry in result.trail)
    assert any(entry.startswith("repair: no loose yt-dlp") for entry in result.trail)
    assert any(entry.startswith("repair/recheck") for entry in result.trail)


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_repair_preserves_executable_permission(install_dirs, make_tools, empty_locator):
    loose = make_tools(install_dirs["exe_dir"], names=("ffmpeg",))["ffmpeg"]
    loose.chmod(0o755)

    empty_locator.locate()

    copied = install_dirs["exe_dir"] / "binaries" / loose.name
    assert stat.S_IMODE(copied.stat().st_mode) == 0o755


def test_existing_binaries_folder_is_left_untouched(install_dirs, make_tools, empty_locator):
    make_tools(install_dirs["exe_dir"], names=("ffprobe",))
    target = install_dirs["exe_dir"] / "binaries"
    existing = make_tools(target, names=("ffprobe",))["ffprobe"]
    existing.write_bytes(b"already here")

    result = empty_locator.locate()

    assert result.directory == target.resolve()
    assert existing.read_bytes() == b"already here"


def test_locate_raises_with_full_trail_when_nothing_exists(empty_locator):
    with pytest.raises(NotFoundError) as excinfo:
        empty_locator.locate()

    trail = excinfo.value.trail
    assert "exe: no match" in trail
    assert "cwd: no match" in trail
    assert any(entry.startswith("repair/recheck") for entry in trail)
    assert excinfo.value.public_message == "Operation failed. See logs."


def test_locate_does_not_probe_the_same_directory_twice(tmp_path):
    exe_dir = tmp_path / "same" / "dir"
    exe_dir.mkdir(parents=True)

    with pytest.raises(NotFoundError) as excinfo:
        ExecutableLocator(exe_dir, exe_dir, max_depth=1).locate()

    assert any(entry.endswith("-> already checked") for entry in excinfo.value.trail)


def test_locate_tool_returns_specific_executable(locator, install_dirs):
    path, result = locator.locate_tool("ffmpeg")
    assert path.parent == result.directory
    assert path.name.startswith("ffmpeg")


def test_locate_tool_fails_when_directory_lacks_that_tool(install_dirs, make_tools, empty_locator):
    make_tools(install_dirs["exe_dir"] / "binaries", names=("ffprobe",))

    with pytest.raises(NotFoundError) as excinfo:
        empty_locator.locate_tool("ffmpeg")

    assert excinfo.value.trail[-1].startswith("tool: ffmpeg not found among")


def test_target_triple_normalizes_architecture_names():
    assert target_triple("AMD64", "win32") == "x86_64-pc-windows-msvc"
    assert target_triple("arm64", "darwin") == "aarch64-apple-darwin"
    assert target_triple("x86_64", "linux") == "x86_64-unknown-linux-gnu"


def test_binary_candidate_names_for_windows():
    candidate = BinaryCandidate.for_platform("ffmpeg", "transcoder", "AMD64", "win32")
    assert candidate.filenames == ("ffmpeg.exe", "ffmpeg-x86_64-pc-windows-msvc.exe")
