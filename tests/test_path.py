import os
from pathlib import Path

import pytest

from audiodock.exceptions import INVALID_PATH, PathSecurityError, StorageError, ValidationError
from audiodock.utils.path import (
    ensure_dir_within,
    ensure_new_dir_within,
    ensure_within,
    is_within,
    require_token,
    sanitize_export_name,
    validate_writable_dir,
)

needs_symlinks = pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "root"
    (path / "nested").mkdir(parents=True)
    return path


def test_is_within_accepts_files_directly_in_root_and_below(root):
    assert is_within(root, root / "a.mp3")
    assert is_within(root, root / "nested" / "b.mp3")


def test_is_within_rejects_sibling_directory(tmp_path, root):
    sibling = tmp_path / "rootling"
    sibling.mkdir()
    assert not is_within(root, sibling / "a.mp3")


def test_is_within_raises_when_parent_does_not_exist(root):
    with pytest.raises(StorageError):
        is_within(root, root / "missing" / "a.mp3")


def test_ensure_within_rejects_parent_traversal(tmp_path, root):
    (tmp_path / "outside").mkdir()
    with pytest.raises(PathSecurityError) as excinfo:
        ensure_within([root], str(root / ".." / "outside" / "a.mp3"))
    assert excinfo.value.public_message == INVALID_PATH
    assert str(tmp_path) not in excinfo.value.public_message


def test_ensure_within_accepts_any_of_several_roots(tmp_path, root):
    other = tmp_path / "other"
    other.mkdir()
    resolved = ensure_within([root, other], str(other / "file.bin"))
    assert resolved == other.resolve() / "file.bin"


def test_ensure_within_canonicalizes_dot_segments(root):
    resolved = ensure_within([root], str(root / "nested" / ".." / "a.mp3"))
    assert resolved == root.resolve() / "a.mp3"


@pytest.mark.parametrize("raw", ["", "   ", "bad\x00name"])
def test_ensure_within_rejects_empty_or_malformed(root, raw):
    with pytest.raises(PathSecurityError):
        ensure_within([root], raw)


def test_ensure_within_rejects_paths_that_do_not_name_a_file(root):
    with pytest.raises(PathSecurityError):
        ensure_within([root], str(root / "nested") + os.sep + "..")


def test_ensure_within_with_no_roots_always_fails(root):
    with pytest.raises(PathSecurityError):
        ensure_within([], str(root / "a.mp3"))


@needs_symlinks
def test_ensure_within_rejects_symlinked_directory_escaping_root(tmp_path, root):
    outside = tmp_path / "outside"
    outside.mkdir()
    (root / "escape").symlink_to(outside, target_is_directory=True)
    with pytest.raises(PathSecurityError):
        ensure_within([root], str(root / "escape" / "a.mp3"))


@needs_symlinks
def test_ensure_within_rejects_symlinked_file_escaping_root(tmp_path, root):
    secret = tmp_path / "secret.txt"
    secret.write_text("secret", encoding="utf-8")
    (root / "link.txt").symlink_to(secret)
    with pytest.raises(PathSecurityError):
        ensure_within([root], str(root / "link.txt"))


def test_ensure_dir_within_accepts_nested_directory(root):
    assert ensure_dir_within([root], str(root / "nested")) == (root / "nested").resolve()


def test_ensure_dir_within_rejects_outside_directory(tmp_path, root):
    with pytest.raises(PathSecurityError):
        ensure_dir_within([root], str(tmp_path))


def test_ensure_new_dir_within_allows_missing_components(root):
    target = root / "nested" / "new" / "deeper"

    result = ensure_new_dir_within([root], str(target))

    assert result == (root / "nested").resolve() / "new" / "deeper"
    assert not target.exists()


def test_ensure_new_dir_within_accepts_the_root_itself(root):
    assert ensure_new_dir_within([root], str(root)) == root.resolve()


@pytest.mark.parametrize("raw", ["", "   ", "relative/dir", "out\x00dir"])
def test_ensure_new_dir_within_rejects_malformed_input(root, raw):
    with pytest.raises(PathSecurityError) as excinfo:
        ensure_new_dir_within([root], raw)
    assert excinfo.value.public_message == INVALID_PATH


def test_ensure_new_dir_within_rejects_outside_directory(tmp_path, root):
    with pytest.raises(PathSecurityError):
        ensure_new_dir_within([root], str(tmp_path / "elsewhere" / "new"))
    assert not (tmp_path / "elsewhere").exists()


@pytest.mark.parametrize(
    "suffix", ["../escaped", "missing/../../escaped", "nested/../../escaped"]
)
def test_ensure_new_dir_within_rejects_parent_traversal(root, suffix):
    with pytest.raises(PathSecurityError):
        ensure_new_dir_within([root], f"{root}/{suffix}")


@needs_symlinks
def test_ensure_new_dir_within_rejects_symlink_escaping_root(tmp_path, root):
    outside = tmp_path / "outside"
    outside.mkdir()
    (root / "escape").symlink_to(outside, target_is_directory=True)
    with pytest.raises(PathSecurityError):
        ensure_new_dir_within([root], str(root / "escape" / "new"))


def test_validate_writable_dir_creates_and_leaves_no_probe(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    result = validate_writable_dir(target)
    assert result == target.resolve()
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_validate_writable_dir_fails_on_regular_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(StorageError):
        validate_writable_dir(blocker)


@pytest.mark.parametrize(
    "value,kind",
    [
        ("2024-05-01", "date_folder"),
        ("20240501_101500", "log_stamp"),
        ("1714557000_42", "session_id"),
    ],
)
def test_require_token_accepts_safe_identifiers(value, kind):
    assert require_token(value, kind) == value


@pytest.mark.parametrize(
    "value,kind",
    [
        ("", "date_folder"),
        ("../2024", "date_folder"),
        ("2024_05_01", "date_folder"),
        ("2024-05-01", "session_id"),
        ("abc", "log_stamp"),
        ("1 2", "session_id"),
        ("12\n", "session_id"),
    ],
)
def test_require_token_rejects_other_characters(value, kind):
    with pytest.raises(ValidationError) as excinfo:
        require_token(value, kind)
    assert kind in excinfo.value.public_message


def test_sanitize_export_name_replaces_known_audio_extension():
    assert sanitize_export_name("My Song.wav", "mp3") == "My Song.mp3"


def test_sanitize_export_name_strips_directories_and_bad_characters():
    assert sanitize_export_name("../../evil/bad:name?.mp3", "FLAC") == "badname.flac"


def test_sanitize_export_name_falls_back_when_nothing_is_left():
    assert sanitize_export_name("", "wav") == "export.wav"


def test_sanitize_export_name_rejects_unknown_format():
    with pytest.raises(ValidationError):
        sanitize_export_name("song", "exe")
