import json
import logging
import sys

import pytest

from audiodock.core.app_paths import get_app_root, settings_path
from audiodock.core.provisioner import DirectoryProvisioner
from audiodock.exceptions import StorageError, ValidationError
from audiodock.models.settings import RootKind, Settings
from audiodock.storage.settings_store import SettingsStore


def test_get_app_root_honours_environment_override(monkeypatch, tmp_path):
    monkeypatch.setenv("AUDIODOCK_HOME", str(tmp_path / "custom"))
    assert get_app_root() == tmp_path / "custom"


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="XDG layout")
def test_get_app_root_uses_xdg_data_home_on_linux(monkeypatch, tmp_path):
    monkeypatch.delenv("AUDIODOCK_HOME", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    assert get_app_root() == tmp_path / "data" / "audiodock"


@pytest.mark.parametrize(
    "kind,dirname",
    [
        (RootKind.DOWNLOAD, "downloads"),
        (RootKind.EXPORT, "exports"),
        (RootKind.TEMP, "temp"),
        (RootKind.LOGS, "logs"),
    ],
)
def test_resolve_defaults_live_under_app_root(provisioner, app_root, kind, dirname):
    resolved = provisioner.resolve(kind)
    assert resolved == (app_root / dirname).resolve()
    assert resolved.is_dir()


def test_resolve_recreates_a_deleted_root(provisioner):
    first = provisioner.resolve(RootKind.TEMP)
    first.rmdir()
    assert provisioner.resolve(RootKind.TEMP) == first
    assert first.is_dir()


def test_set_override_persists_across_store_instances(provisioner, app_root, tmp_path):
    target = tmp_path / "music"
    assert provisioner.set_override(RootKind.DOWNLOAD, str(target)) == target.resolve()

    reloaded = DirectoryProvisioner(app_root, SettingsStore(settings_path(app_root)))
    assert reloaded.resolve(RootKind.DOWNLOAD) == target.resolve()


def test_relative_override_is_interpreted_against_app_root(provisioner, app_root):
    resolved = provisioner.set_override(RootKind.EXPORT, "my-exports")
    assert resolved == (app_root / "my-exports").resolve()


def test_unwritable_override_is_never_persisted(provisioner, store, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(StorageError):
        provisioner.set_override(RootKind.DOWNLOAD, str(blocker))

    assert store.load().download_dir is None


def test_blank_override_restores_the_default(provisioner, store, app_root, tmp_path):
    provisioner.set_override(RootKind.EXPORT, str(tmp_path / "elsewhere"))

    resolved = provisioner.set_override(RootKind.EXPORT, "   ")

    assert resolved == (app_root / "exports").resolve()
    assert store.load().export_dir is None


def test_describe_reports_unavailable_roots(provisioner, app_root, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    app_root.mkdir(parents=True)
    settings_path(app_root).write_text(
        json.dumps({"temp_dir": str(blocker)}), encoding="utf-8"
    )

    report = provisioner.describe()

    assert report["app_root"] == str(app_root)
    assert report["temp"].startswith("UNAVAILABLE")
    assert report["download"] == str((app_root / "downloads").resolve())


def test_store_ignores_unknown_keys_and_blank_values(store, app_root):
    app_root.mkdir(parents=True)
    settings_path(app_root).write_text(
        json.dumps({"download_dir": "  ", "export_dir": "/x", "theme": "dark"}),
        encoding="utf-8",
    )

    settings = store.load()

    assert settings.download_dir is None
    assert settings.export_dir == "/x"


def test_store_falls_back_to_defaults_on_malformed_document(store, app_root, caplog):
    app_root.mkdir(parents=True)
    settings_path(app_root).write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="audiodock"):
        assert store.load() == Settings()

    assert "Could not read settings" in caplog.text


def test_store_falls_back_when_document_is_not_an_object(store, app_root):
    app_root.mkdir(parents=True)
    settings_path(app_root).write_text("[1, 2]", encoding="utf-8")
    assert store.load() == Settings()


def test_store_save_replaces_whole_document_without_leftovers(store, app_root):
    store.save(Settings(download_dir="/a", logs_dir="/b"))
    store.save(Settings(export_dir="/c"))

    assert json.loads(settings_path(app_root).read_text(encoding="utf-8")) == {
        "export_dir": "/c"
    }
    assert [p.name for p in app_root.iterdir()] == ["settings.json"]


def test_store_update_applies_mutation(store):
    store.update(lambda s: s.with_override(RootKind.TEMP, "/scratch"))
    store.update(lambda s: s.with_override(RootKind.LOGS, "/logs"))

    settings = store.load()
    assert settings.get_override(RootKind.TEMP) == "/scratch"
    assert settings.get_override(RootKind.LOGS) == "/logs"


def test_override_with_nul_is_rejected_before_touching_disk(provisioner, store):
    with pytest.raises(ValidationError):
        provisioner.interpret("a\x00b")
    with pytest.raises(ValidationError):
        provisioner.set_override(RootKind.DOWNLOAD, "a\x00b")

    assert store.load().download_dir is None
