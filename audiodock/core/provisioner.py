"""
Resolves the four logical runtime roots (download, export, temp, logs).
"""

import logging
from pathlib import Path

from audiodock.exceptions import AudioDockError, ValidationError
from audiodock.models.settings import RootKind, Settings
from audiodock.storage.settings_store import SettingsStore
from audiodock.utils.path import validate_writable_dir

log = logging.getLogger(__name__)


class DirectoryProvisioner:
    """
    Resolves each root from its persisted override or its computed default,
    and always proves the result writable before returning it.

    Nothing is cached: settings are re-read and the directory is re-validated
    on every call.
    """

    def __init__(self, app_root: Path, store: SettingsStore):
        self.app_root = Path(app_root).expanduser()
        self.store = store

    def ensure_app_root(self) -> Path:
        """Creates AppRoot if needed and proves it writable."""
        return validate_writable_dir(self.app_root)

    def default_for(self, kind: RootKind) -> Path:
        return self.app_root / kind.default_dirname

    def interpret(self, raw: str) -> Path:
        """
        An override is absolute, '~'-relative, or relative to AppRoot.

        Raises:
            ValidationError: If the value contains a NUL character.
        """
        if "\x00" in raw:
            raise ValidationError("Path overrides cannot contain NUL characters.")
        path = Path(raw.strip()).expanduser()
        if not path.is_absolute():
            path = self.app_root / path
        return path

    def candidate_for(self, kind: RootKind, settings: Settings | None = None) -> Path:
        settings = settings if settings is not None else self.store.load()
        override = settings.get_override(kind)
        if override:
            return self.interpret(override)
        return self.default_for(kind)

    def resolve(self, kind: RootKind) -> Path:
        """
        Returns the canonical, writable directory for *kind*.

        Raises:
            StorageError: If the directory cannot be created or written.
        """
        self.ensure_app_root()
        path = validate_writable_dir(self.candidate_for(kind))
        log.debug(f"Resolved {kind.value} root to '{path}'.")
        return path

    def set_override(self, kind: RootKind, value: str | None) -> Path:
        """
        Validates a new override and persists it only once it has proven
        writable. A blank value clears the override; the default it falls back
        to is validated as well.

        Returns:
            The directory that is now in effect.
        """
        self.ensure_app_root()
        raw = (value or "").strip()
        if raw:
            resolved = validate_writable_dir(self.interpret(raw))
            stored: str | None = str(resolved)
        else:
            resolved = validate_writable_dir(self.default_for(kind))
            stored = None

        self.store.update(lambda s: s.with_override(kind, stored))
        log.info(
            f"{kind.value.capitalize()} root "
            f"{'set to' if stored else 'reset to default'} '{resolved}'."
        )
        return resolved

    def describe(self) -> dict[str, str]:
        """Every root, or the reason it failed to resolve, for diagnostics."""
        report: dict[str, str] = {"app_root": str(self.app_root)}
        for kind in RootKind:
            try:
                report[kind.value] = str(self.resolve(kind))
            except AudioDockError as e:
                report[kind.value] = f"UNAVAILABLE ({e.detail})"
        return report
