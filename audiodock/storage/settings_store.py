"""
Manages loading, validation, and atomic saving of the JSON settings document.
"""

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from audiodock.exceptions import ConfigurationError, StorageError
from audiodock.models.settings import Settings
from audiodock.utils.path import validate_writable_dir

log = logging.getLogger(__name__)


class SettingsStore:
    """
    Handles all operations related to the settings document.

    There is no in-memory cache: every `load` re-reads the file, and every
    `save` rewrites the whole document through a temporary file and
    `os.replace`.
    """

    def __init__(self, settings_file_path: Path):
        self.settings_file_path = Path(settings_file_path)
        self._lock = threading.Lock()

    def load(self) -> Settings:
        """
        Loads the settings document.

        Returns:
            A validated Settings object. A missing document yields the defaults;
            an unreadable or invalid one is logged and also yields the defaults.
        """
        if not self.settings_file_path.is_file():
            return Settings()

        try:
            with open(self.settings_file_path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            log.warning(f"Could not read settings at '{self.settings_file_path}': {e}")
            return Settings()

        if not isinstance(payload, dict):
            log.warning(
                f"Settings at '{self.settings_file_path}' is not a JSON object, "
                "ignoring it."
            )
            return Settings()

        try:
            return Settings(**payload)
        except ValidationError as e:
            log.warning(f"Settings validation failed, using defaults:\n{e}")
            return Settings()

    def save(self, settings: Settings) -> None:
        """
        Writes the whole document atomically.

        Raises:
            ConfigurationError: If the document cannot be written.
        """
        folder = self.settings_file_path.parent
        try:
            validate_writable_dir(folder)
        except StorageError as e:
            raise ConfigurationError(
                f"Settings folder is not writable: {e.detail}"
            ) from e

        payload = settings.model_dump(exclude_none=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.settings_file_path.name}.", suffix=".tmp", dir=folder
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.settings_file_path)
        except OSError as e:
            try:
                os.remove(tmp_name)
            except OSError:
                log.debug(f"Could not remove temporary settings file '{tmp_name}'.")
            raise ConfigurationError(f"Failed to save settings: {e}") from e
        log.debug(f"Saved settings to '{self.settings_file_path}'.")

    def update(self, mutate: Callable[[Settings], Settings]) -> Settings:
        """
        Read-modify-write of the document, serialized within this process.
        """
        with self._lock:
            updated = mutate(self.load())
            self.save(updated)
            return updated
