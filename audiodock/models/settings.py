"""
Pydantic model for the persisted settings document.
Only optional path overrides live here; everything else is computed.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class RootKind(str, Enum):
    """The logical runtime roots the backend provisions."""

    DOWNLOAD = "download"
    EXPORT = "export"
    TEMP = "temp"
    LOGS = "logs"

    @property
    def setting_key(self) -> str:
        return f"{self.value}_dir"

    @property
    def default_dirname(self) -> str:
        return DEFAULT_DIRNAMES[self]


DEFAULT_DIRNAMES = {
    RootKind.DOWNLOAD: "downloads",
    RootKind.EXPORT: "exports",
    RootKind.TEMP: "temp",
    RootKind.LOGS: "logs",
}


class Settings(BaseModel):
    """A validated settings document holding the optional root overrides."""

    model_config = ConfigDict(
        validate_assignment=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    download_dir: str | None = None
    export_dir: str | None = None
    temp_dir: str | None = None
    logs_dir: str | None = None

    @field_validator("download_dir", "export_dir", "temp_dir", "logs_dir")
    @classmethod
    def blank_is_unset(cls, v: str | None) -> str | None:
        """An empty override means "use the default"."""
        if v is None or not v.strip():
            return None
        if "\x00" in v:
            raise ValueError("Path overrides cannot contain NUL characters.")
        return v

    def get_override(self, kind: RootKind) -> str | None:
        return getattr(self, kind.setting_key)

    def with_override(self, kind: RootKind, value: str | None) -> "Settings":
        """Returns a copy of the document with one override replaced."""
        data = self.model_dump()
        data[kind.setting_key] = value
        return Settings(**data)
