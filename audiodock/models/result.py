"""
The structured response every backend command returns.
"""

from typing import Any

from pydantic import BaseModel

from audiodock.exceptions import AudioDockError, ErrorKind


class CommandResult(BaseModel):
    """Success value or a tagged, non-leaking failure."""

    ok: bool
    value: Any = None
    error_kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> "CommandResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: AudioDockError) -> "CommandResult":
        return cls(ok=False, error_kind=error.kind, message=error.public_message)

    def unwrap(self) -> Any:
        """Returns the value, or raises if the command failed."""
        if not self.ok:
            raise RuntimeError(f"{self.error_kind}: {self.message}")
        return self.value
