"""
Defines custom exceptions for the backend to allow for more specific error handling.

Every exception carries an `ErrorKind` tag and a detail string. The detail is for
logs and diagnostic trails; only `public_message` may cross the UI boundary.
"""

from enum import Enum

GENERIC_FAILURE = "Operation failed. See logs."
INVALID_PATH = "Invalid path."
EXPORT_FAILED = "Export failed. See logs."


class ErrorKind(str, Enum):
    """Tagged error categories reported back to the UI layer."""

    PATH_SECURITY = "path_security"
    VALIDATION = "validation"
    IO = "io"
    NOT_FOUND = "not_found"
    PROCESS_SPAWN = "process_spawn"
    PROCESS_EXIT = "process_exit"
    CONFIGURATION = "configuration"


class AudioDockError(Exception):
    """Base exception for all application-specific errors."""

    kind: ErrorKind = ErrorKind.IO
    default_public_message: str = GENERIC_FAILURE

    def __init__(self, detail: str, public_message: str | None = None):
        super().__init__(detail)
        self.detail = detail
        self._public_message = public_message

    @property
    def public_message(self) -> str:
        """The message that is safe to show outside the backend."""
        return self._public_message or self.default_public_message


class PathSecurityError(AudioDockError):
    """Raised when a path resolves outside of its sandbox root."""

    kind = ErrorKind.PATH_SECURITY
    default_public_message = INVALID_PATH


class ValidationError(AudioDockError):
    """
    Raised when an identifier fails its restricted charset check.

    The reason reveals no internal state, so it is passed through as-is.
    """

    kind = ErrorKind.VALIDATION

    @property
    def public_message(self) -> str:
        return self._public_message or self.detail


class StorageError(AudioDockError):
    """Raised when a filesystem create/read/write/canonicalize operation fails."""

    kind = ErrorKind.IO


class NotFoundError(AudioDockError):
    """
    Raised when a required resource cannot be found.

    For binary lookups the full diagnostic trail is attached.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        detail: str,
        public_message: str | None = None,
        trail: tuple[str, ...] = (),
    ):
        super().__init__(detail, public_message)
        self.trail = tuple(trail)


class ProcessSpawnError(AudioDockError):
    """Raised when an external process could not be started."""

    kind = ErrorKind.PROCESS_SPAWN


class ProcessExitError(AudioDockError):
    """Raised when an external process exits with a nonzero code."""

    kind = ErrorKind.PROCESS_EXIT

    def __init__(self, detail: str, exit_code: int, public_message: str | None = None):
        super().__init__(detail, public_message)
        self.exit_code = exit_code


class ConfigurationError(AudioDockError):
    """Raised for issues related to saving the settings document."""

    kind = ErrorKind.CONFIGURATION
