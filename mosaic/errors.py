"""Error types raised by the launcher core."""

from typing import Optional


class LauncherError(Exception):
    """Base class for every error raised by the launcher core.

    ``hint`` is an optional remediation message meant for the end user.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        message = super().__str__()
        if self.hint:
            return f"{message}\n{self.hint}"
        return message


class NetworkError(LauncherError):
    """Transport failure or unexpected HTTP status, retryable by the caller."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None,
                 hint: Optional[str] = None):
        super().__init__(message, hint or "Check your internet connection and try again.")
        self.url = url
        self.status = status


class HashMismatch(LauncherError):
    """A downloaded file did not match its expected digest. The file was removed."""

    def __init__(self, path, expected: str, actual: str):
        super().__init__(f"Hash mismatch for {path}: expected {expected}, got {actual}",
                         "The download was corrupted, retrying usually fixes it.")
        self.path = path
        self.expected = expected
        self.actual = actual


class UnsupportedHashLength(LauncherError):
    """The expected digest is neither a SHA-1 nor a SHA-256 hex string."""

    def __init__(self, expected: str):
        super().__init__(f"Unsupported hash length {len(expected)} for digest {expected!r}")
        self.expected = expected


class MissingCatalogEntry(LauncherError):
    """A version or loader version is unknown to the catalog."""


class InvalidCatalogData(LauncherError):
    """A remote document could not be parsed into the expected schema."""


class InvalidArchive(LauncherError):
    """An archive is corrupted or is not an archive at all."""

    def __init__(self, path, reason: str):
        super().__init__(f"Invalid archive {path}: {reason}")
        self.path = path
        self.reason = reason


class ProcessLaunchFailure(LauncherError):
    """A process could not be spawned or exited with a non-zero status."""

    def __init__(self, message: str, exit_status: Optional[int] = None, hint: Optional[str] = None):
        super().__init__(message, hint)
        self.exit_status = exit_status


class SandboxRestricted(ProcessLaunchFailure):
    """The operating system refused to spawn the process because of isolation rules."""


class ModLoaderInstallError(LauncherError):
    """The mod loader installer could not be acquired."""


class OperationCancelled(LauncherError):
    """The operation was cancelled through its cancellation token."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)
