"""Errors raised by the release engine.

Every error derives from BumpwrightError so callers can catch the whole
family at once. NoChangesError is kept separate from true failures so a
caller can treat "nothing to release" as a no-op.
"""

from __future__ import annotations

from pathlib import Path, PurePath


class BumpwrightError(Exception):
    """Base class for every error raised by bumpwright."""


class ValidationError(BumpwrightError):
    """Raised when configuration, a package definition or a change is malformed."""


class VersionParseError(ValidationError, ValueError):
    """Raised when a string is not a valid semantic version."""

    def __init__(self, value: str, reason: str = "") -> None:
        self.value = value
        message = f"Invalid semantic version: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ChangeFileError(ValidationError):
    """Raised when a change file cannot be parsed."""

    def __init__(self, path: PurePath | str, reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"Malformed change file {self.path}: {reason}")


class VersionConflictError(BumpwrightError):
    """Raised when versions disagree or a version change is not allowed."""


class GitHistoryError(BumpwrightError):
    """Raised when git history cannot be read."""


class NoChangesError(BumpwrightError):
    """Raised when a package has nothing to release."""

    def __init__(self, package: str | None = None) -> None:
        self.package = package
        name = f" for package {package}" if package else ""
        super().__init__(f"No changes to release{name}")


class FileAccessError(BumpwrightError):
    """Raised when a file is missing, unreadable or unwritable."""

    def __init__(self, path: PurePath | str, reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"{self.path}: {reason}")
