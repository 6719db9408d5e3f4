# sandboxfs/errors.py
from __future__ import annotations

from typing import Optional


class FilesystemError(RuntimeError):
    """
    Base class for every failure raised by the sandboxed filesystem.
    Carries the offending path so callers can log without re-deriving context.
    """

    def __init__(self, message: str, *, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class OutOfSandbox(FilesystemError):
    """Raised when a path canonicalizes outside the sandbox root."""


class NotADirectory(FilesystemError):
    """Raised when an operation expects an existing directory."""


class NotFound(FilesystemError):
    """Raised when an operation expects an existing file."""


class AlreadyExists(FilesystemError):
    """Raised when a creation, copy or rename target is already taken."""


class InvalidTarget(FilesystemError):
    """Raised when delete is called on something that is not a file or a link to a file."""


class InvalidArgument(FilesystemError, ValueError):
    """Raised when a caller supplied argument violates a precondition."""


class MoveNotSupported(FilesystemError):
    """Raised when rename is asked to move an entry into another directory."""


class WriteFailed(FilesystemError):
    """Raised when writing file content fails."""


class IOFailure(FilesystemError):
    """Raised when a copy, link, chmod, rename or archive call fails."""
