"""Custom exceptions for ChatRewind."""

from typing import Optional


class RewindError(Exception):
    """Base class for terminal errors while reading an export."""


class UnsupportedFileType(RewindError):
    """Raised when an upload is neither a ZIP archive nor a JSON document."""

    def __init__(self, filename: Optional[str]):
        self.filename = filename
        super().__init__(f"Unsupported file type: {filename or 'unknown'}")


class ArchiveTargetNotFound(RewindError):
    """Raised when an archive was read fully without a matching entry."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"{target} not found in archive")


class ArchiveCorrupt(RewindError):
    """Raised when an archive cannot be decoded."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Archive is corrupt: {reason}")


class MalformedDocument(RewindError):
    """Raised when the conversations document is structurally broken."""

    def __init__(self, reason: str, offset: Optional[int] = None):
        self.reason = reason
        self.offset = offset
        message = f"Malformed document: {reason}"
        if offset is not None:
            message += f" (near byte {offset})"
        super().__init__(message)
