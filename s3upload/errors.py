"""
Exceptions raised by the upload client.
"""
from typing import Optional


class UploadError(Exception):
    """Base class for all upload errors."""


class InvalidArgumentError(UploadError, ValueError):
    """Raised when a request is missing its bucket or key prefix."""


class SourceNotFoundError(UploadError, FileNotFoundError):
    """Raised when the source path does not exist in the workspace."""

    def __init__(self, source: str):
        super().__init__(source)
        self.source = source

    def __str__(self) -> str:
        return self.source


class TransferCancelledError(UploadError):
    """Raised inside a transport when the caller cancelled the upload."""


class TransferFailedError(UploadError):
    """Wraps the error a transport reported for a single file."""

    def __init__(self, item, cause: Optional[BaseException] = None):
        self.item = item
        self.cause = cause
        self.__cause__ = cause
        message = f"Failed to upload {item.local_path} to {item.bucket}/{item.remote_key}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
