from .config import UploadConfig, load_config
from .coordinator import UploadCoordinator
from .errors import (
    InvalidArgumentError,
    SourceNotFoundError,
    TransferCancelledError,
    TransferFailedError,
    UploadError,
)
from .models import ItemResult, TransferItem, TransferState, UploadOutcome, UploadRequest
from .scanner import FileScanner, Workspace
from .tracker import UploadTracker
from .transport import CancellationToken, S3Transport, Transport

__version__ = "0.1.0"

__all__ = [
    "UploadCoordinator",
    "UploadRequest",
    "UploadOutcome",
    "ItemResult",
    "TransferItem",
    "TransferState",
    "UploadConfig",
    "load_config",
    "FileScanner",
    "Workspace",
    "UploadTracker",
    "CancellationToken",
    "S3Transport",
    "Transport",
    "UploadError",
    "InvalidArgumentError",
    "SourceNotFoundError",
    "TransferFailedError",
    "TransferCancelledError",
]
