"""
Module containing data models for the upload client.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class UploadRequest:
    """Represents an upload request.

    ``source_path`` is resolved against the workspace root. Empty buckets and
    key prefixes are rejected by the coordinator when the request is submitted.
    """
    source_path: str
    bucket: str
    key_prefix: str


class TransferState(Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferState.COMPLETED, TransferState.FAILED)


@dataclass
class TransferItem:
    """One file's unit of work within an upload request."""
    item_id: int
    local_path: Path
    bucket: str
    remote_key: str
    state: TransferState = TransferState.PENDING
    error: Optional[BaseException] = None

    @property
    def description(self) -> str:
        return f"Uploading to {self.bucket}/{self.remote_key}"

    def mark_in_flight(self) -> None:
        if self.state is not TransferState.PENDING:
            raise RuntimeError(f"Item {self.item_id} is already {self.state.value}")
        self.state = TransferState.IN_FLIGHT

    def mark_terminal(self, error: Optional[BaseException] = None) -> None:
        """Move the item to COMPLETED, or FAILED when an error is given."""
        if self.state.is_terminal:
            raise RuntimeError(f"Item {self.item_id} is already {self.state.value}")
        self.error = error
        self.state = TransferState.FAILED if error is not None else TransferState.COMPLETED


@dataclass
class ItemResult:
    """Represents the result of a single file upload."""
    local_path: Path
    remote_key: str
    success: bool
    error: Optional[BaseException] = None

    @classmethod
    def from_item(cls, item: TransferItem) -> "ItemResult":
        return cls(
            local_path=item.local_path,
            remote_key=item.remote_key,
            success=item.state is TransferState.COMPLETED,
            error=item.error
        )


@dataclass
class UploadOutcome:
    """Aggregated outcome of an upload request once every item is terminal."""
    succeeded_count: int
    first_error: Optional[BaseException] = None
    results: List[ItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success(self) -> bool:
        return self.first_error is None

    def raise_for_error(self) -> None:
        if self.first_error is not None:
            raise self.first_error
