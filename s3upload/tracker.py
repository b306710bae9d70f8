"""
Module for tracking the transfer items of one upload request.
"""
import json
import logging
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .errors import TransferFailedError
from .models import ItemResult, TransferItem, UploadOutcome

logger = logging.getLogger(__name__)


class UploadTracker:
    """Collects terminal states of transfer items as callbacks race in.

    A tracker belongs to exactly one upload request.
    """

    def __init__(self, items: List[TransferItem], log_dir: Optional[Path] = None):
        """Initialize the upload tracker.

        Args:
            items: Transfer items of the request
            log_dir: Directory to write a JSON summary to. If None, logs only.
        """
        self.request_id = uuid.uuid4().hex
        self.log_dir = log_dir
        self._items: Dict[int, TransferItem] = {item.item_id: item for item in items}
        self._pending = len(self._items)
        self._succeeded = 0
        self._first_error: Optional[BaseException] = None
        self._lock = threading.Lock()
        self._done = threading.Event()
        if self._pending == 0:
            self._done.set()

    @property
    def items(self) -> List[TransferItem]:
        return list(self._items.values())

    def mark_complete(self, item: TransferItem, error: Optional[BaseException] = None) -> None:
        """Record the terminal state of an item.

        Args:
            item: The item the transport finished
            error: Error the transport reported, None on success
        """
        with self._lock:
            if self._items.get(item.item_id) is not item:
                raise KeyError(f"Item {item.item_id} does not belong to this request")

            if error is not None and not isinstance(error, TransferFailedError):
                error = TransferFailedError(item, error)
            item.mark_terminal(error)

            if error is None:
                self._succeeded += 1
            elif self._first_error is None:
                self._first_error = error

            self._pending -= 1
            if self._pending == 0:
                self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every item is terminal."""
        return self._done.wait(timeout)

    def outcome(self) -> UploadOutcome:
        """Build the aggregated outcome. Only valid once every item is terminal."""
        with self._lock:
            if self._pending:
                raise RuntimeError(f"{self._pending} transfers are still pending")
            return UploadOutcome(
                succeeded_count=self._succeeded,
                first_error=self._first_error,
                results=[ItemResult.from_item(item) for item in self._items.values()]
            )

    def _get_log_path(self) -> Optional[Path]:
        if not self.log_dir:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.log_dir / f"upload_{self.request_id}_{timestamp}.json"

    def log_upload_summary(self, outcome: UploadOutcome) -> None:
        """Log the summary of a completed upload request.

        Args:
            outcome: Outcome returned by ``outcome()``
        """
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "request_id": self.request_id,
            "total_files": outcome.total,
            "successful_uploads": outcome.succeeded_count,
            "failed_uploads": outcome.failed_count,
            "results": [
                {
                    "local_path": str(r.local_path),
                    "remote_key": r.remote_key,
                    "success": r.success,
                    "error": str(r.error) if r.error else None
                }
                for r in outcome.results
            ]
        }

        if log_path := self._get_log_path():
            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with open(log_path, 'w') as f:
                    json.dump(log_data, f, indent=2)
            except OSError as e:
                logger.error(f"Error writing upload summary to {log_path}: {e}")

        logger.info(
            f"Completed upload {self.request_id}: "
            f"{outcome.succeeded_count}/{outcome.total} files uploaded successfully"
        )
