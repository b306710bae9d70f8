"""
Module for coordinating the upload of a file or directory tree.
"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Mapping, Optional

from .config import UploadConfig
from .errors import InvalidArgumentError, SourceNotFoundError, TransferCancelledError
from .models import TransferItem, UploadOutcome, UploadRequest
from .scanner import FileScanner, Workspace
from .tracker import UploadTracker
from .transport import CancellationToken, S3Transport, Transport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[Mapping[str, str]], Transport]


class UploadCoordinator:
    """Uploads a file or directory tree and aggregates per-file results."""

    def __init__(self, workspace: Optional[Workspace] = None,
                 transport_factory: Optional[TransportFactory] = None,
                 env: Optional[Mapping[str, str]] = None,
                 config: Optional[UploadConfig] = None):
        """Initialize the upload coordinator.

        Args:
            workspace: Resolver for source paths, defaults to the current directory
            transport_factory: Builds a transport for each request from ``env``
            env: Environment passed through to the transport factory
            config: Client configuration
        """
        self.workspace = workspace or Workspace()
        self.config = config or UploadConfig()
        self.env = dict(env) if env is not None else {}
        self.scanner = FileScanner(self.workspace)
        self._transport_factory = transport_factory or self._create_s3_transport
        self._executor = ThreadPoolExecutor(thread_name_prefix="s3Upload")

    def _create_s3_transport(self, env: Mapping[str, str]) -> Transport:
        return S3Transport(env, config=self.config)

    @staticmethod
    def _validate(request: UploadRequest) -> None:
        if not request.bucket:
            raise InvalidArgumentError("Bucket must not be null or empty")
        if not request.key_prefix:
            raise InvalidArgumentError("Path must not be null or empty")

    def submit(self, request: UploadRequest,
               cancel_token: Optional[CancellationToken] = None) -> "Future[UploadOutcome]":
        """Start an upload in the background.

        Args:
            request: Upload request details
            cancel_token: Optional token to abort pending and in-flight transfers

        Returns:
            Future resolved with the UploadOutcome once every transfer is
            terminal. It fails with SourceNotFoundError when the source is missing.

        Raises:
            InvalidArgumentError: If the bucket or key prefix is empty
        """
        self._validate(request)
        return self._executor.submit(self._run, request, cancel_token)

    def upload(self, request: UploadRequest,
               cancel_token: Optional[CancellationToken] = None) -> UploadOutcome:
        """Upload and wait, raising the first error if any transfer failed."""
        outcome = self.submit(request, cancel_token).result()
        outcome.raise_for_error()
        return outcome

    def _run(self, request: UploadRequest,
             cancel_token: Optional[CancellationToken]) -> UploadOutcome:
        source = self.workspace.resolve(request.source_path)
        source_uri = self.workspace.to_uri(source)
        logger.info(f"Uploading {source_uri} to s3://{request.bucket}/{request.key_prefix}")

        if not self.workspace.exists(source):
            logger.error("Upload failed due to missing source file")
            raise SourceNotFoundError(source_uri)

        items = self.scanner.scan(source, request.bucket, request.key_prefix)
        tracker = UploadTracker(items, log_dir=self.config.log_dir)

        with self._transport_factory(self.env) as transport:
            for item in items:
                self._start_transfer(transport, tracker, item, cancel_token)
            tracker.wait()

        outcome = tracker.outcome()
        tracker.log_upload_summary(outcome)
        if outcome.success:
            logger.info("Upload complete")
        else:
            logger.error(f"Upload failed: {outcome.first_error}")
        return outcome

    def _start_transfer(self, transport: Transport, tracker: UploadTracker,
                        item: TransferItem,
                        cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            tracker.mark_complete(item, TransferCancelledError("Upload cancelled"))
            return

        item.mark_in_flight()
        try:
            future = transport.upload_file(item.local_path, item.bucket, item.remote_key,
                                           cancel_token)
        except Exception as e:
            logger.error(f"Transport rejected {item.local_path}: {e}")
            tracker.mark_complete(item, e)
            return

        if cancel_token is not None:
            cancel_token.register(future.cancel)
        future.add_done_callback(partial(self._on_transfer_done, tracker, item))

    @staticmethod
    def _on_transfer_done(tracker: UploadTracker, item: TransferItem, future: Future) -> None:
        """Completion callback, bound to one item; may run on any transport thread."""
        if future.cancelled():
            error = TransferCancelledError("Upload cancelled")
        else:
            error = future.exception()

        tracker.mark_complete(item, error)
        if error is None:
            logger.info(f"Finished: {item.description}")
        else:
            logger.warning(f"Failed: {item.description}: {error}")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "UploadCoordinator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
