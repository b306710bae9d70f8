"""
Module for handing single files to S3 with retry logic.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Protocol

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import ClientError
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_log,
    after_log
)

from .config import UploadConfig
from .errors import TransferCancelledError

logger = logging.getLogger(__name__)

RETRYABLE_ERROR_CODES = {
    'RequestTimeout',
    'RequestTimeoutException',
    'PriorRequestNotComplete',
    'ConnectionError',
    'ThrottlingException',
    'ThrottledException',
    'ServiceUnavailable',
    'SlowDown',
    'Throttling',
    'InternalError',
    '5XX'
}


def is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry.

    Args:
        exception: The exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    if isinstance(exception, S3UploadFailedError):
        # boto3 re-raises the underlying ClientError wrapped
        cause = exception.__cause__ or exception.__context__
        return cause is not None and is_retryable_error(cause)
    if isinstance(exception, ClientError):
        return exception.response.get('Error', {}).get('Code') in RETRYABLE_ERROR_CODES
    return False


class CancellationToken:
    """Lets a caller abort the transfers of an upload request.

    Callbacks registered before or after ``cancel()`` are each run exactly once.
    """

    def __init__(self):
        self._event = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def register(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error running cancellation callback: {e}")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TransferCancelledError("Upload cancelled")


class Transport(Protocol):
    """Uploads single files; used as a context manager for one request."""

    def upload_file(self, local_path: Path, bucket: str, remote_key: str,
                    cancel_token: Optional[CancellationToken] = None) -> "Future[None]":
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "Transport":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...


class _ProgressCallback:
    """boto3 transfer callback that logs progress and aborts on cancellation."""

    def __init__(self, local_path: Path, cancel_token: Optional[CancellationToken]):
        self.local_path = local_path
        self.cancel_token = cancel_token
        self.bytes_transferred = 0
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()
        with self._lock:
            self.bytes_transferred += bytes_amount
        logger.debug(f"{self.local_path}: {self.bytes_transferred} bytes transferred")


def create_session(env: Mapping[str, str]) -> boto3.session.Session:
    """Build a boto3 session from an environment mapping.

    Keys that are absent fall back to boto3's own credential chain.
    """
    return boto3.session.Session(
        aws_access_key_id=env.get('AWS_ACCESS_KEY_ID'),
        aws_secret_access_key=env.get('AWS_SECRET_ACCESS_KEY'),
        aws_session_token=env.get('AWS_SESSION_TOKEN'),
        region_name=env.get('AWS_REGION') or env.get('AWS_DEFAULT_REGION'),
        profile_name=env.get('AWS_PROFILE')
    )


class S3Transport:
    """Uploads files to S3 concurrently, retrying transient failures."""

    def __init__(self, env: Optional[Mapping[str, str]] = None,
                 config: Optional[UploadConfig] = None,
                 s3_client=None):
        """Initialize the S3 transport.

        Args:
            env: Environment mapping the session credentials are read from
            config: Concurrency, multipart and retry settings
            s3_client: Pre-built S3 client, skips session creation
        """
        env = env or {}
        self.config = config or UploadConfig()
        if s3_client is None:
            session = create_session(env)
            s3_client = session.client('s3', endpoint_url=env.get('AWS_ENDPOINT_URL'))
        self.s3_client = s3_client
        self.transfer_config = TransferConfig(
            multipart_threshold=self.config.multipart_threshold,
            multipart_chunksize=self.config.multipart_chunksize,
            max_concurrency=self.config.max_concurrency
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="s3-transport"
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception(is_retryable_error),
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.config.retry_min_wait,
                                  max=self.config.retry_max_wait),
            before=before_log(logger, logging.DEBUG),
            after=after_log(logger, logging.DEBUG),
            reraise=True
        )

    def _upload(self, local_path: Path, bucket: str, remote_key: str,
                cancel_token: Optional[CancellationToken]) -> None:
        """Upload a single file to S3 with retries.

        Multipart chunking above ``multipart_threshold`` is left to boto3's
        managed transfer.
        """
        for attempt in self._retrying():
            with attempt:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                self.s3_client.upload_file(
                    str(local_path),
                    bucket,
                    remote_key,
                    Config=self.transfer_config,
                    Callback=_ProgressCallback(local_path, cancel_token)
                )
        logger.debug(f"Uploaded {local_path} to {bucket}/{remote_key}")

    def upload_file(self, local_path: Path, bucket: str, remote_key: str,
                    cancel_token: Optional[CancellationToken] = None) -> "Future[None]":
        """Schedule a file upload.

        Args:
            local_path: Path to the file to upload
            bucket: S3 bucket name
            remote_key: S3 object key
            cancel_token: Optional token that aborts the upload

        Returns:
            Future resolved when the upload succeeds or fails
        """
        return self._executor.submit(self._upload, local_path, bucket, remote_key, cancel_token)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "S3Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
