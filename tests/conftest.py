"""
Test fixtures for the upload client.
"""
import threading
from concurrent.futures import ThreadPoolExecutor

import boto3
import pytest
from moto import mock_aws as moto_mock_aws

from s3upload.config import UploadConfig
from s3upload.coordinator import UploadCoordinator
from s3upload.scanner import Workspace
from s3upload.transport import S3Transport

AWS_ENV = {
    'AWS_ACCESS_KEY_ID': 'testing',
    'AWS_SECRET_ACCESS_KEY': 'testing',
    'AWS_SESSION_TOKEN': 'testing',
    'AWS_DEFAULT_REGION': 'us-east-1',
}


class FakeTransport:
    """In-memory transport that fails the keys listed in ``failures``."""

    def __init__(self, failures=None, max_workers=4):
        self.failures = failures or {}
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def _upload(self, local_path, bucket, remote_key):
        if remote_key in self.failures:
            raise self.failures[remote_key]

    def upload_file(self, local_path, bucket, remote_key, cancel_token=None):
        with self._lock:
            self.calls.append((local_path, bucket, remote_key))
        return self._executor.submit(self._upload, local_path, bucket, remote_key)

    @property
    def remote_keys(self):
        return sorted(key for _, _, key in self.calls)

    def close(self):
        self._executor.shutdown(wait=True)
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


@pytest.fixture
def fake_transport_cls():
    return FakeTransport


@pytest.fixture
def tmp_upload_dir(tmp_path):
    """Create a temporary workspace directory."""
    upload_dir = tmp_path / "workspace"
    upload_dir.mkdir()
    return upload_dir


@pytest.fixture
def source_tree(tmp_upload_dir):
    """Create a directory with nested files inside the workspace."""
    test_files = {
        "dir/x.txt": "content x",
        "dir/sub/y.txt": "content y",
    }

    for rel_path, content in test_files.items():
        file_path = tmp_upload_dir / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)

    return tmp_upload_dir / "dir"


@pytest.fixture
def workspace(tmp_upload_dir):
    return Workspace(tmp_upload_dir)


@pytest.fixture
def fast_config():
    """Config without backoff delays."""
    return UploadConfig(max_workers=4, retry_min_wait=0, retry_max_wait=0)


@pytest.fixture
def transports():
    """Transports built by the coordinator, in creation order."""
    return []


@pytest.fixture
def make_coordinator(workspace, fast_config, transports):
    """Build coordinators backed by FakeTransport."""
    coordinators = []

    def factory(failures=None):
        def transport_factory(env):
            transport = FakeTransport(failures)
            transports.append(transport)
            return transport

        coordinator = UploadCoordinator(
            workspace=workspace,
            transport_factory=transport_factory,
            config=fast_config
        )
        coordinators.append(coordinator)
        return coordinator

    yield factory

    for coordinator in coordinators:
        coordinator.close()


@pytest.fixture
def aws_env(monkeypatch):
    """Fake credentials, also exported to the process environment."""
    for key, value in AWS_ENV.items():
        monkeypatch.setenv(key, value)
    return dict(AWS_ENV)


@pytest.fixture
def mock_aws(aws_env):
    """Mock S3 client using moto."""
    with moto_mock_aws():
        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket='test-bucket')
        yield s3


@pytest.fixture
def s3_transport(mock_aws, aws_env, fast_config):
    """Create a test S3 transport."""
    with S3Transport(aws_env, config=fast_config) as transport:
        yield transport
