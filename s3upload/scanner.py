"""
Module for resolving source paths and enumerating the files to upload.
"""
import logging
import os
from pathlib import Path, PurePath
from typing import Iterator, List, Union

from .models import TransferItem

logger = logging.getLogger(__name__)


class Workspace:
    """Resolves relative source paths against a working-directory root.

    All file system access done while preparing an upload goes through this
    class, so an alternative implementation can serve files that do not live
    on the local disk.
    """

    def __init__(self, root: Union[str, Path, None] = None):
        self.root = Path(root) if root is not None else Path.cwd()

    def resolve(self, path: Union[str, Path]) -> Path:
        """Map a source path to an absolute path under the workspace root."""
        return (self.root / path).absolute()

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def iter_files(self, directory: Path) -> Iterator[Path]:
        """Yield every regular file beneath a directory, at any depth.

        Symlinked directories are followed; each real directory is entered once.
        """
        visited = {os.path.realpath(directory)}
        for root, dirs, files in os.walk(directory, followlinks=True):
            kept = []
            for name in sorted(dirs):
                real = os.path.realpath(os.path.join(root, name))
                if real in visited:
                    logger.warning(f"Skipping already visited directory: {Path(root) / name}")
                    continue
                visited.add(real)
                kept.append(name)
            dirs[:] = kept
            for name in sorted(files):
                path = Path(root) / name
                if path.is_file():
                    yield path

    def to_uri(self, path: Path) -> str:
        return path.as_uri()


def join_key(key_prefix: str, relative_path: PurePath) -> str:
    """Join a key prefix and a relative path with forward slashes."""
    prefix = key_prefix if key_prefix.endswith("/") else key_prefix + "/"
    return prefix + relative_path.as_posix()


class FileScanner:
    """Turns a resolved source path into the transfer items to upload."""

    def __init__(self, workspace: Workspace):
        """Initialize the file scanner.

        Args:
            workspace: Resolver used for every file system check
        """
        self.workspace = workspace

    def scan(self, source: Path, bucket: str, key_prefix: str) -> List[TransferItem]:
        """Enumerate the transfer items for a file or directory source.

        Args:
            source: Resolved source path
            bucket: Destination bucket
            key_prefix: Remote key for a file, or key prefix for a directory

        Returns:
            List of pending transfer items
        """
        if self.workspace.is_file(source):
            return [TransferItem(item_id=0, local_path=source, bucket=bucket, remote_key=key_prefix)]

        if self.workspace.is_dir(source):
            return [
                TransferItem(
                    item_id=item_id,
                    local_path=path,
                    bucket=bucket,
                    remote_key=join_key(key_prefix, self.get_relative_path(path, source))
                )
                for item_id, path in enumerate(self.workspace.iter_files(source))
            ]

        logger.warning(f"Source is neither a file nor a directory: {source}")
        return []

    def get_relative_path(self, file_path: Path, base_path: Path) -> Path:
        """Get the relative path of a file from a base path.

        Args:
            file_path: Path to the file
            base_path: Base path to make relative to

        Returns:
            Relative path from base_path to file_path
        """
        return file_path.relative_to(base_path)
