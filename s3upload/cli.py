"""
Command-line interface for the upload client.
"""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from botocore.exceptions import BotoCoreError

from .config import load_config
from .coordinator import UploadCoordinator
from .errors import UploadError
from .models import UploadRequest
from .scanner import Workspace

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: Whether to enable debug logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_coordinator(args: argparse.Namespace) -> UploadCoordinator:
    """Create and configure the upload coordinator.

    Args:
        args: Command line arguments

    Returns:
        Configured UploadCoordinator instance
    """
    config = load_config(args.config)
    return UploadCoordinator(
        workspace=Workspace(args.workspace),
        env=os.environ,
        config=config
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Copy a file or directory to S3")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Enable verbose logging")
    parser.add_argument('-c', '--config', type=Path,
                        help="Path to config file")
    parser.add_argument('-w', '--workspace', type=Path,
                        help="Directory the source path is relative to")
    parser.add_argument('file', type=str,
                        help="File or directory to upload")
    parser.add_argument('bucket', type=str,
                        help="Destination S3 bucket")
    parser.add_argument('path', type=str,
                        help="Destination key, or key prefix for a directory")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    request = UploadRequest(source_path=args.file, bucket=args.bucket, key_prefix=args.path)

    try:
        with create_coordinator(args) as coordinator:
            outcome = coordinator.upload(request)
    except (UploadError, ValueError, OSError, BotoCoreError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    logger.info(f"Uploaded {outcome.succeeded_count} file(s)")


if __name__ == '__main__':
    main()
