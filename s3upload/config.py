"""
Module for loading upload client configuration.
"""
import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass
class UploadConfig:
    """Tunables for the coordinator and the S3 transport."""
    max_workers: int = 5
    multipart_threshold: int = 8 * MB
    multipart_chunksize: int = 8 * MB
    max_concurrency: int = 10
    max_attempts: int = 3
    retry_min_wait: float = 4
    retry_max_wait: float = 10
    log_dir: Optional[Path] = None

    def __post_init__(self):
        """Validate the configuration."""
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.retry_min_wait > self.retry_max_wait:
            raise ValueError("retry_min_wait cannot exceed retry_max_wait")
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir)


def load_config(config_file: Optional[Path] = None) -> UploadConfig:
    """Load configuration from a JSON file.

    Args:
        config_file: Path to config file, or None for the defaults

    Returns:
        UploadConfig built from the file's values
    """
    if not config_file:
        return UploadConfig()

    try:
        with open(config_file) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error decoding JSON from {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a JSON object")

    known = {f.name for f in fields(UploadConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config keys in {config_file}: {', '.join(sorted(unknown))}")

    logger.debug(f"Loaded config from {config_file}")
    return UploadConfig(**data)
