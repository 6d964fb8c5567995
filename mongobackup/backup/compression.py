"""
Compression handlers for backup archives.

Dumps are packed as gzip compressed tar files. The dump directory is kept as
the single top-level entry of the archive, so extracting recreates it.
"""

import logging
import os
import tarfile
from pathlib import Path
from typing import Optional

from mongobackup.utils.naming import archive_file_path


logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """Raised when archive creation or extraction fails."""
    pass


def compress(source_dir: str, base_dir: Optional[str] = None) -> str:
    """
    Create a tar.gz archive from a dump directory.

    Args:
        source_dir: Directory to archive
        base_dir: Directory the archive is written to (default: backup base directory)

    Returns:
        Full path to the created archive file

    Raises:
        ArchiveError: If the source is unreadable or the archive cannot be written
    """
    source = Path(source_dir)
    archive_path = archive_file_path(source.name, base_dir)

    logger.info(f"Compressing backup from {source_dir} to {archive_path}")

    if not source.is_dir():
        raise ArchiveError(f"Source directory does not exist: {source_dir}")

    try:
        os.makedirs(os.path.dirname(archive_path), exist_ok=True)
        with tarfile.open(archive_path, 'w:gz') as tar:
            tar.add(str(source), arcname=source.name, recursive=True)
    except Exception as e:
        # Clean up partial archive on failure
        if os.path.exists(archive_path):
            try:
                os.remove(archive_path)
            except OSError:
                logger.warning(f"Could not remove partial archive {archive_path}")
        raise ArchiveError(f"Failed to create archive: {e}") from e

    logger.info(f"Compression completed: {archive_path}")
    return archive_path


def decompress(archive_path: str, dest_dir: str) -> str:
    """
    Extract a tar.gz archive.

    Args:
        archive_path: Path to the archive
        dest_dir: Directory to extract into (created if absent)

    Returns:
        dest_dir

    Raises:
        ArchiveError: If the archive is missing or corrupt, or dest_dir is not writable
    """
    logger.info(f"Decompressing {archive_path} to {dest_dir}")

    if not os.path.isfile(archive_path):
        raise ArchiveError(f"Archive not found: {archive_path}")

    try:
        os.makedirs(dest_dir, exist_ok=True)

        with tarfile.open(archive_path, 'r:gz') as tar:
            if hasattr(tarfile, 'data_filter'):
                tar.extractall(dest_dir, filter='data')
            else:
                tar.extractall(dest_dir)
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ArchiveError(f"Failed to extract archive: {e}") from e

    logger.info(f"Decompression completed to {dest_dir}")
    return dest_dir


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        ArchiveError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise ArchiveError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise ArchiveError(f"Failed to get archive size: {e}")
