"""
Restore helpers: locate a backup in the bucket, download and extract it.
"""

import logging
import os
import shutil
import tempfile
from typing import Iterable, Optional

from mongobackup.models import RemoteObject
from mongobackup.utils.naming import BACKUP_PREFIX, parse_timestamp
from .compression import decompress, ArchiveError
from .storage import StorageError


logger = logging.getLogger(__name__)


def find_latest_backup(objects: Iterable[RemoteObject], prefix: str = BACKUP_PREFIX) -> Optional[RemoteObject]:
    """
    Pick the newest backup by the timestamp in its key.

    Keys that don't follow the backup naming scheme are ignored.

    Returns:
        The newest RemoteObject, or None if there is no backup
    """
    latest = None
    latest_ts = None

    for obj in objects:
        ts = parse_timestamp(obj.key, prefix)
        if ts is None:
            continue
        if latest_ts is None or ts > latest_ts:
            latest, latest_ts = obj, ts

    return latest


def restore_backup(
    storage,
    bucket: str,
    dest_dir: str,
    key: Optional[str] = None,
    work_dir: Optional[str] = None
) -> str:
    """
    Download a backup archive and extract it.

    Args:
        storage: S3Storage-like object
        bucket: S3 bucket name
        dest_dir: Directory to extract into
        key: Object key to restore (default: newest backup in the bucket)
        work_dir: Directory for the downloaded archive (default: a temporary directory)

    Returns:
        Path to the extracted dump directory

    Raises:
        StorageError: If no backup exists or the download fails
        ArchiveError: If extraction fails
    """
    if key is None:
        latest = find_latest_backup(storage.list_objects(bucket))
        if latest is None:
            raise StorageError(f"No backups found in bucket {bucket}")
        key = latest.key

    logger.info(f"Restoring s3://{bucket}/{key} to {dest_dir}")

    own_work_dir = work_dir is None
    if own_work_dir:
        work_dir = tempfile.mkdtemp(prefix='mongodb_restore_')

    archive_path = os.path.join(work_dir, os.path.basename(key))

    try:
        storage.download(bucket, key, archive_path)
        decompress(archive_path, dest_dir)
    finally:
        if own_work_dir:
            shutil.rmtree(work_dir, ignore_errors=True)
        elif os.path.exists(archive_path):
            os.remove(archive_path)

    restored = os.path.join(dest_dir, _strip_extension(os.path.basename(key)))
    if not os.path.isdir(restored):
        raise ArchiveError(f"Archive {key} did not contain expected directory {os.path.basename(restored)}")

    logger.info(f"Restore completed: {restored}")
    return restored


def _strip_extension(filename: str) -> str:
    if filename.endswith('.tar.gz'):
        return filename[:-7]
    return os.path.splitext(filename)[0]
