"""
Retention policy enforcement for backups.

Lists every object in the backup bucket and deletes those last modified
before the retention cutoff. The bucket is swept without a key prefix, so it
is expected to hold only backups.
"""

import logging
from datetime import datetime
from typing import List, Optional

from mongobackup.models import RetentionPolicy
from .storage import StorageError


logger = logging.getLogger(__name__)


class SweepError(StorageError):
    """Raised when a delete fails part way through a sweep."""

    def __init__(self, message: str, failed_key: str, deleted_keys: List[str]):
        super().__init__(message)
        self.failed_key = failed_key
        self.deleted_keys = deleted_keys


class RetentionSweeper:
    """
    Deletes expired objects from a bucket.

    Deletes run one at a time in listing order. The first failed delete stops
    the sweep; objects already deleted stay deleted.
    """

    def __init__(self, storage):
        """
        Initialize retention sweeper.

        Args:
            storage: Object with list_objects(bucket) and delete(bucket, key)
        """
        self.storage = storage

    def sweep(self, bucket: str, retention_days: int, now: Optional[datetime] = None) -> List[str]:
        """
        Delete objects older than the retention period.

        Args:
            bucket: S3 bucket name
            retention_days: Days to keep objects; 0 deletes everything listed
            now: Reference instant (default: current UTC time)

        Returns:
            Keys deleted, in listing order

        Raises:
            ValueError: If retention_days is negative
            StorageError: If listing fails
            SweepError: If a delete fails
        """
        policy = RetentionPolicy(retention_days)
        cutoff = policy.cutoff(now)

        logger.info(
            f"Starting cleanup of backups older than {retention_days} days in bucket {bucket} "
            f"(cutoff {cutoff.isoformat()})"
        )

        objects = self.storage.list_objects(bucket)

        expired = [obj for obj in objects if policy.is_expired(obj.last_modified, cutoff)]

        if not expired:
            logger.info("No backups found that exceed the retention period")
            return []

        logger.info(f"Found {len(expired)} backups older than {retention_days} days to clean up")

        deleted_keys = []
        for obj in expired:
            try:
                self.storage.delete(bucket, obj.key)
            except StorageError as e:
                logger.error(
                    f"Failed to delete {obj.key}, stopping cleanup "
                    f"({len(deleted_keys)} already deleted): {e}"
                )
                raise SweepError(
                    f"Failed to delete {obj.key}: {e}",
                    failed_key=obj.key,
                    deleted_keys=deleted_keys
                ) from e
            deleted_keys.append(obj.key)

        logger.info(f"Cleanup completed, deleted {len(deleted_keys)} old backups")
        return deleted_keys


def cleanup_old_backups(storage, bucket: str, retention_days: int) -> List[str]:
    """
    Sweep a bucket with the given retention period.

    Returns:
        Keys deleted
    """
    sweeper = RetentionSweeper(storage)
    return sweeper.sweep(bucket, retention_days)
