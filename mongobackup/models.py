"""
Data objects for backup runs.

Nothing here is persisted: a BackupJob lives for one run, RemoteObject is a
read-only view of a bucket listing, and BackupResult reports how a run ended.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from mongobackup.utils import naming


class BackupStage(enum.Enum):
    """Pipeline stages in execution order."""
    IDLE = 'idle'
    VALIDATING_CONFIG = 'validating_config'
    DUMPING = 'dumping'
    COMPRESSING = 'compressing'
    UPLOADING = 'uploading'
    LOCAL_CLEANUP = 'local_cleanup'
    SWEEPING = 'sweeping'
    DONE = 'done'


@dataclass
class BackupJob:
    """Paths and key for one backup run, all derived from its timestamp."""
    timestamp: str
    dump_dir: str
    archive_path: str
    object_key: str

    @classmethod
    def create(cls, timestamp: str, base_dir: Optional[str] = None,
               prefix: str = naming.BACKUP_PREFIX) -> 'BackupJob':
        """
        Derive a job from a timestamp string.

        Creates base_dir if it does not exist.
        """
        dump_dir = naming.backup_directory_path(timestamp, base_dir, prefix)
        archive_path = naming.archive_file_path(dump_dir, base_dir)
        return cls(
            timestamp=timestamp,
            dump_dir=dump_dir,
            archive_path=archive_path,
            object_key=naming.object_key(archive_path)
        )


@dataclass
class RemoteObject:
    """An entry from a bucket listing."""
    key: str
    last_modified: datetime
    size: int = 0


@dataclass
class RetentionPolicy:
    """Number of days a backup is kept. Zero means every object is expired."""
    days: int

    def __post_init__(self):
        if isinstance(self.days, bool) or not isinstance(self.days, int):
            raise ValueError(f"Retention days must be an integer, got {self.days!r}")
        if self.days < 0:
            raise ValueError(f"Retention days must be non-negative, got {self.days}")

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        """
        Return the instant before which objects are expired.

        Args:
            now: Reference instant (default: current UTC time). Naive values are taken as UTC.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now - timedelta(days=self.days)

    def is_expired(self, last_modified: datetime, cutoff: datetime) -> bool:
        if last_modified.tzinfo is None:
            last_modified = last_modified.replace(tzinfo=timezone.utc)
        return last_modified < cutoff


@dataclass
class BackupResult:
    """Outcome of a single backup run."""
    status: str = 'running'
    stage: BackupStage = BackupStage.IDLE
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    job: Optional[BackupJob] = None
    object_key: Optional[str] = None
    archive_size: Optional[int] = None
    deleted_keys: List[str] = field(default_factory=list)
    error_message: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'
