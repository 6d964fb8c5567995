"""
Backup module for MongoDB S3 backups.

This module handles the core backup functionality including:
- Database dump (mongodump)
- Compression
- Storage (S3 and S3-compatible providers)
- Execution orchestration
- Retention policy enforcement
- Restore
"""

from .executor import BackupExecutor, run_backup
from .dump import MongoDumper, DumpError
from .compression import compress, decompress, ArchiveError
from .storage import S3Storage, StorageError
from .retention import RetentionSweeper, SweepError
from .restore import restore_backup, find_latest_backup

__all__ = [
    'BackupExecutor',
    'run_backup',
    'MongoDumper',
    'DumpError',
    'compress',
    'decompress',
    'ArchiveError',
    'S3Storage',
    'StorageError',
    'RetentionSweeper',
    'SweepError',
    'restore_backup',
    'find_latest_backup'
]
