"""
Naming helpers for backup directories, archives and object keys.

Backups are named {prefix}{YYYYMMDD_HHMMSS}.tar.gz, with the timestamp in UTC.
The object key in the bucket is the archive's base name.
"""

import os
import re
import tempfile
from datetime import datetime, timezone
from typing import Optional


BACKUP_PREFIX = 'mongodb_backup_'
ARCHIVE_EXTENSION = '.tar.gz'
TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'


def timestamp(now: Optional[datetime] = None) -> str:
    """
    Format an instant as YYYYMMDD_HHMMSS in UTC.

    Args:
        now: Instant to format (default: current time). Naive values are taken as UTC.

    Returns:
        Timestamp string
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def default_backup_dir(temp_dir: Optional[str] = None) -> str:
    """Return the default base directory for local backup files."""
    return os.path.join(temp_dir or tempfile.gettempdir(), 'mongodb-backups')


def backup_directory_path(ts: str, base_dir: Optional[str] = None, prefix: str = BACKUP_PREFIX) -> str:
    """
    Get the dump directory path for a timestamp.

    Creates the base directory if it doesn't exist.

    Args:
        ts: Timestamp string from timestamp()
        base_dir: Base directory (default: default_backup_dir())
        prefix: Backup name prefix

    Returns:
        Path to the dump directory (not created)
    """
    base_dir = base_dir or default_backup_dir()
    os.makedirs(base_dir, exist_ok=True)
    return os.path.join(base_dir, f"{prefix}{ts}")


def archive_file_path(dir_name: str, base_dir: Optional[str] = None) -> str:
    """
    Get the archive path for a dump directory.

    Args:
        dir_name: Dump directory name or path (only the base name is used)
        base_dir: Base directory (default: default_backup_dir())

    Returns:
        Path to {base_dir}/{dir_name}.tar.gz
    """
    base_dir = base_dir or default_backup_dir()
    name = os.path.basename(os.path.normpath(dir_name))
    return os.path.join(base_dir, f"{name}{ARCHIVE_EXTENSION}")


def object_key(local_filename: str) -> str:
    """Object key for a local file: its base name."""
    return os.path.basename(local_filename)


def parse_timestamp(filename: str, prefix: str = BACKUP_PREFIX) -> Optional[datetime]:
    """
    Parse the backup timestamp out of a filename.

    Args:
        filename: File name, path or object key
        prefix: Backup name prefix

    Returns:
        Timezone-aware UTC datetime, or None if the name doesn't match
    """
    match = re.search(re.escape(prefix) + r'(\d{8}_\d{6})', os.path.basename(filename))
    if not match:
        return None

    try:
        parsed = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        # Digits in the right shape but not a real date (e.g. month 13)
        return None

    return parsed.replace(tzinfo=timezone.utc)
