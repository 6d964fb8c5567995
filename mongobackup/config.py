import os
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from mongobackup.utils.naming import default_backup_dir


DEFAULT_RETENTION_DAYS = 7
DEFAULT_LOG_LEVEL = 'info'
DEFAULT_LOG_FILE = 'mongodb-backup.log'
DEFAULT_MONGODUMP = 'mongodump'


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class BackupConfig:
    """
    Backup configuration.

    Built explicitly (for tests) or from environment variables via from_env().
    Values are stored as given; validate() checks that everything required
    for a run is present.
    """

    REQUIRED_SETTINGS = (
        'MONGODB_URI',
        'AWS_ACCESS_KEY_ID',
        'AWS_SECRET_ACCESS_KEY',
        'AWS_REGION',
        'S3_BUCKET_NAME',
    )

    def __init__(
        self,
        mongodb_uri: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_region: Optional[str] = None,
        s3_bucket_name: Optional[str] = None,
        s3_endpoint_url: Optional[str] = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        backup_dir: Optional[str] = None,
        temp_dir: Optional[str] = None,
        log_level: str = DEFAULT_LOG_LEVEL,
        log_file: str = DEFAULT_LOG_FILE,
        mongodump_path: str = DEFAULT_MONGODUMP
    ):
        self.mongodb_uri = mongodb_uri
        self.aws_access_key_id = aws_access_key_id
        self.aws_secret_access_key = aws_secret_access_key
        self.aws_region = aws_region
        self.s3_bucket_name = s3_bucket_name
        self.s3_endpoint_url = s3_endpoint_url
        self.retention_days = retention_days
        self.temp_dir = temp_dir
        self.backup_dir = backup_dir or default_backup_dir(temp_dir)
        self.log_level = log_level
        self.log_file = log_file
        self.mongodump_path = mongodump_path

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'BackupConfig':
        """
        Build configuration from environment variables.

        When reading the process environment and MONGODB_URI is not set,
        a .env file is loaded first (existing variables are not overridden).

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            BackupConfig instance

        Raises:
            ConfigurationError: If BACKUP_RETENTION_DAYS is not a non-negative integer
        """
        if environ is None:
            if not os.environ.get('MONGODB_URI'):
                load_dotenv()
            environ = os.environ

        return cls(
            mongodb_uri=environ.get('MONGODB_URI') or None,
            aws_access_key_id=environ.get('AWS_ACCESS_KEY_ID') or None,
            aws_secret_access_key=environ.get('AWS_SECRET_ACCESS_KEY') or None,
            aws_region=environ.get('AWS_REGION') or None,
            s3_bucket_name=environ.get('S3_BUCKET_NAME') or None,
            s3_endpoint_url=environ.get('S3_ENDPOINT_URL') or None,
            retention_days=parse_retention_days(environ.get('BACKUP_RETENTION_DAYS')),
            backup_dir=environ.get('BACKUP_DIR') or None,
            temp_dir=environ.get('TEMP_DIR') or None,
            log_level=environ.get('LOG_LEVEL') or DEFAULT_LOG_LEVEL,
            log_file=environ.get('LOG_FILE') or DEFAULT_LOG_FILE,
            mongodump_path=environ.get('MONGODUMP_PATH') or DEFAULT_MONGODUMP
        )

    def missing_settings(self) -> List[str]:
        """Return names of required settings that are not set, in declaration order."""
        values = {
            'MONGODB_URI': self.mongodb_uri,
            'AWS_ACCESS_KEY_ID': self.aws_access_key_id,
            'AWS_SECRET_ACCESS_KEY': self.aws_secret_access_key,
            'AWS_REGION': self.aws_region,
            'S3_BUCKET_NAME': self.s3_bucket_name,
        }

        missing = []
        for name in self.REQUIRED_SETTINGS:
            # A custom endpoint implies the region
            if name == 'AWS_REGION' and self.s3_endpoint_url:
                continue
            if not values[name]:
                missing.append(name)
        return missing

    def validate(self):
        """
        Check that all required settings are present.

        Raises:
            ConfigurationError: Listing every missing setting
        """
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing
            )

        if self.retention_days < 0:
            raise ConfigurationError(
                f"BACKUP_RETENTION_DAYS must be non-negative, got {self.retention_days}"
            )


def parse_retention_days(value: Optional[str]) -> int:
    """
    Parse BACKUP_RETENTION_DAYS.

    Args:
        value: Raw environment value (None or empty means default)

    Returns:
        Retention period in days

    Raises:
        ConfigurationError: If value is not a non-negative integer
    """
    if value is None or str(value).strip() == '':
        return DEFAULT_RETENTION_DAYS

    try:
        days = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"BACKUP_RETENTION_DAYS must be an integer, got {value!r}")

    if days < 0:
        raise ConfigurationError(f"BACKUP_RETENTION_DAYS must be non-negative, got {days}")

    return days
