"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Validate configuration and create the S3 client
2. Dump the database with mongodump
3. Create compressed archive
4. Upload to S3
5. Remove local dump directory and archive
6. Delete backups older than the retention period
"""

import logging
import os
import shutil
from datetime import datetime, timezone
from typing import Optional

from mongobackup.config import BackupConfig, ConfigurationError
from mongobackup.models import BackupJob, BackupResult, BackupStage
from mongobackup.utils.naming import timestamp
from .compression import compress, get_archive_size
from .dump import MongoDumper
from .retention import RetentionSweeper
from .storage import S3Storage


logger = logging.getLogger(__name__)


class BackupExecutor:
    """
    Orchestrates the complete backup workflow.

    Collaborators can be injected; anything not given is built from config
    once configuration has been validated.
    """

    def __init__(self, config: BackupConfig, storage=None, dumper=None, sweeper=None):
        """
        Initialize backup executor.

        Args:
            config: Backup configuration
            storage: S3Storage-like object (default: built from config)
            dumper: MongoDumper-like object (default: built from config)
            sweeper: RetentionSweeper-like object (default: wraps storage)
        """
        self.config = config
        self.storage = storage
        self.dumper = dumper
        self.sweeper = sweeper
        self.stage = BackupStage.IDLE
        self.job = None
        self.result = None
        self.logs = []
        self._uploaded = False

    def execute(self, retention_days: Optional[int] = None) -> BackupResult:
        """
        Run the backup pipeline.

        Args:
            retention_days: Override the configured retention period for this run

        Returns:
            BackupResult; status is 'success' or 'failed'
        """
        # Per-run state; an executor may be run more than once
        self.stage = BackupStage.IDLE
        self.job = None
        self._uploaded = False
        self.logs = []

        self.result = BackupResult(
            status='running',
            started_at=datetime.now(timezone.utc)
        )

        self._log("Starting MongoDB backup")

        try:
            self._execute_workflow(retention_days)

            self.result.status = 'success'
            self._log("Backup process completed successfully")

        except Exception as e:
            self.result.status = 'failed'
            self.result.error_message = str(e)
            self._log(
                f"Backup process failed during {self.stage.value}: {e}",
                level=logging.ERROR,
                exc_info=not isinstance(e, ConfigurationError)
            )

        finally:
            # Upload failures still leave local files behind
            if not self._uploaded and self.job is not None:
                self._cleanup_local_files()

            self.result.stage = self.stage
            self.result.completed_at = datetime.now(timezone.utc)
            self.result.logs = list(self.logs)

        return self.result

    def _execute_workflow(self, retention_days: Optional[int]):
        """Execute the pipeline stages in order."""
        self._enter(BackupStage.VALIDATING_CONFIG)
        self._validate_config(retention_days)

        self._enter(BackupStage.DUMPING)
        self.job = BackupJob.create(timestamp(), self.config.backup_dir)
        self.result.job = self.job
        self.dumper.dump(self.job.dump_dir)

        self._enter(BackupStage.COMPRESSING)
        archive_path = compress(self.job.dump_dir, self.config.backup_dir)
        self.job.archive_path = archive_path
        self.result.archive_size = get_archive_size(archive_path)
        self._log(f"Archive created: {os.path.basename(archive_path)} "
                  f"({self.result.archive_size / 1024 / 1024:.2f} MB)")

        self._enter(BackupStage.UPLOADING)
        self.storage.upload(archive_path, self.config.s3_bucket_name, self.job.object_key)
        self._uploaded = True
        self.result.object_key = self.job.object_key
        self._log(f"Uploaded to s3://{self.config.s3_bucket_name}/{self.job.object_key}")

        self._enter(BackupStage.LOCAL_CLEANUP)
        self._cleanup_local_files()

        self._enter(BackupStage.SWEEPING)
        days = self.config.retention_days if retention_days is None else retention_days
        self.result.deleted_keys = self.sweeper.sweep(self.config.s3_bucket_name, days)
        self._log(f"Retention cleanup deleted {len(self.result.deleted_keys)} objects")

        self._enter(BackupStage.DONE)

    def _validate_config(self, retention_days: Optional[int]):
        """
        Check configuration and build missing collaborators.

        Raises:
            ConfigurationError: If settings are missing or the region can't be resolved
        """
        self.config.validate()

        if retention_days is not None and retention_days < 0:
            raise ConfigurationError(f"Retention days must be non-negative, got {retention_days}")

        if self.storage is None:
            self.storage = S3Storage.from_config(self.config)
        if self.dumper is None:
            self.dumper = MongoDumper(self.config.mongodb_uri, self.config.mongodump_path)
        if self.sweeper is None:
            self.sweeper = RetentionSweeper(self.storage)

    def _cleanup_local_files(self):
        """Remove the dump directory and archive. Failures are logged, not raised."""
        if self.job is None:
            return

        if os.path.exists(self.job.dump_dir):
            try:
                shutil.rmtree(self.job.dump_dir)
                self._log(f"Removed dump directory {self.job.dump_dir}")
            except OSError as e:
                self._log(f"Warning: Failed to remove dump directory: {e}", level=logging.WARNING)

        if os.path.exists(self.job.archive_path):
            try:
                os.remove(self.job.archive_path)
                self._log(f"Removed archive {self.job.archive_path}")
            except OSError as e:
                self._log(f"Warning: Failed to remove archive: {e}", level=logging.WARNING)

    def _enter(self, stage: BackupStage):
        self.stage = stage
        self._log(f"Stage: {stage.value}")

    def _log(self, message: str, level: int = logging.INFO, exc_info: bool = False):
        """
        Record a log message with timestamp and send it to the module logger.

        Args:
            message: Log message
            level: logging level
            exc_info: Attach the current exception traceback
        """
        ts = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.logs.append(f"[{ts}] {message}")
        logger.log(level, message, exc_info=exc_info)


def run_backup(config: Optional[BackupConfig] = None, retention_days: Optional[int] = None) -> BackupResult:
    """
    Execute a backup with the given configuration.

    Args:
        config: Backup configuration (default: read from the environment)
        retention_days: Override the configured retention period

    Returns:
        BackupResult with execution results
    """
    if config is None:
        config = BackupConfig.from_env()

    executor = BackupExecutor(config)
    return executor.execute(retention_days=retention_days)
