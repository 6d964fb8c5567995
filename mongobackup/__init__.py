import os
import logging
from logging.handlers import RotatingFileHandler


__version__ = '1.0.0'


def configure_logging(config):
    """Configure logging to console and a rotating log file"""

    log_level = logging.getLevelName(str(config.log_level).upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    # Create log directory if it doesn't exist
    log_dir = os.path.dirname(os.path.abspath(config.log_file))
    os.makedirs(log_dir, exist_ok=True)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler
    file_handler = RotatingFileHandler(
        config.log_file,
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    # Configure root logger, replacing handlers from earlier calls
    logging.basicConfig(level=log_level, handlers=[console_handler, file_handler], force=True)

    # boto's debug output is noisy and can include request details
    logging.getLogger('botocore').setLevel(max(log_level, logging.WARNING))
    logging.getLogger('boto3').setLevel(max(log_level, logging.WARNING))
    logging.getLogger('urllib3').setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).info(f"Logging configured (level: {logging.getLevelName(log_level)})")


def create_executor(config=None):
    """Backup executor factory"""

    from mongobackup.config import BackupConfig
    from mongobackup.backup.executor import BackupExecutor

    if config is None:
        config = BackupConfig.from_env()

    return BackupExecutor(config)
