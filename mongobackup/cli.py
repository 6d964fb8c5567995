"""
Command line entry point.

Runs one backup and exits 0 on success, 1 on any failure. Takes no arguments;
everything is configured through environment variables (or a .env file).
"""

import logging
import sys

from mongobackup import configure_logging, create_executor
from mongobackup.config import BackupConfig, ConfigurationError


logger = logging.getLogger(__name__)


def main() -> int:
    try:
        config = BackupConfig.from_env()
    except ConfigurationError as e:
        # Logging isn't configured yet
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        configure_logging(config)
    except OSError as e:
        print(f"Failed to set up logging to {config.log_file}: {e}", file=sys.stderr)
        return 1

    executor = create_executor(config)
    result = executor.execute()

    if not result.succeeded:
        logger.error(f"Backup failed at stage {result.stage.value}: {result.error_message}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
