"""
Database dump via mongodump.

mongodump reports progress on stderr, so stderr content alone doesn't mean
failure. A run is successful when the process exits 0 and stderr is either
empty or contains the "done dumping" marker.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import List


logger = logging.getLogger(__name__)

BENIGN_DIAGNOSTIC = 'done dumping'


class DumpError(Exception):
    """Raised when the dump tool fails."""
    pass


@dataclass
class DumpResult:
    """Outcome of a mongodump invocation."""
    succeeded: bool
    diagnostic_text: str
    return_code: int


def is_benign_diagnostic(text: str) -> bool:
    """
    Check whether mongodump's stderr output is non-fatal.

    Args:
        text: Captured stderr

    Returns:
        True if text is empty or contains the completion marker
    """
    if not text or not text.strip():
        return True
    return BENIGN_DIAGNOSTIC in text


class MongoDumper:
    """
    Runs mongodump against a connection string.
    """

    def __init__(self, uri: str, executable: str = 'mongodump'):
        """
        Initialize dumper.

        Args:
            uri: MongoDB connection string
            executable: mongodump binary name or path
        """
        self.uri = uri
        self.executable = executable

    def _command(self, output_dir: str) -> List[str]:
        return [self.executable, f'--uri={self.uri}', f'--out={output_dir}']

    def run(self, output_dir: str) -> DumpResult:
        """
        Invoke mongodump and capture its outcome.

        Args:
            output_dir: Directory to dump into (created if absent)

        Returns:
            DumpResult

        Raises:
            DumpError: If the process cannot be started
        """
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            raise DumpError(f"Failed to create dump directory {output_dir}: {e}")

        try:
            completed = subprocess.run(
                self._command(output_dir),
                capture_output=True,
                text=True,
                check=False
            )
        except OSError as e:
            raise DumpError(f"Failed to start {self.executable}: {e}")

        stderr = completed.stderr or ''
        succeeded = completed.returncode == 0 and is_benign_diagnostic(stderr)
        return DumpResult(
            succeeded=succeeded,
            diagnostic_text=stderr,
            return_code=completed.returncode
        )

    def dump(self, output_dir: str) -> str:
        """
        Dump the database into output_dir.

        Returns:
            output_dir

        Raises:
            DumpError: If mongodump fails to start, exits non-zero, or reports an error
        """
        logger.info(f"Creating MongoDB backup in {output_dir}")

        result = self.run(output_dir)

        if not result.succeeded:
            if result.return_code != 0:
                raise DumpError(
                    f"mongodump exited with status {result.return_code}: {result.diagnostic_text.strip()}"
                )
            raise DumpError(f"mongodump error: {result.diagnostic_text.strip()}")

        logger.info("MongoDB backup completed successfully")
        return output_dir
