"""
Unit tests for compression module (mongobackup/backup/compression.py).

Tests archive creation and extraction of dump directories.
"""

import os
import tarfile
from pathlib import Path
from unittest.mock import patch

import pytest

from mongobackup.backup.compression import (
    compress,
    decompress,
    get_archive_size,
    ArchiveError
)


def _snapshot(directory: Path):
    """Map of relative path -> bytes for every file under directory."""
    return {
        str(p.relative_to(directory)): p.read_bytes()
        for p in sorted(directory.rglob('*'))
        if p.is_file()
    }


class TestCompress:
    """Test compress function."""

    def test_compress_creates_tar_gz(self, dump_dir, tmp_path):
        """Test archive is written as base_dir/<dir>.tar.gz."""
        out_dir = tmp_path / 'out'
        out_dir.mkdir()

        archive_path = compress(str(dump_dir), str(out_dir))

        assert archive_path == str(out_dir / 'mongodb_backup_20240115_120000.tar.gz')
        assert os.path.exists(archive_path)
        assert tarfile.is_tarfile(archive_path)

    def test_compress_keeps_directory_as_top_level_entry(self, dump_dir, tmp_path):
        """Test every member lives under the dump directory name."""
        archive_path = compress(str(dump_dir), str(tmp_path))

        with tarfile.open(archive_path, 'r:gz') as tar:
            names = tar.getnames()

        assert 'mongodb_backup_20240115_120000' in names
        assert all(name.split('/')[0] == 'mongodb_backup_20240115_120000' for name in names)
        assert 'mongodb_backup_20240115_120000/testdb/users.bson' in names

    def test_compress_missing_source_raises(self, tmp_path):
        """Test compressing a nonexistent directory raises ArchiveError."""
        with pytest.raises(ArchiveError):
            compress(str(tmp_path / 'does_not_exist'), str(tmp_path))

    def test_compress_unwritable_destination_raises(self, dump_dir, tmp_path):
        """Test a destination that can't be written raises ArchiveError."""
        not_a_dir = tmp_path / 'occupied'
        not_a_dir.write_text('file in the way')

        with pytest.raises(ArchiveError):
            compress(str(dump_dir), str(not_a_dir / 'out'))

    def test_compress_creates_destination(self, dump_dir, tmp_path):
        """Test a missing base directory is created."""
        base = tmp_path / 'new' / 'archives'

        archive_path = compress(str(dump_dir), str(base))

        assert os.path.dirname(archive_path) == str(base)
        assert os.path.exists(archive_path)

    def test_compress_removes_partial_archive_on_failure(self, dump_dir, tmp_path):
        """Test partial archive is cleaned up when writing fails."""
        out_dir = tmp_path / 'out'
        out_dir.mkdir()

        with patch('mongobackup.backup.compression.tarfile.TarFile.add', side_effect=OSError("disk full")):
            with pytest.raises(ArchiveError, match="disk full"):
                compress(str(dump_dir), str(out_dir))

        assert list(out_dir.iterdir()) == []


class TestDecompress:
    """Test decompress function."""

    def test_round_trip_reproduces_files(self, dump_dir, tmp_path):
        """Test decompress(compress(D)) reproduces D byte-for-byte."""
        archive_path = compress(str(dump_dir), str(tmp_path))
        restore_dir = tmp_path / 'restore'

        result = decompress(archive_path, str(restore_dir))

        assert result == str(restore_dir)
        restored = restore_dir / dump_dir.name
        assert _snapshot(restored) == _snapshot(dump_dir)

    def test_decompress_creates_destination(self, dump_dir, tmp_path):
        """Test destination directory is created if absent."""
        archive_path = compress(str(dump_dir), str(tmp_path))
        dest = tmp_path / 'nested' / 'restore'

        decompress(archive_path, str(dest))

        assert dest.is_dir()

    def test_decompress_corrupt_archive_raises(self, tmp_path):
        """Test a corrupt archive raises ArchiveError."""
        bad = tmp_path / 'bad.tar.gz'
        bad.write_bytes(b'this is not a tarball')

        with pytest.raises(ArchiveError):
            decompress(str(bad), str(tmp_path / 'out'))

    def test_decompress_truncated_archive_raises(self, dump_dir, tmp_path):
        """Test a truncated archive raises ArchiveError."""
        archive_path = compress(str(dump_dir), str(tmp_path))
        data = Path(archive_path).read_bytes()
        Path(archive_path).write_bytes(data[:30])

        with pytest.raises(ArchiveError):
            decompress(archive_path, str(tmp_path / 'out'))

    def test_decompress_missing_archive_raises(self, tmp_path):
        """Test a missing archive raises ArchiveError."""
        with pytest.raises(ArchiveError, match="not found"):
            decompress(str(tmp_path / 'missing.tar.gz'), str(tmp_path / 'out'))


class TestGetArchiveSize:
    """Test get_archive_size."""

    def test_get_archive_size(self, dump_dir, tmp_path):
        """Test size matches the file on disk."""
        archive_path = compress(str(dump_dir), str(tmp_path))

        assert get_archive_size(archive_path) == os.path.getsize(archive_path)

    def test_get_archive_size_missing_file(self, tmp_path):
        """Test missing archive raises ArchiveError."""
        with pytest.raises(ArchiveError, match="not found"):
            get_archive_size(str(tmp_path / 'missing.tar.gz'))
