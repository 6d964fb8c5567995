"""
Shared pytest fixtures for MongoDB S3 backup tests.

This module provides fixtures for:
- Backup configuration pointing at temporary directories
- Mock S3 (moto) with a test bucket
- An in-memory storage fake for retention tests
- Temporary dump directories
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
import boto3
from moto import mock_aws

from mongobackup.config import BackupConfig
from mongobackup.models import RemoteObject
from mongobackup.backup.storage import StorageError


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so no test can reach a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.delenv('AWS_PROFILE', raising=False)


@pytest.fixture
def backup_config(tmp_path):
    """
    Complete configuration with backup and log files under tmp_path.
    """
    return BackupConfig(
        mongodb_uri='mongodb://localhost:27017/testdb',
        aws_access_key_id='test_access_key',
        aws_secret_access_key='test_secret_key',
        aws_region='us-east-1',
        s3_bucket_name='test-bucket',
        retention_days=7,
        backup_dir=str(tmp_path / 'backups'),
        log_level='debug',
        log_file=str(tmp_path / 'logs' / 'mongodb-backup.log')
    )


@pytest.fixture
def mock_s3():
    """
    Mock AWS S3 service using moto.

    Creates a test bucket 'test-bucket' in us-east-1 region.
    """
    with mock_aws():
        s3 = boto3.resource('s3', region_name='us-east-1')
        s3.create_bucket(Bucket='test-bucket')

        yield s3


class FakeStorage:
    """
    In-memory stand-in for S3Storage.

    Keeps objects per bucket in insertion order and records delete calls.
    Keys listed in fail_on_delete raise StorageError when deleted.
    """

    def __init__(self, objects: Optional[Dict[str, List[RemoteObject]]] = None,
                 fail_on_delete=()):
        self.objects = objects or {}
        self.fail_on_delete = set(fail_on_delete)
        self.delete_calls = []
        self.list_calls = []
        self.uploads = []

    def add(self, bucket: str, key: str, last_modified: datetime, size: int = 0):
        self.objects.setdefault(bucket, []).append(RemoteObject(key, last_modified, size))

    def list_objects(self, bucket: str, prefix: str = '') -> List[RemoteObject]:
        self.list_calls.append((bucket, prefix))
        return [obj for obj in self.objects.get(bucket, []) if obj.key.startswith(prefix)]

    def delete(self, bucket: str, key: str):
        self.delete_calls.append((bucket, key))
        if key in self.fail_on_delete:
            raise StorageError(f"S3 delete failed (AccessDenied): {key}")
        self.objects[bucket] = [obj for obj in self.objects.get(bucket, []) if obj.key != key]
        return {}

    def upload(self, local_path: str, bucket: str, key: str):
        self.uploads.append((local_path, bucket, key))
        self.add(bucket, key, datetime.now(timezone.utc))
        return {}

    def keys(self, bucket: str) -> List[str]:
        return [obj.key for obj in self.objects.get(bucket, [])]


@pytest.fixture
def fake_storage():
    """Empty in-memory storage."""
    return FakeStorage()


@pytest.fixture
def dump_dir(tmp_path):
    """
    Create a directory shaped like mongodump output.

    Creates:
    - mongodb_backup_20240115_120000/testdb/users.bson
    - mongodb_backup_20240115_120000/testdb/users.metadata.json
    - mongodb_backup_20240115_120000/admin/system.version.bson
    """
    root = tmp_path / 'dumps' / 'mongodb_backup_20240115_120000'
    (root / 'testdb').mkdir(parents=True)
    (root / 'admin').mkdir()

    (root / 'testdb' / 'users.bson').write_bytes(b'\x16\x00\x00\x00\x02name\x00\x05\x00\x00\x00test\x00\x00')
    (root / 'testdb' / 'users.metadata.json').write_text('{"indexes": []}')
    (root / 'admin' / 'system.version.bson').write_bytes(b'\x05\x00\x00\x00\x00')

    return root


@pytest.fixture
def storage_factory():
    """FakeStorage class, for tests that need failing or subclassed fakes."""
    return FakeStorage
