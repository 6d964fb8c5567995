"""
Storage handler for backup archives.

S3Storage talks to AWS S3 or an S3-compatible provider (DigitalOcean Spaces,
MinIO, ...) selected with a custom endpoint URL. Each call is independent;
the bucket is passed to every operation.
"""

import logging
import os
from datetime import timezone
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError, BotoCoreError

from mongobackup.config import ConfigurationError
from mongobackup.models import RemoteObject


logger = logging.getLogger(__name__)

# Region used with custom endpoints when none is configured. The endpoint
# decides where requests go; botocore only needs a value to sign with.
DEFAULT_ENDPOINT_REGION = 'us-east-1'

MULTIPART_THRESHOLD = 100 * 1024 * 1024  # 100MB
MULTIPART_CHUNK_SIZE = 10 * 1024 * 1024  # 10MB
DOWNLOAD_CHUNK_SIZE = 1024 * 1024

NOT_FOUND_CODES = ('404', 'NoSuchKey', 'NotFound')


class StorageError(Exception):
    """Raised when storage operation fails."""
    pass


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', 'Unknown')


class S3Storage:
    """
    Handler for backup objects in an S3 bucket.

    Objects are stored under their archive filename, with no key prefix.
    """

    def __init__(
        self,
        access_key: Optional[str],
        secret_key: Optional[str],
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        force_path_style: Optional[bool] = None
    ):
        """
        Initialize S3 storage handler.

        Args:
            access_key: AWS access key ID
            secret_key: AWS secret access key
            region: AWS region (required unless endpoint_url is set)
            endpoint_url: Custom S3-compatible endpoint
            force_path_style: Use path-style addressing (default: on when endpoint_url is set)

        Raises:
            ConfigurationError: If no region can be resolved
            StorageError: If the client cannot be created
        """
        if endpoint_url:
            logger.info(f"Using custom S3 endpoint: {endpoint_url}")
            if not region:
                logger.info("Using default region with custom S3 endpoint")
                region = DEFAULT_ENDPOINT_REGION
        elif not region:
            raise ConfigurationError("AWS_REGION is required when using AWS S3", missing=['AWS_REGION'])

        if force_path_style is None:
            force_path_style = bool(endpoint_url)

        self.region = region
        self.endpoint_url = endpoint_url
        self.force_path_style = force_path_style

        client_kwargs = {
            'aws_access_key_id': access_key,
            'aws_secret_access_key': secret_key,
            'region_name': region,
        }
        if endpoint_url:
            client_kwargs['endpoint_url'] = endpoint_url
        if force_path_style:
            client_kwargs['config'] = BotoConfig(s3={'addressing_style': 'path'})

        try:
            self.s3_client = boto3.client('s3', **client_kwargs)
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    @classmethod
    def from_config(cls, config) -> 'S3Storage':
        """Create a handler from a BackupConfig."""
        return cls(
            access_key=config.aws_access_key_id,
            secret_key=config.aws_secret_access_key,
            region=config.aws_region,
            endpoint_url=config.s3_endpoint_url
        )

    def upload(self, local_path: str, bucket: str, key: str) -> Dict[str, Any]:
        """
        Upload a file to S3.

        Args:
            local_path: Path to local archive file
            bucket: S3 bucket name
            key: Object key

        Returns:
            Provider response

        Raises:
            StorageError: If the file is missing or the upload fails
        """
        if not os.path.exists(local_path):
            raise StorageError(f"Local file not found: {local_path}")

        logger.info(f"Uploading {local_path} to S3 bucket {bucket} with key {key}")

        try:
            file_size = os.path.getsize(local_path)

            if file_size > MULTIPART_THRESHOLD:
                response = self._multipart_upload(local_path, bucket, key)
            else:
                response = self._simple_upload(local_path, bucket, key)

        except ClientError as e:
            raise StorageError(f"S3 upload failed ({_error_code(e)}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"S3 upload failed: {e}")
        except OSError as e:
            raise StorageError(f"Failed to upload to S3: {e}")

        logger.info(f"Upload completed successfully to s3://{bucket}/{key}")
        return response

    def _simple_upload(self, local_path: str, bucket: str, key: str) -> Dict[str, Any]:
        with open(local_path, 'rb') as f:
            return self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=f
            )

    def _multipart_upload(self, local_path: str, bucket: str, key: str) -> Dict[str, Any]:
        """
        Upload a large file in chunks.

        The multipart upload is aborted if any part fails.
        """
        response = self.s3_client.create_multipart_upload(
            Bucket=bucket,
            Key=key
        )
        upload_id = response['UploadId']

        parts = []

        try:
            with open(local_path, 'rb') as f:
                part_number = 1

                while True:
                    data = f.read(MULTIPART_CHUNK_SIZE)
                    if not data:
                        break

                    response = self.s3_client.upload_part(
                        Bucket=bucket,
                        Key=key,
                        PartNumber=part_number,
                        UploadId=upload_id,
                        Body=data
                    )

                    parts.append({
                        'PartNumber': part_number,
                        'ETag': response['ETag']
                    })

                    part_number += 1

            return self.s3_client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={'Parts': parts}
            )

        except Exception:
            try:
                self.s3_client.abort_multipart_upload(
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id
                )
            except (ClientError, BotoCoreError) as abort_error:
                logger.warning(f"Failed to abort multipart upload {upload_id}: {abort_error}")
            raise

    def download(self, bucket: str, key: str, dest_path: str) -> str:
        """
        Download an object to a local file.

        On failure the destination file may be left partially written.

        Args:
            bucket: S3 bucket name
            key: Object key
            dest_path: Local path to write

        Returns:
            dest_path

        Raises:
            StorageError: If the object doesn't exist or the transfer fails
        """
        logger.info(f"Downloading s3://{bucket}/{key} to {dest_path}")

        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
            body = response['Body']
            try:
                with open(dest_path, 'wb') as f:
                    for chunk in body.iter_chunks(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
            finally:
                body.close()

        except ClientError as e:
            error_code = _error_code(e)
            if error_code in NOT_FOUND_CODES:
                raise StorageError(f"Object not found: s3://{bucket}/{key}")
            raise StorageError(f"S3 download failed ({error_code}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"S3 download failed: {e}")
        except OSError as e:
            raise StorageError(f"Failed to write {dest_path}: {e}")

        logger.info(f"Download completed successfully to {dest_path}")
        return dest_path

    def list_objects(self, bucket: str, prefix: str = '') -> List[RemoteObject]:
        """
        List every object in a bucket with the given key prefix.

        Follows pagination until the listing is exhausted.

        Args:
            bucket: S3 bucket name
            prefix: Key prefix to filter by (default: all objects)

        Returns:
            List of RemoteObject, in listing order

        Raises:
            StorageError: If listing fails
        """
        logger.info(f"Listing objects in S3 bucket {bucket}" + (f" with prefix {prefix}" if prefix else ''))

        try:
            objects = []
            paginator = self.s3_client.get_paginator('list_objects_v2')

            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get('Contents', []):
                    last_modified = obj['LastModified']
                    if last_modified.tzinfo is None:
                        last_modified = last_modified.replace(tzinfo=timezone.utc)
                    objects.append(RemoteObject(
                        key=obj['Key'],
                        last_modified=last_modified,
                        size=obj.get('Size', 0)
                    ))

        except ClientError as e:
            raise StorageError(f"S3 list failed ({_error_code(e)}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to list S3 objects: {e}")

        logger.info(f"Found {len(objects)} objects in bucket {bucket}")
        return objects

    def delete(self, bucket: str, key: str) -> Dict[str, Any]:
        """
        Delete an object from S3.

        Deleting a key that no longer exists is not an error.

        Args:
            bucket: S3 bucket name
            key: Object key to delete

        Returns:
            Provider response (empty for an already missing key)

        Raises:
            StorageError: If deletion fails
        """
        logger.info(f"Deleting object s3://{bucket}/{key}")

        try:
            response = self.s3_client.delete_object(
                Bucket=bucket,
                Key=key
            )
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in NOT_FOUND_CODES:
                logger.info(f"Object s3://{bucket}/{key} already gone")
                return {}
            raise StorageError(f"S3 delete failed ({error_code}): {e}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete from S3: {e}")

        logger.info(f"Deleted object s3://{bucket}/{key} successfully")
        return response
