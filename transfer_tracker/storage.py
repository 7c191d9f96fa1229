# transfer_tracker/storage.py

"""Blob storage for uploaded PDF documents.

Blobs are addressed by opaque keys whose scheme identifies the backend:

    /uploads/<name>          local upload directory
    s3://transfers/<name>    S3 bucket, object key ``transfers/<name>``

The key is what gets stored on the transfer record, so reads and deletes are
routed by key even after the configured backend changes.
"""

import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

LOCAL_PREFIX = '/uploads/'
S3_PREFIX = 's3://'
S3_KEY_PREFIX = 'transfers/'


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class BlobNotFound(StorageError):
    """Raised when a key does not resolve to a stored blob."""
    pass


class LocalBlobStore:
    """Stores blobs as files in a single upload directory."""

    def __init__(self, upload_folder):
        self.upload_folder = os.path.abspath(upload_folder)

    def _path_for(self, name):
        # Keys never carry directories; anything else is a traversal attempt
        path = os.path.abspath(
            os.path.join(self.upload_folder, os.path.basename(name))
        )
        if os.path.dirname(path) != self.upload_folder:
            raise BlobNotFound(f"Invalid blob name: {name}")
        return path

    def put(self, data, name, content_type='application/pdf'):
        os.makedirs(self.upload_folder, exist_ok=True)
        path = self._path_for(name)
        with open(path, 'wb') as fh:
            fh.write(data)
        return LOCAL_PREFIX + os.path.basename(path)

    def get(self, key):
        path = self._path_for(key[len(LOCAL_PREFIX):])
        try:
            with open(path, 'rb') as fh:
                return fh.read()
        except FileNotFoundError:
            raise BlobNotFound(f"File not found: {key}")

    def delete(self, key):
        path = self._path_for(key[len(LOCAL_PREFIX):])
        try:
            os.remove(path)
        except FileNotFoundError:
            raise BlobNotFound(f"File not found: {key}")


class S3BlobStore:
    """Stores blobs in an S3 bucket under the ``transfers/`` prefix.

    Args:
        client: boto3 S3 client
        bucket_name: Target bucket
    """

    def __init__(self, client, bucket_name):
        self.client = client
        self.bucket_name = bucket_name

    @classmethod
    def from_config(cls, config):
        client = boto3.client(
            's3',
            aws_access_key_id=config['AWS_ACCESS_KEY_ID'],
            aws_secret_access_key=config['AWS_SECRET_ACCESS_KEY'],
            region_name=config.get('AWS_REGION') or 'us-east-1',
        )
        return cls(client, config['AWS_S3_BUCKET_NAME'])

    def put(self, data, name, content_type='application/pdf'):
        object_key = S3_KEY_PREFIX + os.path.basename(name)
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=object_key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload file: {e}") from e
        return S3_PREFIX + object_key

    def get(self, key):
        object_key = key[len(S3_PREFIX):]
        try:
            response = self.client.get_object(
                Bucket=self.bucket_name,
                Key=object_key,
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code in ('NoSuchKey', '404'):
                raise BlobNotFound(f"File not found: {key}") from e
            raise StorageError(f"Failed to retrieve file: {error_code}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to retrieve file: {e}") from e
        return response['Body'].read()

    def delete(self, key):
        try:
            self.client.delete_object(
                Bucket=self.bucket_name,
                Key=key[len(S3_PREFIX):],
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete file: {e}") from e


class BlobStorage:
    """Flask extension routing blob operations to the right backend.

    New blobs go to S3 when it is configured, falling back to the local
    upload directory if the S3 upload fails. Reads and deletes follow the
    scheme of the stored key.
    """

    def __init__(self, app=None):
        self.local = None
        self.s3 = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.local = LocalBlobStore(app.config['UPLOAD_FOLDER'])
        if s3_configured(app.config):
            self.s3 = S3BlobStore.from_config(app.config)
            app.logger.info(f"S3 storage enabled: bucket={self.s3.bucket_name}")
        else:
            self.s3 = None
        app.extensions['blob_storage'] = self

    def _backend_for(self, key):
        if key.startswith(S3_PREFIX):
            if self.s3 is None:
                raise StorageError('S3 is not configured')
            return self.s3
        if key.startswith(LOCAL_PREFIX):
            return self.local
        raise BlobNotFound(f"Unknown storage key: {key}")

    def put(self, data, name, content_type='application/pdf'):
        if self.s3 is not None:
            try:
                return self.s3.put(data, name, content_type)
            except StorageError as e:
                current_app.logger.warning(
                    f"S3 upload failed, falling back to local storage: {e}"
                )
        return self.local.put(data, name, content_type)

    def get(self, key):
        return self._backend_for(key).get(key)

    def delete(self, key):
        self._backend_for(key).delete(key)


def s3_configured(config):
    return bool(
        config.get('AWS_ACCESS_KEY_ID') and
        config.get('AWS_SECRET_ACCESS_KEY') and
        config.get('AWS_S3_BUCKET_NAME')
    )
