import boto3
import pytest
from moto import mock_aws

from transfer_tracker.storage import (
    BlobStorage, BlobNotFound, LocalBlobStore, S3BlobStore, StorageError,
    s3_configured
)

TEST_BUCKET = 'test-transfer-bucket'
TEST_REGION = 'us-east-1'


@pytest.fixture
def s3_client():
    with mock_aws():
        client = boto3.client('s3', region_name=TEST_REGION)
        client.create_bucket(Bucket=TEST_BUCKET)
        yield client


def test_local_store_round_trip(tmp_path):
    store = LocalBlobStore(str(tmp_path))
    key = store.put(b'%PDF-1.7', 'transfer_1_abc.pdf')
    assert key == '/uploads/transfer_1_abc.pdf'
    assert store.get(key) == b'%PDF-1.7'

    store.delete(key)
    with pytest.raises(BlobNotFound):
        store.get(key)
    with pytest.raises(BlobNotFound):
        store.delete(key)


def test_local_store_keeps_files_inside_folder(tmp_path):
    store = LocalBlobStore(str(tmp_path / 'uploads'))
    key = store.put(b'%PDF', '../../escape.pdf')
    assert key == '/uploads/escape.pdf'
    assert (tmp_path / 'uploads' / 'escape.pdf').exists()

    with pytest.raises(BlobNotFound):
        store.get('/uploads/..')


def test_s3_store(s3_client):
    store = S3BlobStore(s3_client, TEST_BUCKET)
    key = store.put(b'%PDF-s3', 'transfer_2_xyz.pdf')
    assert key == 's3://transfers/transfer_2_xyz.pdf'

    stored = s3_client.get_object(Bucket=TEST_BUCKET, Key='transfers/transfer_2_xyz.pdf')
    assert stored['Body'].read() == b'%PDF-s3'
    assert stored['ContentType'] == 'application/pdf'
    assert store.get(key) == b'%PDF-s3'

    store.delete(key)
    with pytest.raises(BlobNotFound):
        store.get(key)


def test_blob_storage_routes_by_key(tmp_path, s3_client):
    storage = BlobStorage()
    storage.local = LocalBlobStore(str(tmp_path))
    storage.s3 = S3BlobStore(s3_client, TEST_BUCKET)

    s3_key = storage.put(b'%PDF-a', 'a.pdf')
    assert s3_key.startswith('s3://')
    local_key = storage.local.put(b'%PDF-b', 'b.pdf')

    assert storage.get(s3_key) == b'%PDF-a'
    assert storage.get(local_key) == b'%PDF-b'

    with pytest.raises(BlobNotFound):
        storage.get('ftp://elsewhere/c.pdf')


def test_blob_storage_falls_back_to_local(app, tmp_path, s3_client, caplog):
    storage = BlobStorage()
    storage.local = LocalBlobStore(str(tmp_path))
    storage.s3 = S3BlobStore(s3_client, 'missing-bucket')

    with app.app_context():
        key = storage.put(b'%PDF-c', 'c.pdf')
    assert 'falling back to local storage' in caplog.text
    assert key == '/uploads/c.pdf'
    assert storage.get(key) == b'%PDF-c'


def test_s3_key_without_s3_configured(tmp_path):
    storage = BlobStorage()
    storage.local = LocalBlobStore(str(tmp_path))
    with pytest.raises(StorageError):
        storage.get('s3://transfers/c.pdf')


def test_s3_configured():
    assert not s3_configured({'AWS_ACCESS_KEY_ID': 'id', 'AWS_S3_BUCKET_NAME': 'b'})
    assert s3_configured({
        'AWS_ACCESS_KEY_ID': 'id',
        'AWS_SECRET_ACCESS_KEY': 'secret',
        'AWS_S3_BUCKET_NAME': 'b',
    })


def test_app_uses_local_storage_without_s3(app):
    storage = app.extensions['blob_storage']
    assert storage.s3 is None
    assert storage.local.upload_folder == app.config['UPLOAD_FOLDER']
