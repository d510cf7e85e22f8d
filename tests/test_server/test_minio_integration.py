"""Integration tests for MediaStorage against a live MinIO.

Run with ``pytest -m integration`` while MinIO is reachable at
``MINIO_ENDPOINT`` (default http://localhost:9000).
"""
import os
import uuid
from typing import Final

import boto3
import pytest
from botocore.exceptions import ClientError

from server.apps.media.exceptions import ErrorKind, MediaError
from server.apps.media.infrastructure.storage import MediaStorage

_TEST_BUCKET: Final = 'media-uploads-integration'
_TEST_FILE_CONTENT: Final = b'%PDF-1.4 Hello from MinIO integration test!'


@pytest.fixture
def minio_options() -> dict[str, str]:
    """Connection options for MinIO.

    Returns:
        Keyword arguments accepted by MediaStorage.
    """
    return {
        'endpoint_url': os.getenv('MINIO_ENDPOINT', 'http://localhost:9000'),
        'access_key': os.getenv('MINIO_ROOT_USER', 'minioadmin'),
        'secret_key': os.getenv('MINIO_ROOT_PASSWORD', 'minioadmin'),
        'region_name': 'us-east-1',
    }


@pytest.fixture
def storage(minio_options: dict[str, str]) -> MediaStorage:
    """MediaStorage bound to a bucket that is known to exist.

    Args:
        minio_options: MinIO connection options.

    Returns:
        Storage backend for the integration bucket.
    """
    client = boto3.client(
        's3',
        endpoint_url=minio_options['endpoint_url'],
        aws_access_key_id=minio_options['access_key'],
        aws_secret_access_key=minio_options['secret_key'],
        region_name=minio_options['region_name'],
    )
    try:
        client.head_bucket(Bucket=_TEST_BUCKET)
    except ClientError:
        client.create_bucket(Bucket=_TEST_BUCKET)

    return MediaStorage(bucket_name=_TEST_BUCKET, **minio_options)


@pytest.fixture
def object_key() -> str:
    """Unique key so reruns do not collide."""
    return f'uploads/{uuid.uuid4()}.pdf'


@pytest.mark.integration
def test_put_get_remove(storage: MediaStorage, object_key: str) -> None:
    """Test a full object lifecycle.

    Args:
        storage: Storage backend.
        object_key: Key to write.
    """
    container, key = storage.put_object(
        object_key,
        _TEST_FILE_CONTENT,
        'application/pdf',
    )
    assert (container, key) == (_TEST_BUCKET, object_key)

    data, content_type = storage.get_object(object_key)
    assert data == _TEST_FILE_CONTENT
    assert content_type == 'application/pdf'

    listed = storage.list_objects('uploads/')
    assert object_key in {stored.key for stored in listed}

    storage.remove_object(object_key)
    with pytest.raises(MediaError) as exc_info:
        storage.get_object(object_key)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.integration
def test_missing_bucket_is_configuration_error(
    minio_options: dict[str, str],
    object_key: str,
) -> None:
    """Test a missing bucket maps to INTERNAL, never a client error.

    Args:
        minio_options: MinIO connection options.
        object_key: Key to write.
    """
    storage = MediaStorage(
        bucket_name=f'missing-{uuid.uuid4().hex[:12]}',
        **minio_options,
    )

    with pytest.raises(MediaError) as exc_info:
        storage.put_object(object_key, _TEST_FILE_CONTENT, 'application/pdf')

    assert exc_info.value.kind is ErrorKind.INTERNAL
    assert exc_info.value.details['reason'] == 'configuration'


@pytest.mark.integration
def test_wrong_credentials_are_configuration_error(
    minio_options: dict[str, str],
    object_key: str,
) -> None:
    """Test rejected credentials map to INTERNAL.

    Args:
        minio_options: MinIO connection options.
        object_key: Key to write.
    """
    storage = MediaStorage(
        bucket_name=_TEST_BUCKET,
        **{**minio_options, 'secret_key': 'wrong-secret'},
    )

    with pytest.raises(MediaError) as exc_info:
        storage.get_object(object_key)

    assert exc_info.value.kind is ErrorKind.INTERNAL
    assert exc_info.value.details['reason'] == 'configuration'
