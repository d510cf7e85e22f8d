"""Shared fixtures for media app tests."""

from typing import Final, cast

import boto3
import pytest
from django.core.files.storage import storages
from moto import mock_aws

from server.apps.media.infrastructure.metadata import MetadataStore
from server.apps.media.infrastructure.multipart import ParsedFile
from server.apps.media.infrastructure.storage import MediaStorage
from server.apps.media.infrastructure.validation import FileValidator
from server.apps.media.logic.media_operations import MediaService

_BUCKET: Final = 'media-uploads'

_JPEG_BYTES: Final = b'\xff\xd8\xff\xe0\x00\x10JFIF\x00'
_PNG_BYTES: Final = b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR'
_PDF_BYTES: Final = b'%PDF-1.4\n%\xe2\xe3\xcf\xd3\n'


@pytest.fixture
def mock_s3():
    """Mock S3 service with media-uploads bucket.

    Yields:
        boto3 S3 resource with media-uploads bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=_BUCKET)
        yield conn


@pytest.fixture
def bucket(mock_s3):
    """Bucket resource used to inspect stored objects directly."""
    return mock_s3.Bucket(_BUCKET)


@pytest.fixture
def media_storage(mock_s3) -> MediaStorage:
    """Configured default storage backed by the mocked bucket."""
    return cast(MediaStorage, storages['default'])


@pytest.fixture
def metadata_store(db) -> MetadataStore:
    """Metadata store on the test database."""
    return MetadataStore()


@pytest.fixture
def media_service(media_storage, metadata_store) -> MediaService:
    """Service wired to mocked storage and the test database.

    The size limit is small so oversize cases stay cheap.
    """
    return MediaService(
        validator=FileValidator(max_file_size=1024),
        storage=media_storage,
        metadata=metadata_store,
    )


@pytest.fixture
def jpeg_file() -> ParsedFile:
    """Small JPEG upload."""
    return ParsedFile(
        field_name='file',
        filename='photo.jpg',
        declared_mime_type='image/jpeg',
        data=_JPEG_BYTES,
    )


@pytest.fixture
def pdf_file() -> ParsedFile:
    """Small PDF upload."""
    return ParsedFile(
        field_name='file',
        filename='report.pdf',
        declared_mime_type='application/pdf',
        data=_PDF_BYTES,
    )


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Content starting with the JPEG signature."""
    return _JPEG_BYTES


@pytest.fixture
def png_bytes() -> bytes:
    """Content starting with the PNG signature."""
    return _PNG_BYTES


@pytest.fixture
def pdf_bytes() -> bytes:
    """Content starting with the PDF signature."""
    return _PDF_BYTES
