"""Tests for upload content validation."""

import pytest

from server.apps.media.exceptions import ErrorKind, MediaError
from server.apps.media.infrastructure.validation import (
    FileValidator,
    Rejection,
    get_file_extension,
    matches_signature,
    mime_type_from_extension,
    resolve_mime_type,
)


@pytest.fixture
def validator() -> FileValidator:
    """Validator with a 16 byte limit."""
    return FileValidator(max_file_size=16)


def test_get_file_extension():
    """Test extension extraction uses the last dot segment."""
    assert get_file_extension('photo.JPG') == '.jpg'
    assert get_file_extension('archive.tar.pdf') == '.pdf'
    assert get_file_extension('README') == ''
    assert get_file_extension('trailing.') == ''


def test_mime_type_from_extension():
    """Test mapping of supported extensions."""
    assert mime_type_from_extension('a.jpeg') == 'image/jpeg'
    assert mime_type_from_extension('a.jpg') == 'image/jpeg'
    assert mime_type_from_extension('a.PNG') == 'image/png'
    assert mime_type_from_extension('a.gif') == 'image/gif'
    assert mime_type_from_extension('doc.pdf') == 'application/pdf'
    assert mime_type_from_extension('notes.txt') is None


def test_resolve_mime_type_refines_generic_type():
    """Test octet-stream falls back to the extension mapping."""
    assert (
        resolve_mime_type('application/octet-stream', 'doc.pdf')
        == 'application/pdf'
    )
    assert (
        resolve_mime_type('application/octet-stream', 'blob.bin')
        == 'application/octet-stream'
    )


def test_resolve_mime_type_keeps_specific_type():
    """Test a specific declared type is never overridden by the name."""
    assert resolve_mime_type('text/plain', 'photo.jpg') == 'text/plain'


def test_matches_signature():
    """Test magic byte prefixes per type."""
    assert matches_signature(b'\xff\xd8\xff\xe0', 'image/jpeg')
    assert matches_signature(b'GIF87a...', 'image/gif')
    assert matches_signature(b'GIF89a...', 'IMAGE/GIF')
    assert not matches_signature(b'\x00\xd8\xff\xe0', 'image/jpeg')
    # Shorter than the signature
    assert not matches_signature(b'\xff\xd8', 'image/jpeg')
    # No registered signature
    assert matches_signature(b'anything', 'text/plain')


def test_validate_accepts_matching_content(validator, jpeg_bytes):
    """Test valid JPEG passes every check."""
    result = validator.validate(jpeg_bytes, 'image/jpeg', 'a.jpg')

    assert result.is_valid
    assert result.rejection is None
    assert result.error is None


def test_validate_declared_type_is_case_insensitive(validator, png_bytes):
    """Test allow-list comparison ignores case."""
    result = validator.validate(png_bytes, 'Image/PNG', 'a.png')

    assert result.is_valid


def test_validate_rejects_first_byte_mutation(validator, jpeg_bytes):
    """Test changing the first byte breaks the signature."""
    mutated = b'\x00' + jpeg_bytes[1:]

    result = validator.validate(mutated, 'image/jpeg', 'a.jpg')

    assert result.rejection is Rejection.CONTENT_MISMATCH


def test_validate_rejects_empty_file(validator):
    """Test zero-length content is rejected first."""
    result = validator.validate(b'', 'text/plain', 'a.txt')

    assert result.rejection is Rejection.EMPTY


def test_validate_size_limit_is_inclusive(validator):
    """Test exactly max bytes passes and max + 1 fails."""
    at_limit = b'%PDF' + b'0' * 12
    over_limit = at_limit + b'0'

    assert validator.validate(at_limit, 'application/pdf', 'a.pdf').is_valid
    result = validator.validate(over_limit, 'application/pdf', 'a.pdf')
    assert result.rejection is Rejection.OVERSIZED


def test_validate_rejects_type_outside_allow_list(validator):
    """Test a declared type that is not allowed."""
    result = validator.validate(b'hello', 'text/plain', 'a.txt')

    assert result.rejection is Rejection.UNSUPPORTED_TYPE
    assert 'text/plain' in (result.error or '')


def test_ensure_valid_maps_rejections_to_errors(validator, jpeg_bytes):
    """Test each rejection raises the matching error kind."""
    with pytest.raises(MediaError) as empty:
        validator.ensure_valid(b'', 'image/jpeg', 'a.jpg')
    assert empty.value.kind is ErrorKind.BAD_REQUEST

    with pytest.raises(MediaError) as oversized:
        validator.ensure_valid(jpeg_bytes * 4, 'image/jpeg', 'a.jpg')
    assert oversized.value.kind is ErrorKind.PAYLOAD_TOO_LARGE
    assert oversized.value.details == {'maxFileSize': 16}

    with pytest.raises(MediaError) as mismatch:
        validator.ensure_valid(b'not a jpeg', 'image/jpeg', 'a.jpg')
    assert mismatch.value.kind is ErrorKind.UNSUPPORTED_MEDIA_TYPE
    assert mismatch.value.details['allowedTypes'] == [
        'application/pdf',
        'image/gif',
        'image/jpeg',
        'image/png',
    ]


def test_ensure_valid_passes_silently(validator, pdf_bytes):
    """Test accepted content does not raise."""
    validator.ensure_valid(pdf_bytes, 'application/pdf', 'doc.pdf')
