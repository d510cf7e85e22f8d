"""Content validation for uploaded media.

Three independent signals are used to classify an upload:
the declared MIME type, the filename extension (only to refine the
generic ``application/octet-stream`` fallback) and the leading
magic bytes of the content itself.
"""

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from server.apps.media.exceptions import MediaError

logger = logging.getLogger(__name__)

GENERIC_MIME_TYPE: Final = 'application/octet-stream'

ALLOWED_MIME_TYPES: Final = frozenset((
    'image/jpeg',
    'image/png',
    'image/gif',
    'application/pdf',
))

EXTENSION_TO_MIME: Final[Mapping[str, str]] = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.pdf': 'application/pdf',
}

# Leading bytes each type must start with; any entry may match
MAGIC_SIGNATURES: Final[Mapping[str, tuple[bytes, ...]]] = {
    'image/jpeg': (b'\xff\xd8\xff',),
    'image/png': (b'\x89PNG',),
    'image/gif': (b'GIF87a', b'GIF89a'),
    'application/pdf': (b'%PDF',),
}


@enum.unique
class Rejection(enum.Enum):
    """Why an upload was refused."""

    EMPTY = 'empty'
    OVERSIZED = 'oversized'
    UNSUPPORTED_TYPE = 'unsupported_type'
    CONTENT_MISMATCH = 'content_mismatch'


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of file validation.

    Attributes:
        rejection: Reason for refusal, or None when the file is accepted.
        error: Human-readable error message if validation failed.
    """

    rejection: Rejection | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        """Whether the file passed every check."""
        return self.rejection is None


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.PDF').

    Returns:
        Extension with dot, lowercase (e.g., '.pdf').
        Returns empty string if no extension or the name ends with a dot.
    """
    _, dot, extension = filename.rpartition('.')
    if not dot or not extension:
        return ''
    return f'.{extension.lower()}'


def mime_type_from_extension(filename: str) -> str | None:
    """Map a filename extension to one of the supported MIME types.

    Args:
        filename: Client supplied filename.

    Returns:
        MIME type, or None when the extension is not recognised.
    """
    return EXTENSION_TO_MIME.get(get_file_extension(filename))


def resolve_mime_type(declared_type: str, filename: str) -> str:
    """Refine the generic fallback type using the filename extension.

    Only ``application/octet-stream`` is refined; any other declared
    type is returned unchanged so that validation judges what the client
    actually claimed.
    """
    if declared_type.lower() != GENERIC_MIME_TYPE:
        return declared_type
    return mime_type_from_extension(filename) or declared_type


def matches_signature(data: bytes, mime_type: str) -> bool:
    """Check the leading bytes of ``data`` against the type's signature.

    Types without a registered signature pass. Content shorter than the
    signature never matches.
    """
    signatures = MAGIC_SIGNATURES.get(mime_type.lower())
    if signatures is None:
        return True
    return any(data.startswith(signature) for signature in signatures)


class FileValidator:
    """Validates buffered uploads against the allow-list.

    Example:
        validator = FileValidator(max_file_size=10 * 1024 * 1024)
        result = validator.validate(data, 'image/png', 'photo.png')
        if not result.is_valid:
            print(result.rejection, result.error)
    """

    def __init__(
        self,
        max_file_size: int,
        allowed_mime_types: frozenset[str] = ALLOWED_MIME_TYPES,
    ) -> None:
        """Initialize validator.

        Args:
            max_file_size: Largest accepted file, in bytes (inclusive).
            allowed_mime_types: Lowercase MIME types that may be stored.
        """
        self.max_file_size = max_file_size
        self.allowed_mime_types = allowed_mime_types

    def validate(
        self,
        data: bytes,
        declared_type: str,
        filename: str,
    ) -> ValidationResult:
        """Validate file content.

        Performs the following checks in order, first failure wins:
        1. Empty file check
        2. File size limit check
        3. Declared MIME type allow-list check
        4. Magic bytes check against the declared type

        Args:
            data: Complete file content.
            declared_type: MIME type claimed by the client.
            filename: Client supplied filename (used for logging).

        Returns:
            ValidationResult with the outcome.
        """
        if not data:
            return ValidationResult(Rejection.EMPTY, 'File is empty')

        if len(data) > self.max_file_size:
            return ValidationResult(
                Rejection.OVERSIZED,
                f'File exceeds the maximum allowed size of '
                f'{self.max_file_size} bytes',
            )

        if declared_type.lower() not in self.allowed_mime_types:
            logger.warning(
                'Rejected file %s with mime type: %s',
                filename,
                declared_type,
            )
            return ValidationResult(
                Rejection.UNSUPPORTED_TYPE,
                f'File type "{declared_type}" is not allowed',
            )

        if not matches_signature(data, declared_type):
            logger.warning(
                'Rejected file %s: content does not match %s',
                filename,
                declared_type,
            )
            return ValidationResult(
                Rejection.CONTENT_MISMATCH,
                f'File content does not match declared type "{declared_type}"',
            )

        return ValidationResult()

    def ensure_valid(
        self,
        data: bytes,
        declared_type: str,
        filename: str,
    ) -> None:
        """Validate and raise the matching MediaError on rejection.

        Raises:
            MediaError: BAD_REQUEST for empty files, PAYLOAD_TOO_LARGE for
                oversized ones, UNSUPPORTED_MEDIA_TYPE otherwise.
        """
        result = self.validate(data, declared_type, filename)
        if result.rejection is None:
            return

        message = result.error or 'Invalid file'
        if result.rejection is Rejection.EMPTY:
            raise MediaError.bad_request(message)
        if result.rejection is Rejection.OVERSIZED:
            raise MediaError.payload_too_large(message, self.max_file_size)
        raise MediaError.unsupported_media_type(
            message,
            self.allowed_mime_types,
        )
