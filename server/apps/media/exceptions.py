"""Exceptions for media app."""

import enum
from collections.abc import Iterable, Mapping
from http import HTTPStatus
from typing import Any, final


@enum.unique
class ErrorKind(enum.Enum):
    """Closed set of failure classes, each mapped to an HTTP status."""

    BAD_REQUEST = HTTPStatus.BAD_REQUEST
    NOT_FOUND = HTTPStatus.NOT_FOUND
    PAYLOAD_TOO_LARGE = HTTPStatus.REQUEST_ENTITY_TOO_LARGE
    UNSUPPORTED_MEDIA_TYPE = HTTPStatus.UNSUPPORTED_MEDIA_TYPE
    INTERNAL = HTTPStatus.INTERNAL_SERVER_ERROR

    @property
    def status_code(self) -> int:
        """HTTP status code for this kind."""
        return int(self.value)


@final
class MediaError(Exception):
    """Raised for every classified failure in the media pipeline.

    Infrastructure code translates backend errors (botocore, database,
    multipart framing) into this type, so callers only ever branch on
    ``kind``. The boundary renders ``message`` and ``details`` as JSON.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize MediaError.

        Args:
            kind: Failure class.
            message: Human readable description.
            details: Optional structured payload for the client or logs.
        """
        self.kind = kind
        self.message = message
        self.details = dict(details or {})
        super().__init__(message)

    @property
    def status_code(self) -> int:
        """HTTP status code for this error."""
        return self.kind.status_code

    @classmethod
    def bad_request(
        cls,
        message: str,
        details: Mapping[str, Any] | None = None,
    ) -> 'MediaError':
        """Build a 400 error."""
        return cls(ErrorKind.BAD_REQUEST, message, details)

    @classmethod
    def not_found(cls, message: str = 'File not found') -> 'MediaError':
        """Build a 404 error."""
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def payload_too_large(
        cls,
        message: str = 'File exceeds maximum allowed size',
        max_size: int | None = None,
    ) -> 'MediaError':
        """Build a 413 error."""
        details = {} if max_size is None else {'maxFileSize': max_size}
        return cls(ErrorKind.PAYLOAD_TOO_LARGE, message, details)

    @classmethod
    def unsupported_media_type(
        cls,
        message: str,
        allowed_types: Iterable[str],
    ) -> 'MediaError':
        """Build a 415 error listing the types the client may send."""
        return cls(
            ErrorKind.UNSUPPORTED_MEDIA_TYPE,
            message,
            {'allowedTypes': sorted(allowed_types)},
        )

    @classmethod
    def internal(
        cls,
        message: str = 'Internal server error',
        details: Mapping[str, Any] | None = None,
    ) -> 'MediaError':
        """Build a 500 error."""
        return cls(ErrorKind.INTERNAL, message, details)
