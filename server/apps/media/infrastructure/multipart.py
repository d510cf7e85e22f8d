"""Streaming multipart decoding with bounded per-file buffering.

Django's ``MultiPartParser`` does the framing; ``BoundedMemoryUploadHandler``
keeps each file part in memory and stops the upload as soon as a part grows
past the byte limit, so an oversized file is never fully buffered. The parser
then drains the remaining body to keep the connection usable.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import IO, Any, Final, final, override

from asgiref.sync import sync_to_async
from django.core.exceptions import (
    RequestDataTooBig,
    TooManyFieldsSent,
    TooManyFilesSent,
)
from django.core.files.uploadhandler import FileUploadHandler, StopUpload
from django.http.multipartparser import MultiPartParser, MultiPartParserError

from server.apps.media.exceptions import MediaError

logger = logging.getLogger(__name__)

_FALLBACK_CONTENT_TYPE: Final = 'application/octet-stream'


@dataclass(frozen=True, slots=True)
class ParsedFile:
    """One fully buffered file part of a multipart request."""

    field_name: str
    filename: str
    declared_mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        """Content length in bytes."""
        return len(self.data)


@final
class BoundedMemoryUploadHandler(FileUploadHandler):
    """Upload handler that buffers file parts in memory up to a limit.

    Exceeding either limit raises ``StopUpload`` without resetting the
    connection; the handler records why so the caller can raise the
    right error after the parser has drained the body.
    """

    def __init__(self, max_file_size: int, max_files: int = 1) -> None:
        """Initialize the handler.

        Args:
            max_file_size: Largest accepted part, in bytes (inclusive).
            max_files: Largest accepted number of file parts.
        """
        super().__init__()
        self.max_file_size = max_file_size
        self.max_files = max_files
        self.parts: list[ParsedFile] = []
        self.oversized_filename: str | None = None
        self.too_many_files = False
        self._files_seen = 0
        self._buffer = bytearray()

    @override
    def new_file(self, *args: Any, **kwargs: Any) -> None:
        """Start buffering a new file part."""
        super().new_file(*args, **kwargs)
        self._files_seen += 1
        if self._files_seen > self.max_files:
            self.too_many_files = True
            raise StopUpload(connection_reset=False)

        # Trust a declared part length only to fail early
        if self.content_length and self.content_length > self.max_file_size:
            self.oversized_filename = self.file_name
            raise StopUpload(connection_reset=False)

        self._buffer = bytearray()

    @override
    def receive_data_chunk(self, raw_data: bytes, start: int) -> None:
        """Append a chunk, aborting once the part exceeds the limit."""
        if start + len(raw_data) > self.max_file_size:
            self.oversized_filename = self.file_name
            self._buffer = bytearray()
            raise StopUpload(connection_reset=False)
        self._buffer.extend(raw_data)

    @override
    def file_complete(self, file_size: int) -> ParsedFile:
        """Materialize the buffered part."""
        part = ParsedFile(
            field_name=self.field_name,
            filename=self.file_name or 'unknown',
            declared_mime_type=self.content_type or _FALLBACK_CONTENT_TYPE,
            data=bytes(self._buffer),
        )
        self._buffer = bytearray()
        self.parts.append(part)
        return part


def _normalize_content_type(content_type: str) -> str:
    media_type, sep, params = content_type.partition(';')
    # The boundary parameter is case sensitive
    return f'{media_type.strip().lower()}{sep}{params}'


def decode_multipart(
    meta: Mapping[str, Any],
    stream: IO[bytes],
    max_file_size: int,
    max_files: int = 1,
) -> list[ParsedFile]:
    """Decode a multipart/form-data body into buffered file parts.

    The caller must check that the request declares a multipart content
    type before calling this function.

    Args:
        meta: WSGI/ASGI style request metadata (``CONTENT_TYPE``,
            ``CONTENT_LENGTH``).
        stream: Readable request body.
        max_file_size: Per-file byte limit.
        max_files: Maximum number of file parts.

    Returns:
        File parts in the order they appear in the body.

    Raises:
        MediaError: BAD_REQUEST for malformed framing or too many files,
            PAYLOAD_TOO_LARGE when a part exceeds ``max_file_size``.
    """
    handler = BoundedMemoryUploadHandler(max_file_size, max_files)
    meta = {
        **meta,
        'CONTENT_TYPE': _normalize_content_type(
            meta.get('CONTENT_TYPE', ''),
        ),
    }
    try:
        parser = MultiPartParser(meta, stream, [handler])
        parser.parse()
    except TooManyFilesSent as error:
        raise MediaError.bad_request('Too many files in request') from error
    except (TooManyFieldsSent, RequestDataTooBig) as error:
        raise MediaError.bad_request(str(error)) from error
    except MultiPartParserError as error:
        logger.warning('Malformed multipart request: %s', error)
        raise MediaError.bad_request('Malformed multipart request') from error

    if handler.too_many_files:
        logger.warning('Rejected request with more than %d files', max_files)
        raise MediaError.bad_request(
            f'Too many files, maximum {max_files} allowed per request',
        )

    if handler.oversized_filename is not None:
        logger.warning(
            'Rejected oversized upload: %s (limit %d bytes)',
            handler.oversized_filename,
            max_file_size,
        )
        raise MediaError.payload_too_large(
            f'File "{handler.oversized_filename}" exceeds the maximum '
            f'allowed size of {max_file_size} bytes',
            max_file_size,
        )

    return handler.parts


# Parsing reads the spooled body and copies bytes; keep it off the event loop
adecode_multipart = sync_to_async(decode_multipart, thread_sensitive=False)
