"""Custom storage backend for S3-compatible object storage."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Final, NoReturn, final

from asgiref.sync import sync_to_async
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    NoCredentialsError,
    ReadTimeoutError,
)
from storages.backends.s3 import S3Storage

from server.apps.media.exceptions import MediaError

logger = logging.getLogger(__name__)

_READ_CHUNK_SIZE: Final = 64 * 1024
_FALLBACK_CONTENT_TYPE: Final = 'application/octet-stream'

_NOT_FOUND_CODES: Final = frozenset(('NoSuchKey', 'NotFound', '404'))
_CONFIGURATION_CODES: Final = frozenset((
    'NoSuchBucket',
    'AccessDenied',
    'AllAccessDisabled',
    'InvalidAccessKeyId',
    'SignatureDoesNotMatch',
    'ExpiredToken',
    'InvalidToken',
))
_RETRYABLE_CODES: Final = frozenset((
    'RequestTimeout',
    'RequestTimeoutException',
    'SlowDown',
))


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Listing entry for one object in the bucket."""

    key: str
    size: int
    last_modified: datetime


@final
class MediaStorage(S3Storage):
    """S3 storage backend for uploaded media.

    Extends django-storages S3Storage with:
    - Byte-oriented put/get/remove keyed by storage key
    - Translation of botocore failures into MediaError
    - Async variants that keep network calls off the event loop
    - Best-effort cleanup for orphaned objects
    """

    @property
    def container(self) -> str:
        """Name of the bucket objects are written to."""
        return self.bucket_name

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
    ) -> tuple[str, str]:
        """Store ``data`` under ``key``.

        Args:
            key: Storage key (e.g., 'uploads/<id>.png').
            data: Object content.
            content_type: MIME type recorded on the object.

        Returns:
            Tuple of (container, key) the object was written to.

        Raises:
            MediaError: If the backend rejects the write.
        """
        with self._translate_errors('upload', key):
            logger.info(
                'Uploading object to storage: %s/%s (%d bytes, %s)',
                self.bucket_name,
                key,
                len(data),
                content_type,
            )
            self.bucket.Object(self._normalize_name(key)).put(
                Body=data,
                ContentType=content_type,
            )
        logger.info(
            'Successfully uploaded object: %s/%s',
            self.bucket_name,
            key,
        )
        return self.bucket_name, key

    def get_object(self, key: str) -> tuple[bytes, str]:
        """Read the whole object stored under ``key``.

        The response stream is drained into one buffer so the caller
        knows the total length before responding.

        Returns:
            Tuple of (content, content type).

        Raises:
            MediaError: NOT_FOUND if the key does not exist, INTERNAL for
                other backend failures.
        """
        with self._translate_errors('download', key):
            logger.info(
                'Downloading object from storage: %s/%s',
                self.bucket_name,
                key,
            )
            response = self.bucket.Object(self._normalize_name(key)).get()
            body = response['Body']
            try:
                data = b''.join(body.iter_chunks(_READ_CHUNK_SIZE))
            finally:
                body.close()
        content_type = response.get('ContentType') or _FALLBACK_CONTENT_TYPE
        return data, content_type

    def remove_object(self, key: str) -> None:
        """Delete the object stored under ``key``.

        Raises:
            MediaError: If the backend rejects the delete.
        """
        with self._translate_errors('delete', key):
            logger.info(
                'Deleting object from storage: %s/%s',
                self.bucket_name,
                key,
            )
            self.bucket.Object(self._normalize_name(key)).delete()
        logger.info(
            'Successfully deleted object: %s/%s',
            self.bucket_name,
            key,
        )

    def discard_object(self, key: str) -> bool:
        """Delete an object that is no longer referenced.

        Used to roll back a write whose metadata step failed, or to drop
        the previous object after a replace. This is a best-effort
        operation - if deletion fails, the error is logged but not raised.
        The object stays in storage and ``purge_orphaned_media`` can
        reclaim it later.

        Returns:
            True if the object was deleted.
        """
        try:
            self.remove_object(key)
        except MediaError:
            logger.exception('Failed to delete object (orphaned): %s', key)
            return False
        return True

    def list_objects(self, prefix: str) -> list[StoredObject]:
        """List objects whose key starts with ``prefix``.

        Raises:
            MediaError: If the listing fails.
        """
        with self._translate_errors('list', prefix):
            return [
                StoredObject(
                    key=summary.key,
                    size=summary.size,
                    last_modified=summary.last_modified,
                )
                for summary in self.bucket.objects.filter(
                    Prefix=self._normalize_name(prefix),
                )
            ]

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
    ) -> tuple[str, str]:
        """Async variant of :meth:`put_object`."""
        return await sync_to_async(self.put_object, thread_sensitive=False)(
            key,
            data,
            content_type,
        )

    async def get(self, key: str) -> tuple[bytes, str]:
        """Async variant of :meth:`get_object`."""
        return await sync_to_async(self.get_object, thread_sensitive=False)(
            key,
        )

    async def remove(self, key: str) -> None:
        """Async variant of :meth:`remove_object`."""
        await sync_to_async(self.remove_object, thread_sensitive=False)(key)

    async def discard(self, key: str) -> bool:
        """Async variant of :meth:`discard_object`."""
        return await sync_to_async(
            self.discard_object,
            thread_sensitive=False,
        )(key)

    @contextmanager
    def _translate_errors(self, operation: str, key: str) -> Iterator[None]:
        """Re-raise botocore failures as MediaError."""
        try:
            yield
        except ClientError as error:
            self._raise_for_client_error(error, operation, key)
        except (ConnectTimeoutError, ReadTimeoutError) as error:
            logger.exception(
                'Storage %s timed out: %s/%s',
                operation,
                self.bucket_name,
                key,
            )
            raise MediaError.internal(
                'Object storage request timed out, please retry',
                {'retryable': True, 'operation': operation},
            ) from error
        except NoCredentialsError as error:
            logger.exception('Storage credentials are not configured')
            raise MediaError.internal(
                'Object storage is misconfigured',
                {'reason': 'configuration', 'operation': operation},
            ) from error
        except BotoCoreError as error:
            logger.exception(
                'Storage %s failed: %s/%s',
                operation,
                self.bucket_name,
                key,
            )
            raise MediaError.internal(
                'Object storage request failed',
                {'operation': operation, 'cause': str(error)},
            ) from error

    def _raise_for_client_error(
        self,
        error: ClientError,
        operation: str,
        key: str,
    ) -> NoReturn:
        error_info = error.response.get('Error', {})
        code = str(error_info.get('Code', ''))
        status = error.response.get('ResponseMetadata', {}).get(
            'HTTPStatusCode',
        )

        if code in _NOT_FOUND_CODES:
            logger.warning(
                'Object not found during %s: %s/%s',
                operation,
                self.bucket_name,
                key,
            )
            raise MediaError.not_found(f'Object not found: {key}') from error

        logger.error(
            'Storage %s failed for %s/%s: %s (HTTP %s)',
            operation,
            self.bucket_name,
            key,
            code,
            status,
        )
        if code in _CONFIGURATION_CODES:
            raise MediaError.internal(
                'Object storage is misconfigured',
                {'reason': 'configuration', 'code': code},
            ) from error
        if code in _RETRYABLE_CODES:
            raise MediaError.internal(
                'Object storage request timed out, please retry',
                {'retryable': True, 'code': code},
            ) from error
        raise MediaError.internal(
            f'Object storage error: {error_info.get("Message") or error}',
            {'code': code, 'cause': str(error)},
        ) from error
