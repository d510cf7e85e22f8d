"""Persistence of file metadata records."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Final

from asgiref.sync import sync_to_async
from django.db import DatabaseError, IntegrityError, connections, transaction

from server.apps.media.exceptions import MediaError
from server.apps.media.models import FileMetadata

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS: Final = frozenset((
    'original_name',
    'mime_type',
    'size',
    'storage_key',
    'storage_container',
    'uploaded_at',
))


class MetadataStore:
    """Insert-only, id-keyed store of ``FileMetadata`` rows.

    Every mutating call runs in its own transaction and is committed
    before it returns. Uniqueness of ids is enforced by the primary key,
    so two concurrent inserts of the same id produce one success and one
    failure without any locking here.

    Methods prefixed with ``a`` are the async variants; they run the
    query through the thread that owns the database connection.
    """

    def __init__(self, using: str = 'default') -> None:
        """Initialize the store.

        Args:
            using: Database alias holding the metadata table.
        """
        self.using = using

    def save(self, record: FileMetadata) -> FileMetadata:
        """Insert a new record.

        Raises:
            MediaError: INTERNAL if a record with the same id exists or
                the database fails.
        """
        try:
            with self._translate_errors('insert'):
                with transaction.atomic(using=self.using):
                    record.save(force_insert=True, using=self.using)
        except IntegrityError as error:
            logger.warning('File record already exists: %s', record.id)
            raise MediaError.internal(
                f'File metadata already exists: {record.id}',
                {'id': str(record.id)},
            ) from error
        logger.info('File record created in database: %s', record.id)
        return record

    def find_by_id(self, file_id: uuid.UUID) -> FileMetadata | None:
        """Get a record by id, or None if unknown."""
        with self._translate_errors('select'):
            return self._queryset().filter(pk=file_id).first()

    def find_all(self) -> list[FileMetadata]:
        """Get all records, most recently uploaded first."""
        with self._translate_errors('select'):
            return list(self._queryset().order_by('-uploaded_at', '-id'))

    def update(
        self,
        file_id: uuid.UUID,
        **fields: Any,
    ) -> FileMetadata | None:
        """Merge ``fields`` onto an existing record.

        Fields that are not supplied keep their stored values.

        Args:
            file_id: Record id.
            fields: Model field values to change (id cannot be changed).

        Returns:
            The updated record, or None if the id is unknown.

        Raises:
            ValueError: If an unknown or immutable field is supplied.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(
                f'Cannot update fields: {", ".join(sorted(unknown))}',
            )

        with self._translate_errors('update'):
            with transaction.atomic(using=self.using):
                record = (
                    self._queryset()
                    .select_for_update()
                    .filter(pk=file_id)
                    .first()
                )
                if record is None:
                    return None
                if not fields:
                    return record
                for field_name, field_value in fields.items():
                    setattr(record, field_name, field_value)
                record.save(update_fields=sorted(fields), using=self.using)

        logger.info(
            'File record updated in database: %s (%s)',
            file_id,
            ', '.join(sorted(fields)),
        )
        return record

    def delete(self, file_id: uuid.UUID) -> bool:
        """Delete a record.

        Returns:
            True if a row was removed, False if the id was unknown.
        """
        with self._translate_errors('delete'):
            with transaction.atomic(using=self.using):
                deleted, _ = self._queryset().filter(pk=file_id).delete()
        if deleted:
            logger.info('File record deleted from database: %s', file_id)
        return deleted > 0

    def close(self) -> None:
        """Close this thread's connection to the metadata database."""
        connections[self.using].close()

    async def asave(self, record: FileMetadata) -> FileMetadata:
        """Async variant of :meth:`save`."""
        return await sync_to_async(self.save)(record)

    async def afind_by_id(self, file_id: uuid.UUID) -> FileMetadata | None:
        """Async variant of :meth:`find_by_id`."""
        return await sync_to_async(self.find_by_id)(file_id)

    async def afind_all(self) -> list[FileMetadata]:
        """Async variant of :meth:`find_all`."""
        return await sync_to_async(self.find_all)()

    async def aupdate(
        self,
        file_id: uuid.UUID,
        **fields: Any,
    ) -> FileMetadata | None:
        """Async variant of :meth:`update`."""
        return await sync_to_async(self.update)(file_id, **fields)

    async def adelete(self, file_id: uuid.UUID) -> bool:
        """Async variant of :meth:`delete`."""
        return await sync_to_async(self.delete)(file_id)

    def _queryset(self):  # type: ignore[no-untyped-def]
        return FileMetadata.objects.using(self.using)

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        """Re-raise database failures (except IntegrityError) as MediaError."""
        try:
            yield
        except IntegrityError:
            raise
        except DatabaseError as error:
            logger.exception('Metadata %s failed', operation)
            raise MediaError.internal(
                'Metadata store request failed',
                {'operation': operation, 'cause': str(error)},
            ) from error
