"""Business logic for media operations."""

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, cast

from django.conf import settings
from django.core.files.storage import storages
from django.utils import timezone

from server.apps.media.exceptions import ErrorKind, MediaError
from server.apps.media.infrastructure.metadata import MetadataStore
from server.apps.media.infrastructure.validation import (
    FileValidator,
    get_file_extension,
    resolve_mime_type,
)
from server.apps.media.models import FileMetadata

if TYPE_CHECKING:
    from server.apps.media.infrastructure.multipart import ParsedFile
    from server.apps.media.infrastructure.storage import MediaStorage

logger = logging.getLogger(__name__)

STORAGE_KEY_PREFIX: Final = 'uploads/'


@dataclass(frozen=True, slots=True)
class RetrievedFile:
    """A stored file together with its metadata."""

    record: FileMetadata
    data: bytes
    content_type: str


def parse_file_id(raw_id: str) -> uuid.UUID:
    """Parse a file identifier from a URL segment.

    Raises:
        MediaError: BAD_REQUEST if ``raw_id`` is not a UUID.
    """
    try:
        return uuid.UUID(raw_id)
    except (TypeError, ValueError) as error:
        raise MediaError.bad_request(f'Invalid file id: {raw_id}') from error


def build_storage_key(
    file_id: uuid.UUID,
    filename: str,
    revision: str | None = None,
) -> str:
    """Build the object key for a file.

    Example: uploads/<id>.png, or uploads/<id>-<revision>.png for
    replaced content.
    """
    suffix = f'-{revision}' if revision else ''
    extension = get_file_extension(filename)
    return f'{STORAGE_KEY_PREFIX}{file_id}{suffix}{extension}'


class MediaService:
    """Keeps stored objects and their metadata rows consistent.

    Ordering rules:
    - upload: store object, then insert metadata
    - replace: store new object under a new key, update metadata,
      then drop the old object
    - delete: remove object, then delete metadata
    A failed metadata step after a successful write removes the new
    object again (best effort).
    """

    def __init__(
        self,
        validator: FileValidator,
        storage: 'MediaStorage',
        metadata: MetadataStore,
    ) -> None:
        """Initialize the service with its collaborators.

        Args:
            validator: Content validator.
            storage: Object storage backend.
            metadata: Metadata record store.
        """
        self.validator = validator
        self.storage = storage
        self.metadata = metadata

    def check_file(self, parsed: 'ParsedFile') -> str:
        """Validate a parsed upload and return its effective MIME type.

        Raises:
            MediaError: If the file is rejected.
        """
        mime_type = resolve_mime_type(
            parsed.declared_mime_type,
            parsed.filename,
        )
        self.validator.ensure_valid(parsed.data, mime_type, parsed.filename)
        return mime_type.lower()

    async def upload(
        self,
        parsed: 'ParsedFile',
        file_id: uuid.UUID | None = None,
    ) -> FileMetadata:
        """Validate, store and record a new file.

        Args:
            parsed: Uploaded file part.
            file_id: Identifier to use; a random one by default. A
                supplied id that already has a record is rejected before
                storage is touched.

        Returns:
            Created FileMetadata record.

        Raises:
            MediaError: If validation, storage or the metadata insert fails.
        """
        mime_type = self.check_file(parsed)
        if file_id is None:
            file_id = uuid.uuid4()
        elif await self.metadata.afind_by_id(file_id) is not None:
            # The key is derived from the id; writing would clobber it
            raise MediaError.internal(
                f'File metadata already exists: {file_id}',
                {'id': str(file_id)},
            )
        storage_key = build_storage_key(file_id, parsed.filename)

        # Step 1: Upload to storage first
        container, key = await self.storage.put(
            storage_key,
            parsed.data,
            mime_type,
        )

        # Step 2: Create database record
        record = FileMetadata(
            id=file_id,
            original_name=parsed.filename,
            mime_type=mime_type,
            size=parsed.size,
            storage_key=key,
            storage_container=container,
            uploaded_at=timezone.now(),
        )
        try:
            await self.metadata.asave(record)
        except MediaError:
            logger.exception(
                'Metadata insert failed, rolling back storage upload: %s',
                key,
            )
            await self.storage.discard(key)
            raise

        logger.info(
            'File uploaded successfully: %s (%s, %d bytes)',
            file_id,
            parsed.filename,
            parsed.size,
        )
        return record

    async def replace(
        self,
        file_id: uuid.UUID,
        parsed: 'ParsedFile',
    ) -> FileMetadata:
        """Replace the content of an existing file.

        The id stays the same. The new object is written under a new key,
        so metadata never points at a missing object.

        Returns:
            Updated FileMetadata record.

        Raises:
            MediaError: NOT_FOUND if the id is unknown, or any validation,
                storage or metadata failure before the metadata update.
        """
        existing = await self._require(file_id)
        mime_type = self.check_file(parsed)
        old_key = existing.storage_key
        old_container = existing.storage_container
        new_key = build_storage_key(
            file_id,
            parsed.filename,
            revision=uuid.uuid4().hex[:12],
        )

        logger.info(
            'Replacing file content: %s (%s -> %s)',
            file_id,
            old_key,
            new_key,
        )

        # Step 1: Upload new content under a fresh key
        container, key = await self.storage.put(
            new_key,
            parsed.data,
            mime_type,
        )

        # Step 2: Point metadata at the new object
        try:
            updated = await self.metadata.aupdate(
                file_id,
                original_name=parsed.filename,
                mime_type=mime_type,
                size=parsed.size,
                storage_key=key,
                storage_container=container,
                uploaded_at=timezone.now(),
            )
        except MediaError:
            logger.exception('Metadata update failed, rolling back: %s', key)
            await self.storage.discard(key)
            raise

        if updated is None:
            logger.warning('File deleted during replace: %s', file_id)
            await self.storage.discard(key)
            raise MediaError.not_found()

        # Step 3: Drop the old object (best effort)
        if old_container != container:
            logger.warning(
                'Old object is in another container, left in place: %s/%s',
                old_container,
                old_key,
            )
        elif old_key != key:
            await self.storage.discard(old_key)

        logger.info(
            'File replaced successfully: %s (%s)',
            file_id,
            parsed.filename,
        )
        return updated

    async def delete(self, file_id: uuid.UUID) -> None:
        """Delete a file's object and then its metadata.

        An object that is already missing does not stop the delete.

        Raises:
            MediaError: NOT_FOUND if the id is unknown, or the storage
                failure that prevented removing the object.
        """
        record = await self._require(file_id)

        try:
            await self.storage.remove(record.storage_key)
        except MediaError as error:
            if error.kind is not ErrorKind.NOT_FOUND:
                raise
            logger.warning(
                'Object already missing, deleting metadata anyway: %s',
                record.storage_key,
            )

        if not await self.metadata.adelete(file_id):
            logger.warning('File record was already deleted: %s', file_id)
        logger.info(
            'File deleted successfully: %s (%s)',
            file_id,
            record.original_name,
        )

    async def retrieve(self, file_id: uuid.UUID) -> RetrievedFile:
        """Fetch a file's content.

        Raises:
            MediaError: NOT_FOUND if the id is unknown, INTERNAL if the
                metadata exists but the object does not.
        """
        record = await self._require(file_id)
        try:
            data, content_type = await self.storage.get(record.storage_key)
        except MediaError as error:
            if error.kind is not ErrorKind.NOT_FOUND:
                raise
            logger.error(
                'Stored object missing for file %s: %s/%s',
                file_id,
                record.storage_container,
                record.storage_key,
            )
            raise MediaError.internal(
                'Stored object is missing for this file',
                {'id': str(file_id), 'storageKey': record.storage_key},
            ) from error

        if content_type == 'application/octet-stream':
            content_type = record.mime_type
        return RetrievedFile(
            record=record,
            data=data,
            content_type=content_type,
        )

    async def list_files(self) -> list[FileMetadata]:
        """List all files, most recent first."""
        return await self.metadata.afind_all()

    async def _require(self, file_id: uuid.UUID) -> FileMetadata:
        record = await self.metadata.afind_by_id(file_id)
        if record is None:
            raise MediaError.not_found()
        return record


def build_media_service() -> MediaService:
    """Wire a MediaService from Django settings.

    Returns:
        MediaService using the default storage and database.
    """
    return MediaService(
        validator=FileValidator(max_file_size=settings.MEDIA_MAX_FILE_SIZE),
        storage=cast('MediaStorage', storages['default']),
        metadata=MetadataStore(),
    )
