"""Database models for media app."""

from typing import Final, final, override

from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_STORAGE_KEY_MAX_LENGTH: Final = 1024
_CONTAINER_MAX_LENGTH: Final = 255


@final
class FileMetadata(models.Model):
    """Metadata for one uploaded file stored in object storage.

    The identifier is assigned by the upload logic and never changes.
    ``storage_key`` always points at the current object in
    ``storage_container``; a replace moves it to a new key.
    """

    id = models.UUIDField(
        primary_key=True,
        editable=False,
    )

    original_name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        help_text='Filename supplied by the client',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Validated MIME type',
    )

    size = models.PositiveBigIntegerField(
        help_text='File size in bytes',
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        help_text='Object key: uploads/<id><ext>',
    )

    storage_container = models.CharField(
        max_length=_CONTAINER_MAX_LENGTH,
        help_text='Bucket holding the object',
    )

    # Time of the most recent successful write (upload or replace)
    uploaded_at = models.DateTimeField()

    class Meta:
        """Model metadata."""

        db_table = 'file_metadata'
        verbose_name = 'File metadata'  # type: ignore[mutable-override]
        verbose_name_plural = 'File metadata'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at', '-id']

        indexes = [
            # Optimize recent files queries
            models.Index(
                fields=['-uploaded_at', '-id'],
                name='file_metadata_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.original_name} ({self.id})'

    def to_dict(self) -> dict[str, object]:
        """Public representation used in API responses.

        Returns:
            Dictionary without storage location fields.
        """
        return {
            'id': str(self.id),
            'originalName': self.original_name,
            'mimeType': self.mime_type,
            'size': self.size,
            'uploadedAt': self.uploaded_at.isoformat(),
        }
