"""Management command to delete stored objects without metadata."""

import logging
from datetime import timedelta
from typing import Any, Final, cast, override

from django.conf import settings
from django.core.files.storage import storages
from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.media.exceptions import MediaError
from server.apps.media.infrastructure.storage import MediaStorage
from server.apps.media.logic.media_operations import STORAGE_KEY_PREFIX
from server.apps.media.models import FileMetadata

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Delete objects under uploads/ that no metadata record references.

    Such objects are left behind when best-effort cleanup fails, for
    example when the previous object of a replace cannot be removed.
    Objects younger than MEDIA_ORPHAN_GRACE_PERIOD are skipped because
    their metadata row may not be committed yet.
    """

    help = 'Delete stored media objects that no metadata record references'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max objects to delete (default: {_DEFAULT_BATCH_SIZE})',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the purge command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        storage = cast(MediaStorage, storages['default'])

        cutoff = timezone.now() - timedelta(
            seconds=settings.MEDIA_ORPHAN_GRACE_PERIOD,
        )
        self.stdout.write(
            f'Looking for unreferenced objects in {storage.container} '
            f'created before {cutoff}',
        )

        referenced = set(
            FileMetadata.objects.filter(
                storage_container=storage.container,
            ).values_list('storage_key', flat=True),
        )
        orphans = [
            stored
            for stored in storage.list_objects(STORAGE_KEY_PREFIX)
            if stored.key not in referenced and stored.last_modified <= cutoff
        ][:batch_size]

        count = 0
        failed = 0

        for stored in orphans:
            if dry_run:
                self.stdout.write(
                    f'Would delete: {stored.key} ({stored.size} bytes, '
                    f'modified: {stored.last_modified})',
                )
                count += 1
                continue

            try:
                storage.remove_object(stored.key)
            except MediaError as exc:
                self.stderr.write(f'Failed to delete {stored.key}: {exc}')
                failed += 1
            else:
                logger.info('Purged orphaned object: %s', stored.key)
                count += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} orphaned objects'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} orphaned objects, {failed} failed',
                ),
            )
