"""Tests for purge_orphaned_media management command."""

from io import StringIO
from unittest import mock

import pytest
from asgiref.sync import async_to_sync
from django.core.management import call_command

from server.apps.media.exceptions import MediaError


def _stored_keys(bucket) -> set[str]:
    return {summary.key for summary in bucket.objects.all()}


@pytest.fixture
def no_grace_period(settings):
    """Treat every object as old enough to purge."""
    settings.MEDIA_ORPHAN_GRACE_PERIOD = 0


@pytest.mark.django_db
@pytest.mark.usefixtures('no_grace_period')
class TestPurgeOrphanedMediaCommand:
    """Tests for purge_orphaned_media management command."""

    def test_purges_unreferenced_objects(
        self,
        media_service,
        media_storage,
        bucket,
        jpeg_file,
        pdf_bytes,
    ):
        """Test orphans are deleted and referenced objects are kept."""
        record = async_to_sync(media_service.upload)(jpeg_file)
        media_storage.put_object(
            'uploads/orphan.pdf',
            pdf_bytes,
            'application/pdf',
        )

        out = StringIO()
        call_command('purge_orphaned_media', stdout=out)

        assert _stored_keys(bucket) == {record.storage_key}
        assert 'Purged 1 orphaned objects, 0 failed' in out.getvalue()

    def test_ignores_objects_outside_prefix(
        self,
        media_storage,
        bucket,
        pdf_bytes,
    ):
        """Test only keys under uploads/ are considered."""
        media_storage.put_object(
            'other/file.pdf',
            pdf_bytes,
            'application/pdf',
        )

        out = StringIO()
        call_command('purge_orphaned_media', stdout=out)

        assert _stored_keys(bucket) == {'other/file.pdf'}
        assert 'Purged 0 orphaned objects' in out.getvalue()

    def test_dry_run_deletes_nothing(self, media_storage, bucket, pdf_bytes):
        """Test dry run only reports what would be deleted."""
        media_storage.put_object(
            'uploads/orphan.pdf',
            pdf_bytes,
            'application/pdf',
        )

        out = StringIO()
        call_command('purge_orphaned_media', '--dry-run', stdout=out)

        assert _stored_keys(bucket) == {'uploads/orphan.pdf'}
        assert 'Would delete: uploads/orphan.pdf' in out.getvalue()
        assert 'Would purge 1 orphaned objects' in out.getvalue()

    def test_batch_size_limits_deletions(
        self,
        media_storage,
        bucket,
        pdf_bytes,
    ):
        """Test no more than batch-size objects are deleted per run."""
        for index in range(3):
            media_storage.put_object(
                f'uploads/orphan-{index}.pdf',
                pdf_bytes,
                'application/pdf',
            )

        out = StringIO()
        call_command('purge_orphaned_media', '--batch-size', '2', stdout=out)

        assert len(_stored_keys(bucket)) == 1
        assert 'Purged 2 orphaned objects' in out.getvalue()

    def test_counts_failures(self, media_storage, pdf_bytes):
        """Test failed deletions are reported and do not stop the run."""
        media_storage.put_object(
            'uploads/orphan.pdf',
            pdf_bytes,
            'application/pdf',
        )

        out = StringIO()
        err = StringIO()
        with mock.patch.object(
            media_storage,
            'remove_object',
            side_effect=MediaError.internal('delete failed'),
        ):
            call_command('purge_orphaned_media', stdout=out, stderr=err)

        assert 'Purged 0 orphaned objects, 1 failed' in out.getvalue()
        assert 'uploads/orphan.pdf' in err.getvalue()


@pytest.mark.django_db
def test_grace_period_protects_recent_objects(
    settings,
    media_storage,
    bucket,
    pdf_bytes,
):
    """Test objects younger than the grace period are kept."""
    settings.MEDIA_ORPHAN_GRACE_PERIOD = 3600
    media_storage.put_object('uploads/fresh.pdf', pdf_bytes, 'application/pdf')

    out = StringIO()
    call_command('purge_orphaned_media', stdout=out)

    assert _stored_keys(bucket) == {'uploads/fresh.pdf'}
    assert 'Purged 0 orphaned objects' in out.getvalue()
