"""Tests for the S3 storage backend."""

from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import ContentFile

from cloudbox.apps.drive.infrastructure.storage import FileStorage

BUCKET_NAME = 'cloudbox'


@pytest.fixture
def storage(mock_s3):
    """Create a storage instance bound to the mocked bucket."""
    return FileStorage(
        bucket_name=BUCKET_NAME,
        region_name='us-east-1',
        file_overwrite=True,
    )


def _keys(mock_s3):
    return {obj.key for obj in mock_s3.Bucket(BUCKET_NAME).objects.all()}


class TestFileStorage:
    """Tests for FileStorage."""

    def test_save_uses_requested_key(self, storage, mock_s3):
        """Test blob is stored under the given key."""
        saved = storage.save('1/root/abc.txt', ContentFile(b'data'))

        assert saved == '1/root/abc.txt'
        assert _keys(mock_s3) == {'1/root/abc.txt'}

    def test_save_overwrites_existing_key(self, storage, mock_s3):
        """Test saving to a taken key replaces the blob in place."""
        storage.save('1/root/abc.txt', ContentFile(b'first'))

        saved = storage.save('1/root/abc.txt', ContentFile(b'second'))

        assert saved == '1/root/abc.txt'
        assert _keys(mock_s3) == {'1/root/abc.txt'}
        body = mock_s3.Object(BUCKET_NAME, '1/root/abc.txt').get()['Body']
        assert body.read() == b'second'

    def test_save_rejects_renamed_key(self, mock_s3):
        """Test a backend-chosen alternative key is removed and raises."""
        storage = FileStorage(
            bucket_name=BUCKET_NAME,
            region_name='us-east-1',
            file_overwrite=False,
        )
        storage.save('1/root/abc.txt', ContentFile(b'first'))

        with pytest.raises(SuspiciousFileOperation):
            storage.save('1/root/abc.txt', ContentFile(b'second'))

        assert _keys(mock_s3) == {'1/root/abc.txt'}
        body = mock_s3.Object(BUCKET_NAME, '1/root/abc.txt').get()['Body']
        assert body.read() == b'first'

    def test_move_object(self, storage, mock_s3):
        """Test blob ends up only at the destination."""
        storage.save('1/root/abc.txt', ContentFile(b'data'))

        storage.move_object('1/root/abc.txt', '1/Docs/abc.txt')

        assert _keys(mock_s3) == {'1/Docs/abc.txt'}
        body = mock_s3.Object(BUCKET_NAME, '1/Docs/abc.txt').get()['Body']
        assert body.read() == b'data'

    def test_move_object_same_key(self, storage, mock_s3):
        """Test moving onto itself is a no-op."""
        storage.save('1/root/abc.txt', ContentFile(b'data'))

        storage.move_object('1/root/abc.txt', '1/root/abc.txt')

        assert _keys(mock_s3) == {'1/root/abc.txt'}

    def test_move_missing_object(self, storage):
        """Test moving a missing blob raises."""
        with pytest.raises(ClientError):
            storage.move_object('1/root/missing.txt', '1/Docs/missing.txt')

    def test_delete(self, storage, mock_s3):
        """Test blob is removed."""
        storage.save('1/root/abc.txt', ContentFile(b'data'))

        storage.delete('1/root/abc.txt')

        assert _keys(mock_s3) == set()

    def test_rollback_upload_swallows_errors(self, storage):
        """Test rollback never raises, even when delete fails."""
        with patch.object(
            FileStorage,
            'delete',
            side_effect=OSError('S3 unavailable'),
        ) as delete:
            storage.rollback_upload('1/root/abc.txt')

        delete.assert_called_once_with('1/root/abc.txt')

    def test_public_url(self, storage):
        """Test URL contains the storage key."""
        url = storage.public_url('1/root/abc.txt')

        assert '1/root/abc.txt' in url
