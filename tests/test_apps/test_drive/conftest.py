"""Shared fixtures for drive app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from moto import mock_aws

from cloudbox.apps.drive.logic.file_operations import upload_file

User = get_user_model()

BUCKET_NAME = 'cloudbox'


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def admin_user(db):
    """Create an admin acting on other users' items."""
    return User.objects.create_superuser(
        username='admin',
        password='adminpass123',
        email='admin@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with cloudbox bucket.

    Yields:
        boto3 S3 resource with cloudbox bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=BUCKET_NAME)
        yield conn


@pytest.fixture
def bucket_keys(mock_s3):
    """Get a callable listing every key in the mocked bucket."""

    def _keys() -> set[str]:
        bucket = mock_s3.Bucket(BUCKET_NAME)
        return {obj.key for obj in bucket.objects.all()}

    return _keys


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def upload(user, mock_s3):
    """Get a callable uploading a file for the test user.

    Returns:
        Function (folder, name, content) -> File.
    """

    def _upload(folder=None, name='test.txt', content=b'test file content'):
        folder_id = folder.pk if folder is not None else None
        return upload_file(user.id, folder_id, name, ContentFile(content))

    return _upload
