"""Tests for metadata utilities."""

from io import BytesIO

import pytest
from django.core.exceptions import ValidationError
from django.core.files.base import ContentFile

from cloudbox.apps.drive.infrastructure.metadata import (
    calculate_checksum,
    detect_mime_type,
    get_file_extension,
    get_file_size,
    validate_item_name,
)


def test_detect_mime_type():
    """Test MIME type detection from filename."""
    assert detect_mime_type('test.pdf') == 'application/pdf'
    assert detect_mime_type('test.txt') == 'text/plain'
    assert detect_mime_type('test.jpg') == 'image/jpeg'
    assert detect_mime_type('test.png') == 'image/png'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    assert detect_mime_type('test.unknown') == 'application/octet-stream'
    assert detect_mime_type('README') == 'application/octet-stream'


def test_calculate_checksum():
    """Test SHA256 checksum calculation."""
    file_obj = ContentFile(b'test content')

    checksum = calculate_checksum(file_obj)

    # Should be 64 character hex string
    assert len(checksum) == 64
    assert all(c in '0123456789abcdef' for c in checksum)

    # Same content should produce same checksum
    file_obj2 = ContentFile(b'test content')
    assert calculate_checksum(file_obj2) == checksum


def test_calculate_checksum_rewinds():
    """Test checksum leaves the file pointer at the start."""
    file_obj = BytesIO(b'test content')

    calculate_checksum(file_obj)

    assert file_obj.read() == b'test content'


def test_get_file_size():
    """Test size of sized and plain file objects."""
    assert get_file_size(ContentFile(b'12345')) == 5
    plain = BytesIO(b'123')
    assert get_file_size(plain) == 3
    assert plain.read() == b'123'


@pytest.mark.parametrize(('filename', 'extension'), [
    ('report.pdf', 'pdf'),
    ('archive.tar.gz', 'gz'),
    ('photo.JPG', 'JPG'),
    ('.env', 'env'),
    ('README', 'bin'),
    ('trailing.', 'bin'),
])
def test_get_file_extension(filename, extension):
    """Test extension is the text after the last dot."""
    assert get_file_extension(filename) == extension


def test_get_file_extension_default_is_configurable(settings):
    """Test the fallback extension comes from settings."""
    settings.DRIVE_DEFAULT_EXTENSION = 'dat'

    assert get_file_extension('README') == 'dat'


@pytest.mark.parametrize('name', ['Docs', 'my file (2).txt', 'a' * 255])
def test_validate_item_name_valid(name):
    """Test valid names pass."""
    validate_item_name(name)


@pytest.mark.parametrize('name', [
    '',
    ' ',
    'a' * 256,
    'docs/reports',
    'docs\\reports',
    '.',
    '..',
])
def test_validate_item_name_invalid(name):
    """Test empty, long and path-like names are rejected."""
    with pytest.raises(ValidationError):
        validate_item_name(name)
