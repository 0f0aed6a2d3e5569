"""Metadata extraction and name validation utilities."""

import hashlib
import mimetypes
from typing import BinaryIO, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.base import File as DjangoFile

_CHUNK_SIZE: Final = 8192  # 8KB chunks for checksum calculation
_NAME_MAX_LENGTH: Final = 255
_FORBIDDEN_NAME_CHARS: Final = frozenset('/\\')
_RESERVED_NAMES: Final = frozenset(('.', '..'))


def validate_item_name(name: str) -> None:
    """Validate a folder or file name.

    Folder names become storage key segments, so path separators and
    relative path markers are rejected.

    Args:
        name: Proposed name.

    Raises:
        ValidationError: If the name is empty, too long or unsafe.
    """
    if not name or not name.strip():
        raise ValidationError('Name cannot be empty')

    if len(name) > _NAME_MAX_LENGTH:
        raise ValidationError(
            f'Name is longer than {_NAME_MAX_LENGTH} characters',
        )

    if _FORBIDDEN_NAME_CHARS.intersection(name):
        raise ValidationError('Name cannot contain "/" or "\\"')

    if name in _RESERVED_NAMES:
        raise ValidationError(f'"{name}" is not a valid name')


def get_file_extension(filename: str) -> str:
    """Get the storage extension of a logical file name.

    The extension is everything after the last dot, case preserved.

    Example: 'report.final.PDF' -> 'PDF', 'README' -> 'bin'

    Args:
        filename: Logical file name.

    Returns:
        Extension without dot, or the configured default extension
        when the name has none.
    """
    _, dot, extension = filename.rpartition('.')
    if not dot or not extension:
        return settings.DRIVE_DEFAULT_EXTENSION
    return extension


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from the file name.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return 'application/octet-stream'
    return mime_type


def calculate_checksum(file_obj: BinaryIO | DjangoFile) -> str:
    """Calculate SHA256 checksum of file.

    Reads file in chunks and resets the file pointer afterwards.

    Args:
        file_obj: File-like object to checksum.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    sha256_hash = hashlib.sha256()

    file_obj.seek(0)
    for chunk in iter(lambda: file_obj.read(_CHUNK_SIZE), b''):
        sha256_hash.update(chunk)
    file_obj.seek(0)

    return sha256_hash.hexdigest()


def get_file_size(file_obj: BinaryIO | DjangoFile) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.

    Returns:
        File size in bytes.
    """
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size
