"""Business logic for file operations.

Every file's blob lives at the key derived from its current folder path
(see path_operations). Whenever that path changes, the blob is moved
first and the record is updated second, so a crash in between leaves a
stale record next to an intact blob, never a record pointing at nothing.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Any, BinaryIO, Final

from django.core.files.base import File as DjangoFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from cloudbox.apps.drive.exceptions import (
    ConcurrentModificationError,
    FileExistsConflictError,
    NotFoundError,
    NotOwnerError,
    StorageInconsistencyError,
)
from cloudbox.apps.drive.infrastructure.metadata import (
    calculate_checksum,
    detect_mime_type,
    get_file_size,
    validate_item_name,
)
from cloudbox.apps.drive.logic.path_operations import derive_physical_key
from cloudbox.apps.drive.logic.tree_operations import validate_parent_folder
from cloudbox.apps.drive.models import File

if TYPE_CHECKING:
    from cloudbox.apps.drive.infrastructure.storage import FileStorage

logger = logging.getLogger(__name__)

_FILE: Final = 'file'
_STORAGE_KEY_MAX_LENGTH: Final = 1024


def _get_storage() -> 'FileStorage':
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]


def _same_folder(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is right
    return str(left) == str(right)


def get_owned_file(
    file_id: uuid.UUID | str,
    owner_id: Any,
    include_deleted: bool = False,
) -> File:
    """Get a file that belongs to the owner.

    Args:
        file_id: File ID.
        owner_id: Acting owner's user ID.
        include_deleted: Also find files that are in the trash.

    Returns:
        File instance.

    Raises:
        NotFoundError: If no such file exists (or it is in the trash).
        NotOwnerError: If the file belongs to another user.
    """
    manager = File.all_objects if include_deleted else File.objects
    try:
        return manager.get(pk=file_id, user_id=owner_id)
    except File.DoesNotExist as error:
        if File.all_objects.filter(pk=file_id).exclude(
            user_id=owner_id,
        ).exists():
            raise NotOwnerError(_FILE, file_id, owner_id) from error
        raise NotFoundError(_FILE, file_id) from error


def get_file(file_id: uuid.UUID | str, owner_id: Any) -> File:
    """Get a live file of the owner."""
    return get_owned_file(file_id, owner_id)


def list_files(
    owner_id: Any,
    folder_id: uuid.UUID | str | None = None,
) -> QuerySet[File]:
    """List live files directly inside a folder.

    Args:
        owner_id: Owner of files.
        folder_id: Folder ID, or None for the root.

    Returns:
        QuerySet of File objects ordered by name.
    """
    return File.objects.filter(
        user_id=owner_id,
        folder_id=folder_id,
    ).order_by('name')


def upload_file(  # noqa: WPS211
    owner_id: Any,
    folder_id: uuid.UUID | str | None,
    name: str,
    file_obj: BinaryIO | DjangoFile,
    file_id: uuid.UUID | str | None = None,
    mime_type: str | None = None,
) -> File:
    """Upload file to storage and create database record.

    Upload to storage first, then create the DB record. If the DB insert
    fails, the uploaded blob is deleted (best effort) and the original
    error is re-raised.

    Args:
        owner_id: Owner's user ID.
        folder_id: Target folder ID, or None for the root.
        name: Logical file name.
        file_obj: File-like object to upload.
        file_id: ID to use for the new file (generated if omitted).
        mime_type: Content type (detected from name if omitted).

    Returns:
        Created File instance.

    Raises:
        ValidationError: If the name is invalid.
        InvalidParentError: If the folder does not exist or is trashed.
        NotOwnerError: If the folder belongs to another user.
        FileExistsConflictError: If file_id is already taken.
    """
    validate_item_name(name)
    validate_parent_folder(folder_id, owner_id).raise_if_rejected()

    if file_id is None:
        file_id = uuid.uuid4()
    elif File.all_objects.filter(pk=file_id).exists():
        # The blob at the derived key belongs to the existing record.
        raise FileExistsConflictError(file_id)
    storage_key = derive_physical_key(owner_id, folder_id, file_id, name)

    checksum = calculate_checksum(file_obj)
    file_size = get_file_size(file_obj)
    content_type = mime_type or detect_mime_type(name)

    storage = _get_storage()

    # Step 1: Upload to storage first, replacing any orphan at the key
    storage.save(
        storage_key,
        file_obj,
        max_length=_STORAGE_KEY_MAX_LENGTH,
    )

    # Step 2: Create database record
    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                id=file_id,
                user_id=owner_id,
                name=name,
                folder_id=folder_id,
                file=storage_key,
                size_bytes=file_size,
                mime_type=content_type,
                checksum_sha256=checksum,
            )
    except Exception:
        logger.exception(
            'Database insert failed, rolling back storage upload: %s',
            storage_key,
        )
        storage.rollback_upload(storage_key)
        raise

    logger.info(
        'File uploaded: %s (ID: %s, key: %s)',
        name,
        file_instance.id,
        storage_key,
    )
    return file_instance


def rename_file(
    file_id: uuid.UUID | str,
    new_name: str,
    owner_id: Any,
) -> File:
    """Rename a file.

    Only the logical name changes; the blob stays at its key.

    Args:
        file_id: ID of file to rename.
        new_name: New logical name.
        owner_id: Acting owner's user ID.

    Returns:
        Updated File instance.
    """
    validate_item_name(new_name)
    file_instance = get_owned_file(file_id, owner_id)
    old_name = file_instance.name

    file_instance.name = new_name
    file_instance.save(update_fields=['name', 'updated_at'])

    logger.info(
        'File renamed: %s -> %s (ID: %s)',
        old_name,
        new_name,
        file_instance.id,
    )
    return file_instance


def _commit_location(
    file_instance: File,
    old_key: str,
    new_key: str,
    new_folder_id: Any,
) -> None:
    """Point the record at its new key, if nobody else changed it.

    Raises:
        ConcurrentModificationError: If the record no longer has old_key.
    """
    with transaction.atomic():
        updated = File.all_objects.filter(
            pk=file_instance.pk,
            user_id=file_instance.user_id,
            file=old_key,
        ).update(
            file=new_key,
            folder_id=new_folder_id,
            updated_at=timezone.now(),
        )
        if not updated:
            raise ConcurrentModificationError(_FILE, file_instance.pk)


def _relocate(
    file_instance: File,
    new_key: str,
    new_folder_id: Any,
) -> None:
    """Move a file's blob, then its record.

    If the record update fails, the blob is moved back. If moving it
    back fails too, blob and record disagree for good.

    Raises:
        StorageInconsistencyError: If the compensating move failed.
        Exception: Whatever made the blob move or record update fail.
    """
    storage = _get_storage()
    old_key = file_instance.file.name

    # Step 1: Move blob
    storage.move_object(old_key, new_key)

    # Step 2: Update database record
    try:
        _commit_location(file_instance, old_key, new_key, new_folder_id)
    except Exception:
        logger.exception(
            'Database update failed, moving blob back: %s -> %s',
            new_key,
            old_key,
        )
        try:
            storage.move_object(new_key, old_key)
        except Exception as rollback_error:
            logger.critical(
                'Blob and record disagree for file %s: record=%s blob=%s',
                file_instance.pk,
                old_key,
                new_key,
            )
            raise StorageInconsistencyError(
                file_instance.pk,
                old_key,
                new_key,
            ) from rollback_error
        raise

    file_instance.file.name = new_key
    file_instance.folder_id = new_folder_id
    file_instance.refresh_from_db(fields=['updated_at'])


def move_file(
    file_id: uuid.UUID | str,
    new_folder_id: uuid.UUID | str | None,
    owner_id: Any,
) -> File:
    """Move a file to another folder.

    Args:
        file_id: ID of file to move.
        new_folder_id: Destination folder ID, or None for the root.
        owner_id: Acting owner's user ID.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If the file does not exist or is trashed.
        InvalidParentError: If the destination does not exist or is trashed.
        NotOwnerError: If the file or destination belongs to another user.
        StorageInconsistencyError: If a failed move could not be undone.
    """
    file_instance = get_owned_file(file_id, owner_id)
    validate_parent_folder(new_folder_id, owner_id).raise_if_rejected()

    old_key = file_instance.file.name
    new_key = derive_physical_key(
        owner_id,
        new_folder_id,
        file_instance.id,
        file_instance.name,
    )

    if new_key == old_key and _same_folder(
        file_instance.folder_id,
        new_folder_id,
    ):
        logger.debug('File %s already in place, nothing to move', file_id)
        return file_instance

    _relocate(file_instance, new_key, new_folder_id)
    logger.info(
        'File moved: %s -> %s (ID: %s)',
        old_key,
        new_key,
        file_instance.id,
    )
    return file_instance


def resync_file_key(file_instance: File) -> bool:
    """Move a file's blob to the key derived from its current path.

    Safe to call repeatedly: a file already at the right key is left
    alone.

    Args:
        file_instance: File to resync.

    Returns:
        True if the blob was moved, False if it was already in place.

    Raises:
        StorageInconsistencyError: If a failed move could not be undone.
    """
    expected_key = derive_physical_key(
        file_instance.user_id,
        file_instance.folder_id,
        file_instance.id,
        file_instance.name,
    )
    if expected_key == file_instance.file.name:
        return False

    old_key = file_instance.file.name
    _relocate(file_instance, expected_key, file_instance.folder_id)
    logger.info(
        'File key resynced: %s -> %s (ID: %s)',
        old_key,
        expected_key,
        file_instance.id,
    )
    return True


def soft_delete_file(file_id: uuid.UUID | str, owner_id: Any) -> File:
    """Move file to trash (soft delete).

    The blob stays where it is.

    Args:
        file_id: ID of file to soft delete.
        owner_id: Acting owner's user ID.

    Returns:
        Updated File instance.
    """
    file_instance = get_owned_file(file_id, owner_id)
    file_instance.deleted_at = timezone.now()
    file_instance.save(update_fields=['deleted_at', 'updated_at'])

    logger.info('File moved to trash: %s (ID: %s)', file_instance.name, file_id)
    return file_instance


def restore_file(file_id: uuid.UUID | str, owner_id: Any) -> File:
    """Restore file from trash.

    Args:
        file_id: ID of file to restore.
        owner_id: Acting owner's user ID.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If the file is not in the trash.
    """
    file_instance = get_owned_file(file_id, owner_id, include_deleted=True)
    if not file_instance.is_deleted:
        raise NotFoundError(_FILE, file_id, 'not in trash')

    file_instance.deleted_at = None
    file_instance.save(update_fields=['deleted_at', 'updated_at'])

    logger.info('File restored: %s (ID: %s)', file_instance.name, file_id)
    return file_instance


def permanent_delete_file(file_id: uuid.UUID | str, owner_id: Any) -> None:
    """Delete a file's blob and record for good.

    The blob goes first. If that fails, the record is kept so the blob
    can still be found and the error is raised.

    Args:
        file_id: ID of file to delete.
        owner_id: Acting owner's user ID.
    """
    file_instance = get_owned_file(file_id, owner_id, include_deleted=True)
    storage_key = file_instance.file.name

    _get_storage().delete(storage_key)

    with transaction.atomic():
        file_instance.delete()

    logger.info(
        'File permanently deleted: %s (ID: %s, key: %s)',
        file_instance.name,
        file_id,
        storage_key,
    )


def toggle_file_sharing(
    file_id: uuid.UUID | str,
    is_shared: bool,
    owner_id: Any,
) -> File:
    """Set the shared flag of a file."""
    file_instance = get_owned_file(file_id, owner_id)
    file_instance.is_shared = is_shared
    file_instance.save(update_fields=['is_shared', 'updated_at'])
    logger.info('File %s shared=%s', file_id, is_shared)
    return file_instance


def get_public_url(file_id: uuid.UUID | str, owner_id: Any) -> str:
    """Get download URL for a live file.

    Args:
        file_id: File ID.
        owner_id: Acting owner's user ID.

    Returns:
        URL served by the storage backend.
    """
    file_instance = get_owned_file(file_id, owner_id)
    return _get_storage().public_url(file_instance.file.name)
