"""Business logic for admin actions on other users' folders and files.

Admins act on any owner's items. The actual work is delegated to the
folder/file operations, scoped to the item's owner, and every action is
reported through the ``admin_action_performed`` signal with the item's
state before and after.
"""

import logging
import uuid
from typing import Any

from cloudbox.apps.drive.exceptions import NotFoundError
from cloudbox.apps.drive.logic.file_operations import (
    restore_file,
    soft_delete_file,
)
from cloudbox.apps.drive.logic.folder_operations import (
    restore_folder,
    soft_delete_folder,
)
from cloudbox.apps.drive.models import File, Folder
from cloudbox.apps.drive.signals import admin_action_performed

logger = logging.getLogger(__name__)


def _isoformat(moment: Any) -> str | None:
    return moment.isoformat() if moment is not None else None


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _file_snapshot(file_instance: File) -> dict[str, Any]:
    return {
        'user_id': file_instance.user_id,
        'folder_id': _optional_str(file_instance.folder_id),
        'name': file_instance.name,
        'storage_key': file_instance.file.name,
        'deleted_at': _isoformat(file_instance.deleted_at),
    }


def _folder_snapshot(folder: Folder) -> dict[str, Any]:
    return {
        'user_id': folder.user_id,
        'parent_id': _optional_str(folder.parent_id),
        'original_parent_id': _optional_str(folder.original_parent_id),
        'name': folder.name,
        'deleted_at': _isoformat(folder.deleted_at),
    }


def _notify(
    actor_id: Any,
    actor_email: str,
    action_type: str,
    target_type: str,
    target: File | Folder,
    before: dict[str, Any],
    after: dict[str, Any],
) -> None:
    """Send the audit signal; a failing receiver does not undo the action."""
    responses = admin_action_performed.send_robust(
        sender=__name__,
        actor_id=actor_id,
        actor_email=actor_email,
        action_type=action_type,
        target_type=target_type,
        target_id=target.pk,
        target_name=target.name,
        before=before,
        after=after,
    )
    for receiver_func, response in responses:
        if isinstance(response, Exception):
            logger.error(
                'Audit receiver %s failed for %s %s: %s',
                receiver_func,
                action_type,
                target.pk,
                response,
            )


def _get_any_file(file_id: uuid.UUID | str) -> File:
    try:
        return File.all_objects.get(pk=file_id)
    except File.DoesNotExist as error:
        raise NotFoundError('file', file_id) from error


def _get_any_folder(folder_id: uuid.UUID | str) -> Folder:
    try:
        return Folder.all_objects.get(pk=folder_id)
    except Folder.DoesNotExist as error:
        raise NotFoundError('folder', folder_id) from error


def admin_soft_delete_file(
    actor_id: Any,
    actor_email: str,
    file_id: uuid.UUID | str,
) -> File:
    """Move any user's file to the trash on behalf of an admin.

    Args:
        actor_id: Admin user ID.
        actor_email: Admin email, recorded in the audit log.
        file_id: File to soft delete.

    Returns:
        Updated File instance.
    """
    file_instance = _get_any_file(file_id)
    before = _file_snapshot(file_instance)
    updated = soft_delete_file(file_instance.pk, file_instance.user_id)
    _notify(
        actor_id,
        actor_email,
        'file_admin_delete',
        'file',
        updated,
        before,
        _file_snapshot(updated),
    )
    return updated


def admin_restore_file(
    actor_id: Any,
    actor_email: str,
    file_id: uuid.UUID | str,
) -> File:
    """Restore any user's file from the trash on behalf of an admin."""
    file_instance = _get_any_file(file_id)
    before = _file_snapshot(file_instance)
    updated = restore_file(file_instance.pk, file_instance.user_id)
    _notify(
        actor_id,
        actor_email,
        'file_admin_restore',
        'file',
        updated,
        before,
        _file_snapshot(updated),
    )
    return updated


def admin_soft_delete_folder(
    actor_id: Any,
    actor_email: str,
    folder_id: uuid.UUID | str,
) -> Folder:
    """Move any user's folder to the trash on behalf of an admin."""
    folder = _get_any_folder(folder_id)
    before = _folder_snapshot(folder)
    updated = soft_delete_folder(folder.pk, folder.user_id)
    _notify(
        actor_id,
        actor_email,
        'folder_admin_delete',
        'folder',
        updated,
        before,
        _folder_snapshot(updated),
    )
    return updated


def admin_restore_folder(
    actor_id: Any,
    actor_email: str,
    folder_id: uuid.UUID | str,
) -> Folder:
    """Restore any user's folder from the trash on behalf of an admin."""
    folder = _get_any_folder(folder_id)
    before = _folder_snapshot(folder)
    updated = restore_folder(folder.pk, folder.user_id).folder
    _notify(
        actor_id,
        actor_email,
        'folder_admin_restore',
        'folder',
        updated,
        before,
        _folder_snapshot(updated),
    )
    return updated
