"""Logical folder paths and physical storage keys.

A file's storage key is derived from its owner, the names of the
folders above it and its own id:

    {owner_id}/{folder path}/{file_id}.{ext}

Files at the root use the ``root`` segment as folder path. The leaf
segment is the file id, never the logical name, so renaming a file
never moves its blob.
"""

import logging
import uuid
from typing import Any

from django.conf import settings

from cloudbox.apps.drive.infrastructure.metadata import get_file_extension
from cloudbox.apps.drive.models import Folder

logger = logging.getLogger(__name__)

_PATH_SEPARATOR = '/'


def _walk_up(
    folder_id: uuid.UUID | str,
    owner_id: Any = None,
) -> tuple[list[Folder], bool]:
    """Collect live folders from ``folder_id`` up to the top of its tree.

    Args:
        folder_id: Folder to start from.
        owner_id: If given, only folders of this owner are followed.

    Returns:
        Folders ordered from ``folder_id`` upwards, and whether the walk
        reached a top-level folder (False when a link was missing,
        deleted, foreign, cyclic or too deep).
    """
    chain: list[Folder] = []
    visited: set[uuid.UUID] = set()
    lookup = Folder.objects.only('id', 'name', 'parent_id', 'user_id')
    if owner_id is not None:
        lookup = lookup.filter(user_id=owner_id)

    current_id: Any = folder_id
    while current_id is not None:
        if len(chain) >= settings.DRIVE_MAX_TREE_DEPTH:
            logger.warning(
                'Folder chain deeper than %d at %s, truncating',
                settings.DRIVE_MAX_TREE_DEPTH,
                folder_id,
            )
            return chain, False

        folder = lookup.filter(pk=current_id).first()
        if folder is None:
            logger.warning(
                'Folder %s not found while resolving %s, using root',
                current_id,
                folder_id,
            )
            return chain, False

        if folder.id in visited:
            logger.error('Cycle in folder tree at %s', folder.id)
            return chain, False

        visited.add(folder.id)
        chain.append(folder)
        current_id = folder.parent_id

    return chain, True


def resolve_folder_path(
    folder_id: uuid.UUID | str | None,
    owner_id: Any = None,
) -> str:
    """Build the logical path of a folder from the top of its tree.

    Examples: a top-level folder 'Docs' -> 'Docs'; its child
    'Projects' -> 'Docs/Projects'; no folder -> 'root'. When an
    ancestor cannot be resolved (missing or in the trash) the path
    restarts from root: 'root/Projects'. This keeps uploads working
    when the tree data has drifted.

    Args:
        folder_id: Folder ID, or None for the root.
        owner_id: If given, only folders of this owner are followed.

    Returns:
        Folder path without leading or trailing separator.
    """
    root_segment = settings.DRIVE_ROOT_PATH_SEGMENT
    if folder_id is None:
        return root_segment

    chain, complete = _walk_up(folder_id, owner_id)
    segments = [folder.name for folder in reversed(chain)]
    if not complete:
        segments.insert(0, root_segment)
    return _PATH_SEPARATOR.join(segments)


def derive_physical_key(
    owner_id: Any,
    folder_id: uuid.UUID | str | None,
    file_id: uuid.UUID | str,
    logical_name: str,
) -> str:
    """Derive the storage key of a file from its logical location.

    Example: (7, <Projects>, 'a1b2', 'plan.pdf')
    -> '7/Docs/Projects/a1b2.pdf'

    Args:
        owner_id: Owner's user ID.
        folder_id: Containing folder ID, or None for the root.
        file_id: File ID.
        logical_name: User-visible file name (only the extension is used).

    Returns:
        Storage key.
    """
    folder_path = resolve_folder_path(folder_id, owner_id)
    extension = get_file_extension(logical_name)
    return f'{owner_id}/{folder_path}/{file_id}.{extension}'


def get_folder_hierarchy(
    folder_id: uuid.UUID | str | None,
    owner_id: Any = None,
) -> list[Folder]:
    """Get the breadcrumb of a folder.

    Args:
        folder_id: Folder ID, or None for the root.
        owner_id: If given, only folders of this owner are followed.

    Returns:
        Folders from the topmost resolvable ancestor down to the folder.
        Empty for the root.
    """
    if folder_id is None:
        return []
    chain, _ = _walk_up(folder_id, owner_id)
    return list(reversed(chain))
