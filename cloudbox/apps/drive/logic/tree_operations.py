"""Folder tree invariants: ownership, move targets and cycle checks.

The live folders of an owner form a forest. Every move is checked here
before anything is mutated. Parent-chain walks are iterative and keep a
visited set, so a cycle that slipped in through a race ends the walk
instead of looping forever.
"""

import logging
import uuid
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, final

from django.conf import settings

from cloudbox.apps.drive.exceptions import (
    CyclicMoveError,
    DriveValidationError,
    InvalidParentError,
    NotFoundError,
    NotOwnerError,
    SelfParentError,
)
from cloudbox.apps.drive.models import Folder

logger = logging.getLogger(__name__)

_FOLDER = 'folder'


@final
@dataclass(frozen=True)
class MoveVerdict:
    """Outcome of a move target check.

    ``error`` is None when the move is accepted, otherwise the exception
    describing why it was rejected.
    """

    error: DriveValidationError | None = None

    @property
    def accepted(self) -> bool:
        """Whether the move may proceed."""
        return self.error is None

    def raise_if_rejected(self) -> None:
        """Raise the rejection error, if any.

        Raises:
            DriveValidationError: The rejection reason.
        """
        if self.error is not None:
            raise self.error


ACCEPTED = MoveVerdict()


def _same_id(left: Any, right: Any) -> bool:
    return str(left) == str(right)


def get_owned_folder(
    folder_id: uuid.UUID | str,
    owner_id: Any,
    include_deleted: bool = False,
) -> Folder:
    """Get a folder that belongs to the owner.

    Args:
        folder_id: Folder ID.
        owner_id: Acting owner's user ID.
        include_deleted: Also find folders that are in the trash.

    Returns:
        Folder instance.

    Raises:
        NotFoundError: If no such folder exists (or it is in the trash).
        NotOwnerError: If the folder belongs to another user.
    """
    manager = Folder.all_objects if include_deleted else Folder.objects
    try:
        return manager.get(pk=folder_id, user_id=owner_id)
    except Folder.DoesNotExist as error:
        if Folder.all_objects.filter(pk=folder_id).exclude(
            user_id=owner_id,
        ).exists():
            raise NotOwnerError(_FOLDER, folder_id, owner_id) from error
        raise NotFoundError(_FOLDER, folder_id) from error


def is_descendant(
    candidate_ancestor_id: uuid.UUID | str,
    subject_id: uuid.UUID | str,
) -> bool:
    """Check whether a folder lies inside the subtree of another folder.

    Walks the parent chain of ``candidate_ancestor_id`` (the folder a
    subject would be moved into) looking for ``subject_id``. Trashed
    folders keep their parent link and are followed too.

    Args:
        candidate_ancestor_id: Folder whose ancestors are inspected.
        subject_id: Folder that must not appear among them.

    Returns:
        True if ``subject_id`` is ``candidate_ancestor_id`` or one of its
        ancestors.
    """
    visited: set[str] = set()
    current_id: Any = candidate_ancestor_id

    while current_id is not None:
        if _same_id(current_id, subject_id):
            return True

        key = str(current_id)
        if key in visited or len(visited) >= settings.DRIVE_MAX_TREE_DEPTH:
            logger.error(
                'Stopped parent walk at %s: cycle or excessive depth',
                current_id,
            )
            return False
        visited.add(key)

        current_id = Folder.all_objects.filter(pk=current_id).values_list(
            'parent_id',
            flat=True,
        ).first()

    return False


def validate_parent_folder(
    parent_id: uuid.UUID | str | None,
    owner_id: Any,
) -> MoveVerdict:
    """Check that a folder exists, is live and belongs to the owner.

    Args:
        parent_id: Target folder ID, or None for the root.
        owner_id: Acting owner's user ID.

    Returns:
        Accepted verdict, or a rejection with InvalidParentError or
        NotOwnerError.
    """
    if parent_id is None:
        return ACCEPTED

    try:
        target = Folder.all_objects.only('id', 'user_id', 'deleted_at').get(
            pk=parent_id,
        )
    except Folder.DoesNotExist:
        return MoveVerdict(InvalidParentError(parent_id))

    if not _same_id(target.user_id, owner_id):
        return MoveVerdict(NotOwnerError(_FOLDER, parent_id, owner_id))
    if target.deleted_at is not None:
        return MoveVerdict(InvalidParentError(parent_id))
    return ACCEPTED


def validate_move_target(
    new_parent_id: uuid.UUID | str | None,
    subject_id: uuid.UUID | str,
    owner_id: Any,
) -> MoveVerdict:
    """Check whether a folder may be moved under a new parent.

    Args:
        new_parent_id: Target folder ID, or None for the root.
        subject_id: Folder being moved.
        owner_id: Acting owner's user ID.

    Returns:
        Accepted verdict, or a rejection with SelfParentError,
        InvalidParentError, NotOwnerError or CyclicMoveError.
    """
    if new_parent_id is None:
        return ACCEPTED

    if _same_id(new_parent_id, subject_id):
        return MoveVerdict(SelfParentError(subject_id))

    verdict = validate_parent_folder(new_parent_id, owner_id)
    if not verdict.accepted:
        return verdict

    if is_descendant(new_parent_id, subject_id):
        return MoveVerdict(CyclicMoveError(subject_id, new_parent_id))

    return ACCEPTED


def iter_subtree_folders(
    folder_id: uuid.UUID | str,
    owner_id: Any,
    include_deleted: bool = False,
) -> Iterator[Folder]:
    """Iterate over a folder and all folders below it.

    Breadth-first. Unless include_deleted is set, the top folder must be
    live and trashed subfolders (with everything below them) are
    skipped. Each folder is yielded at most once.

    Args:
        folder_id: Top folder of the subtree.
        owner_id: Owner whose folders are walked.
        include_deleted: Also walk trashed folders.

    Yields:
        Folder instances, top folder first.
    """
    manager = Folder.all_objects if include_deleted else Folder.objects
    top = manager.filter(pk=folder_id, user_id=owner_id).first()
    if top is None:
        return

    visited = {top.id}
    frontier = [top]
    while frontier:
        yield from frontier
        children = manager.filter(
            user_id=owner_id,
            parent_id__in=[folder.id for folder in frontier],
        ).exclude(pk__in=visited).order_by('name')
        frontier = list(children)
        visited.update(folder.id for folder in frontier)
