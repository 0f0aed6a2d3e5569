"""Business logic for moving many folders and files at once.

Each item is moved on its own: a failing item is recorded and the rest
carry on. Nothing is rolled back, so a batch makes as much progress as
it can.
"""

import enum
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, final

from cloudbox.apps.drive.logic.file_operations import move_file
from cloudbox.apps.drive.logic.folder_operations import (
    CascadeResult,
    move_folder,
)
from cloudbox.apps.drive.models import File, Folder

logger = logging.getLogger(__name__)


class ItemKind(enum.StrEnum):
    """Kind of item in a batch."""

    FILE = 'file'
    FOLDER = 'folder'


@final
@dataclass(frozen=True)
class ItemRef:
    """Reference to a folder or file selected for a batch operation."""

    kind: ItemKind
    item_id: uuid.UUID | str


@final
@dataclass
class BatchItemError:
    """An item that could not be moved."""

    item: ItemRef
    error: Exception

    @property
    def reason(self) -> str:
        """Human-readable failure reason."""
        return str(self.error)


@final
@dataclass
class BatchMoveResult:
    """Outcome of a batch move."""

    moved: list[File | Folder] = field(default_factory=list)
    errors: list[BatchItemError] = field(default_factory=list)
    cascades: list[CascadeResult] = field(default_factory=list)

    @property
    def has_partial_cascades(self) -> bool:
        """Whether a moved folder left some files at stale keys."""
        return any(not cascade.is_complete for cascade in self.cascades)


def move_many(
    item_refs: Iterable[ItemRef],
    new_parent_id: uuid.UUID | str | None,
    owner_id: Any,
) -> BatchMoveResult:
    """Move folders and files into a folder, item by item.

    Args:
        item_refs: Items to move.
        new_parent_id: Destination folder ID, or None for the root.
        owner_id: Acting owner's user ID.

    Returns:
        Moved items, per-item errors and the folders' cascade results.
    """
    result = BatchMoveResult()

    for item in item_refs:
        try:
            if item.kind == ItemKind.FOLDER:
                cascade = move_folder(item.item_id, new_parent_id, owner_id)
                result.cascades.append(cascade)
                moved: File | Folder = cascade.folder
            else:
                moved = move_file(item.item_id, new_parent_id, owner_id)
        except Exception as error:
            logger.warning(
                'Failed to move %s %s: %s',
                item.kind,
                item.item_id,
                error,
            )
            result.errors.append(BatchItemError(item, error))
            continue

        result.moved.append(moved)

    logger.info(
        'Batch move to %s: %d moved, %d failed',
        new_parent_id,
        len(result.moved),
        len(result.errors),
    )
    return result
