"""Exceptions for drive app."""

from typing import Any


class DriveError(Exception):
    """Base class for folder/file hierarchy errors."""


class DriveValidationError(DriveError):
    """Raised before any mutation when an operation is rejected."""


class NotFoundError(DriveValidationError):
    """Raised when a folder or file does not exist in the expected state."""

    def __init__(self, kind: str, object_id: Any, detail: str = '') -> None:
        """Initialize NotFoundError.

        Args:
            kind: Object kind ('folder' or 'file').
            object_id: ID that was looked up.
            detail: Optional extra context (e.g., 'not in trash').
        """
        self.kind = kind
        self.object_id = object_id
        message = f'{kind.capitalize()} not found: {object_id}'
        if detail:
            message = f'{message} ({detail})'
        super().__init__(message)


class NotOwnerError(DriveValidationError):
    """Raised when the acting user does not own the referenced object."""

    def __init__(self, kind: str, object_id: Any, owner_id: Any) -> None:
        """Initialize NotOwnerError.

        Args:
            kind: Object kind ('folder' or 'file').
            object_id: ID of the object.
            owner_id: Acting owner's ID.
        """
        self.kind = kind
        self.object_id = object_id
        self.owner_id = owner_id
        super().__init__(
            f'{kind.capitalize()} {object_id} is not owned by user {owner_id}',
        )


class InvalidParentError(DriveValidationError):
    """Raised when a target folder does not exist or is in the trash."""

    def __init__(self, parent_id: Any) -> None:
        """Initialize InvalidParentError.

        Args:
            parent_id: Rejected target folder ID.
        """
        self.parent_id = parent_id
        super().__init__(f'Invalid target folder: {parent_id}')


class SelfParentError(DriveValidationError):
    """Raised when a folder would become its own parent."""

    def __init__(self, folder_id: Any) -> None:
        """Initialize SelfParentError.

        Args:
            folder_id: Folder that was moved into itself.
        """
        self.folder_id = folder_id
        super().__init__(f'Folder {folder_id} cannot be its own parent')


class CyclicMoveError(DriveValidationError):
    """Raised when a folder would be moved into its own subtree."""

    def __init__(self, folder_id: Any, target_id: Any) -> None:
        """Initialize CyclicMoveError.

        Args:
            folder_id: Folder being moved.
            target_id: Target folder inside the moved subtree.
        """
        self.folder_id = folder_id
        self.target_id = target_id
        super().__init__(
            f'Cannot move folder {folder_id} into its descendant {target_id}',
        )


class NameConflictError(DriveValidationError):
    """Raised when a folder name is already taken at the target parent."""

    def __init__(self, name: str, parent_id: Any) -> None:
        """Initialize NameConflictError.

        Args:
            name: Conflicting folder name.
            parent_id: Parent folder ID (None for root).
        """
        self.name = name
        self.parent_id = parent_id
        location = parent_id if parent_id is not None else 'root'
        super().__init__(f'Folder "{name}" already exists in {location}')


class FileExistsConflictError(DriveValidationError):
    """Raised when uploading with the id of an existing file."""

    def __init__(self, file_id: Any) -> None:
        """Initialize FileExistsConflictError.

        Args:
            file_id: ID already taken by another file record.
        """
        self.file_id = file_id
        super().__init__(f'File {file_id} already exists')


class FolderNotEmptyError(DriveValidationError):
    """Raised when hard-deleting a folder that still has children."""

    def __init__(self, folder_id: Any) -> None:
        """Initialize FolderNotEmptyError.

        Args:
            folder_id: Folder that still has subfolders or files.
        """
        self.folder_id = folder_id
        super().__init__(
            f'Folder {folder_id} still contains folders or files',
        )


class ConcurrentModificationError(DriveValidationError):
    """Raised when a record changed between validation and update."""

    def __init__(self, kind: str, object_id: Any) -> None:
        """Initialize ConcurrentModificationError.

        Args:
            kind: Object kind ('folder' or 'file').
            object_id: ID of the concurrently modified object.
        """
        self.kind = kind
        self.object_id = object_id
        super().__init__(
            f'{kind.capitalize()} {object_id} was modified concurrently',
        )


class NamingExhaustedError(DriveError):
    """Raised when no free folder name was found within the attempt limit."""

    def __init__(self, name: str, attempts: int) -> None:
        """Initialize NamingExhaustedError.

        Args:
            name: Requested base name.
            attempts: Number of names tried.
        """
        self.name = name
        self.attempts = attempts
        super().__init__(
            f'Could not create a unique folder name for "{name}" '
            f'after {attempts} attempts',
        )


class StorageInconsistencyError(DriveError):
    """Raised when a blob and its record disagree and cannot be reconciled.

    The blob was moved to ``new_key``, the record update failed, and
    moving the blob back to ``old_key`` failed too. The record still
    points at ``old_key``.
    """

    def __init__(self, file_id: Any, old_key: str, new_key: str) -> None:
        """Initialize StorageInconsistencyError.

        Args:
            file_id: Affected file ID.
            old_key: Storage key the record points at.
            new_key: Storage key the blob actually lives at.
        """
        self.file_id = file_id
        self.old_key = old_key
        self.new_key = new_key
        super().__init__(
            f'File {file_id}: record points at {old_key} '
            f'but blob is stored at {new_key}',
        )
