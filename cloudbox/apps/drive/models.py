"""Database models for drive app."""

import uuid
from typing import Final, final, override

from django.conf import settings
from django.db import models

_NAME_MAX_LENGTH: Final = 255
_STORAGE_KEY_MAX_LENGTH: Final = 1024  # S3 key limit
_MIME_TYPE_MAX_LENGTH: Final = 255
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length
_ACTION_TYPE_MAX_LENGTH: Final = 64
_TARGET_TYPE_MAX_LENGTH: Final = 16


class LiveManager(models.Manager):
    """Manager that hides soft-deleted rows."""

    @override
    def get_queryset(self) -> models.QuerySet:
        """Exclude rows that are in the trash."""
        return super().get_queryset().filter(deleted_at__isnull=True)


@final
class Folder(models.Model):
    """Folder in a user's tree.

    ``parent`` is None for top-level folders. While a folder is in the
    trash, ``original_parent`` holds the parent it had when it was
    deleted, so restore can put it back exactly where it was.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    # Children block hard deletes, see permanent_delete_folder
    parent = models.ForeignKey(
        'self',
        on_delete=models.RESTRICT,
        related_name='children',
        null=True,
        blank=True,
    )

    is_shared = models.BooleanField(default=False)

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    original_parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        related_name='+',
        null=True,
        blank=True,
        help_text='Parent snapshot taken at soft-delete time',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']
        base_manager_name = 'all_objects'

        constraints = [
            models.UniqueConstraint(
                fields=['user', 'parent', 'name'],
                condition=models.Q(parent__isnull=False),
                name='drive_folder_name_unique',
            ),
            # NULL parents never collide in SQL, so root has its own rule
            models.UniqueConstraint(
                fields=['user', 'name'],
                condition=models.Q(parent__isnull=True),
                name='drive_root_folder_name_unique',
            ),
        ]

        indexes = [
            models.Index(
                fields=['user', 'parent'],
                name='drive_folder_user_parent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.name}'

    @property
    def is_deleted(self) -> bool:
        """Whether the folder is in the trash."""
        return self.deleted_at is not None


@final
class File(models.Model):
    """File whose bytes live in S3-compatible storage.

    ``name`` is what the user sees. ``file.name`` is the storage key,
    derived from the owner, the folder path and the file id:
    {user_id}/Docs/Projects/{id}.pdf
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='drive_files',
        db_index=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='files',
        null=True,
        blank=True,
    )

    # upload_to='' means we control the full key
    file = models.FileField(
        upload_to='',
        max_length=_STORAGE_KEY_MAX_LENGTH,
        help_text='Key in storage: {user_id}/folder/path/{id}.ext',
    )

    size_bytes = models.BigIntegerField(help_text='File size in bytes')

    mime_type = models.CharField(max_length=_MIME_TYPE_MAX_LENGTH)

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        blank=True,
        default='',
        help_text='SHA256 hash for integrity verification',
    )

    is_shared = models.BooleanField(default=False)

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['name']
        base_manager_name = 'all_objects'

        indexes = [
            models.Index(
                fields=['user', 'folder'],
                name='drive_file_user_folder_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}:{self.name}'

    @property
    def storage_key(self) -> str:
        """Physical key of the blob in storage."""
        return self.file.name

    @property
    def is_deleted(self) -> bool:
        """Whether the file is in the trash."""
        return self.deleted_at is not None


@final
class AuditLog(models.Model):
    """Record of an admin action on a user's folder or file."""

    actor_id = models.CharField(max_length=_NAME_MAX_LENGTH)
    actor_email = models.CharField(max_length=_NAME_MAX_LENGTH, blank=True)
    action_type = models.CharField(max_length=_ACTION_TYPE_MAX_LENGTH)
    target_type = models.CharField(max_length=_TARGET_TYPE_MAX_LENGTH)
    target_id = models.CharField(max_length=_NAME_MAX_LENGTH)
    target_name = models.CharField(max_length=_NAME_MAX_LENGTH, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Audit log entry'  # type: ignore[mutable-override]
        verbose_name_plural = 'Audit log'  # type: ignore[mutable-override]
        ordering = ['-timestamp']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.actor_email or self.actor_id}:{self.action_type}'
