"""S3 storage backend for drive blobs."""

import logging
from typing import Any, final, override

from django.core.exceptions import SuspiciousFileOperation
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """S3 storage for file blobs keyed by their derived storage key.

    Adds to django-storages S3Storage:
    - server-side move for keeping blobs in step with folder moves
    - best-effort delete used to undo uploads whose record was not saved
    - logging around every mutation
    """

    @override
    def save(
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save blob to S3 with error handling and logging.

        Args:
            name: Storage key for the blob.
            content: File content (file-like object).
            max_length: Optional maximum length for the key.

        Returns:
            Storage key used, always equal to name.

        Raises:
            SuspiciousFileOperation: If the backend stored the blob under
                a different key; that blob is removed before raising.
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading blob to storage: %s', name)
            saved_name = super().save(name, content, max_length)
        except Exception:
            logger.exception('Failed to upload blob to storage: %s', name)
            raise
        if saved_name != name:
            logger.error(
                'Blob stored under %s instead of %s, removing it',
                saved_name,
                name,
            )
            self.rollback_upload(saved_name)
            raise SuspiciousFileOperation(
                f'Blob for {name} was stored as {saved_name}',
            )
        return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete blob from S3 with error handling and logging.

        Args:
            name: Storage key of blob to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting blob from storage: %s', name)
            super().delete(name)
        except Exception:
            logger.exception('Failed to delete blob from storage: %s', name)
            raise

    def rollback_upload(self, name: str) -> None:
        """Delete an uploaded blob whose database record was not created.

        Best-effort: if deletion fails the error is logged, not raised,
        so the caller can re-raise the original database error.

        Args:
            name: Storage key of blob to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting blob: %s', name)
            self.delete(name)
        except Exception:
            logger.exception(
                'Failed to rollback upload, orphaned blob: %s',
                name,
            )

    def move_object(self, source: str, destination: str) -> None:
        """Move a blob to a new key.

        S3 has no rename, so this is a server-side copy followed by
        deletion of the source. If the copy succeeds and the delete
        fails, the blob exists under both keys and the error is raised.

        Args:
            source: Current storage key.
            destination: New storage key.

        Raises:
            Exception: If copy or delete fails.
        """
        if source == destination:
            return

        try:
            logger.info('Moving blob: %s -> %s', source, destination)
            copy_source = {
                'Bucket': self.bucket_name,
                'Key': source,
            }
            self.bucket.copy(copy_source, destination)
            self.delete(source)
        except Exception:
            logger.exception('Move failed: %s -> %s', source, destination)
            raise

    def public_url(self, name: str) -> str:
        """Get a download URL for a blob.

        Args:
            name: Storage key.

        Returns:
            URL served by the storage backend (signed unless the bucket
            is configured for unsigned access).
        """
        return self.url(name)
