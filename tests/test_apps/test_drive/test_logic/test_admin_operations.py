"""Tests for admin actions and their audit trail."""

import uuid

import pytest

from cloudbox.apps.drive.exceptions import NotFoundError
from cloudbox.apps.drive.logic.admin_operations import (
    admin_restore_file,
    admin_restore_folder,
    admin_soft_delete_file,
    admin_soft_delete_folder,
)
from cloudbox.apps.drive.logic.folder_operations import create_folder
from cloudbox.apps.drive.models import AuditLog, File, Folder
from cloudbox.apps.drive.signals import admin_action_performed


@pytest.mark.django_db
class TestAdminFileActions:
    """Tests for admin soft delete and restore of files."""

    def test_soft_delete_writes_audit_log(self, user, admin_user, upload):
        """Test admin delete trashes the file and records it."""
        file_instance = upload(None, 'plan.pdf')

        trashed = admin_soft_delete_file(
            admin_user.id,
            admin_user.email,
            file_instance.id,
        )

        assert trashed.is_deleted
        entry = AuditLog.objects.get()
        assert entry.action_type == 'file_admin_delete'
        assert entry.target_type == 'file'
        assert entry.target_id == str(file_instance.id)
        assert entry.target_name == 'plan.pdf'
        assert entry.actor_id == str(admin_user.id)
        assert entry.actor_email == 'admin@example.com'
        assert entry.metadata['before']['deleted_at'] is None
        assert entry.metadata['after']['deleted_at'] is not None
        assert entry.metadata['before']['user_id'] == user.id

    def test_restore_writes_audit_log(self, admin_user, upload):
        """Test admin restore brings the file back and records it."""
        file_instance = upload(None, 'plan.pdf')
        admin_soft_delete_file(admin_user.id, admin_user.email, file_instance.id)

        restored = admin_restore_file(
            admin_user.id,
            admin_user.email,
            file_instance.id,
        )

        assert not restored.is_deleted
        actions = list(
            AuditLog.objects.order_by('id').values_list(
                'action_type',
                flat=True,
            ),
        )
        assert actions == ['file_admin_delete', 'file_admin_restore']

    def test_missing_file(self, admin_user):
        """Test unknown file raises NotFoundError and logs nothing."""
        with pytest.raises(NotFoundError):
            admin_soft_delete_file(admin_user.id, admin_user.email, uuid.uuid4())

        assert not AuditLog.objects.exists()

    def test_failing_receiver_does_not_undo_action(self, admin_user, upload):
        """Test a broken audit sink is tolerated."""
        file_instance = upload(None, 'plan.pdf')

        def broken_sink(sender, **kwargs):
            raise RuntimeError('audit sink down')

        admin_action_performed.connect(broken_sink, dispatch_uid='broken')
        try:
            admin_soft_delete_file(
                admin_user.id,
                admin_user.email,
                file_instance.id,
            )
        finally:
            admin_action_performed.disconnect(dispatch_uid='broken')

        assert File.all_objects.get(pk=file_instance.pk).is_deleted
        assert AuditLog.objects.count() == 1


@pytest.mark.django_db
class TestAdminFolderActions:
    """Tests for admin soft delete and restore of folders."""

    def test_soft_delete_and_restore(self, user, admin_user):
        """Test folder goes to trash and back to its parent."""
        archive = create_folder(user.id, 'Archive')
        docs = create_folder(user.id, 'Docs', parent_id=archive.id)

        trashed = admin_soft_delete_folder(
            admin_user.id,
            admin_user.email,
            docs.id,
        )
        assert trashed.original_parent_id == archive.id

        restored = admin_restore_folder(
            admin_user.id,
            admin_user.email,
            docs.id,
        )

        assert restored.parent_id == archive.id
        assert Folder.objects.filter(pk=docs.pk).exists()
        delete_entry, restore_entry = AuditLog.objects.order_by('id')
        assert delete_entry.action_type == 'folder_admin_delete'
        assert restore_entry.action_type == 'folder_admin_restore'
        assert delete_entry.metadata['after']['original_parent_id'] == str(
            archive.id,
        )
        assert restore_entry.metadata['after']['parent_id'] == str(archive.id)

    def test_restore_live_folder(self, user, admin_user):
        """Test restoring a live folder fails without an audit entry."""
        docs = create_folder(user.id, 'Docs')

        with pytest.raises(NotFoundError):
            admin_restore_folder(admin_user.id, admin_user.email, docs.id)

        assert not AuditLog.objects.exists()
