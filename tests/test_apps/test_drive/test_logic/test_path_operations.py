"""Tests for folder path resolution and storage key derivation."""

import uuid

import pytest
from django.utils import timezone

from cloudbox.apps.drive.logic.path_operations import (
    derive_physical_key,
    get_folder_hierarchy,
    resolve_folder_path,
)
from cloudbox.apps.drive.models import Folder


@pytest.fixture
def docs_tree(user):
    """Create Docs/Projects/Drafts for the test user."""
    docs = Folder.objects.create(user=user, name='Docs')
    projects = Folder.objects.create(user=user, name='Projects', parent=docs)
    drafts = Folder.objects.create(user=user, name='Drafts', parent=projects)
    return docs, projects, drafts


def test_resolve_root_path():
    """Test no folder resolves to the root segment."""
    assert resolve_folder_path(None) == 'root'


@pytest.mark.django_db
class TestResolveFolderPath:
    """Tests for resolve_folder_path function."""

    def test_top_level_folder(self, docs_tree):
        """Test a top-level folder path is its name."""
        docs, _, _ = docs_tree

        assert resolve_folder_path(docs.id) == 'Docs'

    def test_nested_folder(self, docs_tree):
        """Test nested folder path joins names from the top."""
        _, _, drafts = docs_tree

        assert resolve_folder_path(drafts.id) == 'Docs/Projects/Drafts'

    def test_missing_folder_falls_back_to_root(self, user):
        """Test unknown folder id resolves to root."""
        assert resolve_folder_path(uuid.uuid4()) == 'root'

    def test_trashed_ancestor_restarts_from_root(self, docs_tree):
        """Test an unresolvable ancestor is replaced by the root segment."""
        docs, projects, _ = docs_tree
        Folder.objects.filter(pk=docs.pk).update(deleted_at=timezone.now())

        assert resolve_folder_path(projects.id) == 'root/Projects'

    def test_foreign_ancestor_not_followed(self, user, other_user, docs_tree):
        """Test owner scoping stops at another user's folder."""
        _, projects, _ = docs_tree

        path = resolve_folder_path(projects.id, owner_id=other_user.id)

        assert path == 'root'

    def test_cycle_does_not_loop(self, docs_tree):
        """Test a corrupted cyclic chain terminates."""
        docs, projects, _ = docs_tree
        Folder.objects.filter(pk=docs.pk).update(parent=projects)

        assert resolve_folder_path(projects.id) == 'root/Docs/Projects'

    def test_depth_limit(self, settings, docs_tree):
        """Test chains deeper than the limit are truncated."""
        settings.DRIVE_MAX_TREE_DEPTH = 2
        _, _, drafts = docs_tree

        assert resolve_folder_path(drafts.id) == 'root/Projects/Drafts'


@pytest.mark.django_db
class TestDerivePhysicalKey:
    """Tests for derive_physical_key function."""

    def test_root_file_key(self, user):
        """Test file at root uses the root segment."""
        file_id = uuid.uuid4()

        key = derive_physical_key(user.id, None, file_id, 'notes.txt')

        assert key == f'{user.id}/root/{file_id}.txt'

    def test_nested_file_key(self, user, docs_tree):
        """Test key follows the folder path."""
        _, projects, _ = docs_tree
        file_id = uuid.uuid4()

        key = derive_physical_key(user.id, projects.id, file_id, 'plan.pdf')

        assert key == f'{user.id}/Docs/Projects/{file_id}.pdf'

    def test_key_uses_last_extension(self, user):
        """Test only the last extension is kept, case preserved."""
        file_id = uuid.uuid4()

        key = derive_physical_key(user.id, None, file_id, 'backup.tar.GZ')

        assert key == f'{user.id}/root/{file_id}.GZ'

    def test_key_without_extension(self, user):
        """Test names without extension get the default one."""
        file_id = uuid.uuid4()

        key = derive_physical_key(user.id, None, file_id, 'README')

        assert key == f'{user.id}/root/{file_id}.bin'

    def test_key_does_not_contain_logical_name(self, user):
        """Test the logical name never becomes part of the key."""
        file_id = uuid.uuid4()

        key = derive_physical_key(user.id, None, file_id, 'secret plan.txt')

        assert 'secret plan' not in key


@pytest.mark.django_db
class TestGetFolderHierarchy:
    """Tests for get_folder_hierarchy function."""

    def test_root_has_empty_breadcrumb(self):
        """Test root breadcrumb is empty."""
        assert get_folder_hierarchy(None) == []

    def test_breadcrumb_top_down(self, docs_tree):
        """Test breadcrumb lists folders from the top down."""
        docs, projects, drafts = docs_tree

        hierarchy = get_folder_hierarchy(drafts.id)

        assert [folder.id for folder in hierarchy] == [
            docs.id,
            projects.id,
            drafts.id,
        ]
