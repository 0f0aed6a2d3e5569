"""Tests for batch move operations."""

import uuid

import pytest

from cloudbox.apps.drive.exceptions import (
    NotFoundError,
    NotOwnerError,
    SelfParentError,
)
from cloudbox.apps.drive.logic.batch_operations import (
    ItemKind,
    ItemRef,
    move_many,
)
from cloudbox.apps.drive.logic.folder_operations import create_folder
from cloudbox.apps.drive.models import File, Folder


@pytest.mark.django_db
class TestMoveMany:
    """Tests for move_many function."""

    def test_move_files_and_folders(self, user, upload, bucket_keys):
        """Test every item lands in the target folder."""
        archive = create_folder(user.id, 'Archive')
        docs = create_folder(user.id, 'Docs')
        plan = upload(docs, 'plan.pdf')
        notes = upload(None, 'notes.txt')

        result = move_many(
            [
                ItemRef(ItemKind.FOLDER, docs.id),
                ItemRef(ItemKind.FILE, notes.id),
            ],
            archive.id,
            user.id,
        )

        assert result.errors == []
        assert len(result.moved) == 2
        assert Folder.objects.get(pk=docs.pk).parent_id == archive.id
        assert File.objects.get(pk=notes.pk).folder_id == archive.id
        assert bucket_keys() == {
            f'{user.id}/Archive/Docs/{plan.id}.pdf',
            f'{user.id}/Archive/{notes.id}.txt',
        }
        assert not result.has_partial_cascades

    def test_partial_success(self, user, upload):
        """Test N-1 items move when one is rejected."""
        archive = create_folder(user.id, 'Archive')
        files = [upload(None, f'file{index}.txt') for index in range(3)]
        refs = [ItemRef(ItemKind.FILE, item.id) for item in files]
        refs.append(ItemRef(ItemKind.FOLDER, archive.id))

        result = move_many(refs, archive.id, user.id)

        assert len(result.moved) == 3
        assert len(result.errors) == 1
        failed = result.errors[0]
        assert failed.item.item_id == archive.id
        assert isinstance(failed.error, SelfParentError)
        assert failed.reason == str(failed.error)
        assert File.objects.filter(folder=archive).count() == 3

    def test_errors_are_per_item(self, user, other_user, upload):
        """Test missing and foreign items fail without stopping the batch."""
        archive = create_folder(user.id, 'Archive')
        theirs = create_folder(other_user.id, 'Theirs')
        mine = upload(None, 'mine.txt')

        result = move_many(
            [
                ItemRef(ItemKind.FILE, uuid.uuid4()),
                ItemRef(ItemKind.FOLDER, theirs.id),
                ItemRef(ItemKind.FILE, mine.id),
            ],
            archive.id,
            user.id,
        )

        assert [item.id for item in result.moved] == [mine.id]
        errors = [type(failure.error) for failure in result.errors]
        assert errors == [NotFoundError, NotOwnerError]

    def test_empty_batch(self, user):
        """Test an empty batch does nothing."""
        result = move_many([], None, user.id)

        assert result.moved == []
        assert result.errors == []
