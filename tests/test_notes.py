import pytest
from sqlalchemy.exc import OperationalError

from src.notep_api import notes as notes_module
from src.notep_api.auth import register_account
from src.notep_api.errors import InvalidInput, NotFoundOrForbidden, StorageFailure
from src.notep_api.models import CONTENT_MAX_LENGTH, Note, User
from src.notep_api.notes import create_note, delete_note, list_notes, now_ms, update_note


@pytest.fixture
def owners(db):
    return register_account(db, "a@x.com", "pw"), register_account(db, "b@x.com", "pw")


def test_create_assigns_id_and_timestamp(db, owners):
    alice, _ = owners
    before = now_ms()
    note = create_note(db, alice, "T", "C")

    assert note.id == 1
    assert note.user_id == alice
    assert note.title == "T"
    assert note.content == "C"
    assert note.timestamp >= before

    other = create_note(db, alice, "T2", "")
    assert other.id not in (None, note.id)


@pytest.mark.parametrize("title", ["", "   "])
def test_create_rejects_blank_title(db, owners, title):
    with pytest.raises(InvalidInput):
        create_note(db, owners[0], title, "C")
    assert db.query(Note).count() == 0


def test_create_requires_owner(db):
    with pytest.raises(InvalidInput):
        create_note(db, None, "T", "C")


def test_create_rejects_unknown_owner(db):
    with pytest.raises(InvalidInput):
        create_note(db, 999, "T", "C")
    assert db.query(Note).count() == 0


def test_create_rejects_oversized_content(db, owners):
    with pytest.raises(InvalidInput):
        create_note(db, owners[0], "T", "x" * (CONTENT_MAX_LENGTH + 1))


def test_list_is_scoped_to_owner(db, owners):
    alice, bob = owners
    mine = create_note(db, alice, "mine", "")
    create_note(db, bob, "theirs", "")

    assert [n.id for n in list_notes(db, alice)] == [mine.id]
    assert mine.id not in [n.id for n in list_notes(db, bob)]


def test_list_unknown_owner_is_empty(db):
    assert list_notes(db, 42) == []


def test_list_orders_most_recent_first(db, owners, monkeypatch):
    clock = iter(range(1000, 2000, 10))
    monkeypatch.setattr(notes_module, "now_ms", lambda: next(clock))
    alice, _ = owners
    first = create_note(db, alice, "first", "")
    second = create_note(db, alice, "second", "")
    # refresh the older note so it becomes the most recent
    update_note(db, first.id, alice, "first edited", "")

    ids = [n.id for n in list_notes(db, alice)]
    assert ids[0] == first.id
    assert set(ids) == {first.id, second.id}


def test_update_by_owner_replaces_fields(db, owners):
    alice, _ = owners
    note = create_note(db, alice, "T", "C")
    created_at = note.timestamp

    updated = update_note(db, note.id, alice, "X", "Y")

    assert updated.id == note.id
    assert (updated.title, updated.content) == ("X", "Y")
    assert updated.timestamp >= created_at


def test_update_by_other_owner_is_not_found_and_leaves_note(db, owners):
    alice, bob = owners
    note = create_note(db, alice, "T", "C")

    with pytest.raises(NotFoundOrForbidden):
        update_note(db, note.id, bob, "X", "Y")

    stored = list_notes(db, alice)
    assert [(n.title, n.content) for n in stored] == [("T", "C")]


def test_update_missing_note_matches_foreign_note_error(db, owners):
    alice, bob = owners
    note = create_note(db, alice, "T", "C")

    with pytest.raises(NotFoundOrForbidden) as foreign:
        update_note(db, note.id, bob, "X", "Y")
    with pytest.raises(NotFoundOrForbidden) as missing:
        update_note(db, 12345, bob, "X", "Y")

    assert foreign.value.message == missing.value.message


def test_update_rejects_blank_title(db, owners):
    alice, _ = owners
    note = create_note(db, alice, "T", "C")
    with pytest.raises(InvalidInput):
        update_note(db, note.id, alice, "", "Y")
    assert list_notes(db, alice)[0].title == "T"


def test_delete_removes_note(db, owners):
    alice, _ = owners
    keep = create_note(db, alice, "keep", "")
    gone = create_note(db, alice, "gone", "")

    delete_note(db, gone.id, alice)

    assert [n.id for n in list_notes(db, alice)] == [keep.id]


def test_delete_by_other_owner_is_not_found(db, owners):
    alice, bob = owners
    note = create_note(db, alice, "T", "C")

    with pytest.raises(NotFoundOrForbidden):
        delete_note(db, note.id, bob)
    with pytest.raises(NotFoundOrForbidden):
        delete_note(db, 999, alice)

    assert [n.id for n in list_notes(db, alice)] == [note.id]


def test_deleting_account_cascades_to_notes(db, owners):
    alice, bob = owners
    create_note(db, alice, "T", "C")
    create_note(db, bob, "B", "")

    db.query(User).filter(User.id == alice).delete(synchronize_session=False)
    db.commit()

    assert db.query(Note).filter(Note.user_id == alice).count() == 0
    assert len(list_notes(db, bob)) == 1


@pytest.mark.parametrize("bad_id", [0, -1, 2**63, 2**70])
def test_out_of_range_ids_are_invalid_input(db, owners, bad_id):
    alice, _ = owners
    note = create_note(db, alice, "T", "C")

    with pytest.raises(InvalidInput):
        list_notes(db, bad_id)
    with pytest.raises(InvalidInput):
        create_note(db, bad_id, "T", "C")
    with pytest.raises(InvalidInput):
        update_note(db, bad_id, alice, "X", "Y")
    with pytest.raises(InvalidInput):
        update_note(db, note.id, bad_id, "X", "Y")
    with pytest.raises(InvalidInput):
        delete_note(db, bad_id, alice)
    with pytest.raises(InvalidInput):
        delete_note(db, note.id, bad_id)

    assert [(n.title, n.content) for n in list_notes(db, alice)] == [("T", "C")]


@pytest.fixture
def failing_commit(db, monkeypatch):
    """Make the next commits fail; returns the list of rollbacks seen."""
    rollbacks = []
    real_rollback = db.rollback

    def commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    def rollback():
        rollbacks.append(True)
        real_rollback()

    def install():
        monkeypatch.setattr(db, "commit", commit)
        monkeypatch.setattr(db, "rollback", rollback)
        return rollbacks

    return install


def test_commit_failure_on_create_is_storage_failure(db, owners, failing_commit):
    alice, _ = owners
    rollbacks = failing_commit()

    with pytest.raises(StorageFailure):
        create_note(db, alice, "T", "C")

    assert rollbacks
    assert db.query(Note).count() == 0


def test_commit_failure_on_update_leaves_note(db, owners, failing_commit):
    alice, _ = owners
    note = create_note(db, alice, "T", "C")
    rollbacks = failing_commit()

    with pytest.raises(StorageFailure):
        update_note(db, note.id, alice, "X", "Y")

    assert rollbacks
    assert [(n.title, n.content) for n in list_notes(db, alice)] == [("T", "C")]


def test_commit_failure_on_delete_keeps_note(db, owners, failing_commit):
    alice, _ = owners
    note = create_note(db, alice, "T", "C")
    rollbacks = failing_commit()

    with pytest.raises(StorageFailure):
        delete_note(db, note.id, alice)

    assert rollbacks
    assert [n.id for n in list_notes(db, alice)] == [note.id]
