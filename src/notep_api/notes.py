import logging
import time
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.notep_api.errors import InvalidInput, NotFoundOrForbidden, StorageFailure
from src.notep_api.models import CONTENT_MAX_LENGTH, ID_MAX, TITLE_MAX_LENGTH, Note

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _valid_id(value: Optional[int]) -> bool:
    return value is not None and 1 <= value <= ID_MAX


def _validate_note_fields(owner_id: Optional[int], title: str, content: str) -> None:
    if owner_id is None:
        raise InvalidInput("userId is required")
    if not _valid_id(owner_id):
        raise InvalidInput("Invalid userId")
    if title is None or not title.strip():
        raise InvalidInput("title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise InvalidInput("title is too long")
    if content is not None and len(content) > CONTENT_MAX_LENGTH:
        raise InvalidInput("content is too long")


# PUBLIC_INTERFACE
def list_notes(db: Session, owner_id: int) -> List[Note]:
    """Return the owner's notes, most recently written first."""
    if not _valid_id(owner_id):
        raise InvalidInput("Invalid userId")
    try:
        return (
            db.query(Note)
            .filter(Note.user_id == owner_id)
            .order_by(Note.timestamp.desc(), Note.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise StorageFailure() from exc


# PUBLIC_INTERFACE
def create_note(db: Session, owner_id: int, title: str, content: str = "") -> Note:
    """
    Store a new note for the owner.

    Returns:
        The stored Note with its assigned id and timestamp.
    """
    _validate_note_fields(owner_id, title, content)

    note = Note(user_id=owner_id, title=title, content=content or "", timestamp=now_ms())
    db.add(note)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise InvalidInput("Unknown user")
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageFailure() from exc
    db.refresh(note)
    logger.info(f"Created note {note.id} for user {owner_id}")
    return note


# PUBLIC_INTERFACE
def update_note(db: Session, note_id: int, owner_id: int, title: str, content: str = "") -> Note:
    """
    Replace title and content of a note the owner holds.

    The write is a single UPDATE matching both the note id and the owner id;
    nothing is read beforehand.

    Raises:
        NotFoundOrForbidden if no note with that id belongs to the owner.
    """
    if not _valid_id(note_id):
        raise InvalidInput("Invalid note ID")
    _validate_note_fields(owner_id, title, content)

    try:
        rows = (
            db.query(Note)
            .filter(Note.id == note_id, Note.user_id == owner_id)
            .update(
                {Note.title: title, Note.content: content or "", Note.timestamp: now_ms()},
                synchronize_session=False,
            )
        )
        if rows == 0:
            db.rollback()
            raise NotFoundOrForbidden()
        note = db.query(Note).filter(Note.id == note_id).populate_existing().one()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageFailure() from exc
    logger.info(f"Updated note {note_id} for user {owner_id}")
    return note


# PUBLIC_INTERFACE
def delete_note(db: Session, note_id: int, owner_id: int) -> None:
    """
    Delete a note the owner holds.

    Raises:
        NotFoundOrForbidden if no note with that id belongs to the owner.
    """
    if not _valid_id(note_id) or not _valid_id(owner_id):
        raise InvalidInput("Invalid note ID or userId")

    try:
        rows = (
            db.query(Note)
            .filter(Note.id == note_id, Note.user_id == owner_id)
            .delete(synchronize_session=False)
        )
        if rows == 0:
            db.rollback()
            raise NotFoundOrForbidden()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageFailure() from exc
    logger.info(f"Deleted note {note_id} for user {owner_id}")
