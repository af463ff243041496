"""Entry persistence backed by SQLModel."""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from .constants import EntryStatus
from .models import Entry, EntryInput, utcnow

logger = logging.getLogger(__name__)

ORDER_COLUMNS = {
    "created_at": Entry.created_at,
    "updated_at": Entry.updated_at,
}


class EntryNotFoundError(Exception):
    """Raised when no entry exists for an id."""


def make_engine(database_url: str):
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url)

    # Sessions are used from FastAPI's worker threads
    connect_args = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        # One shared connection so every session sees the same in-memory db
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


class EntryStore:
    """CRUD over the entries table."""

    def __init__(self, database_url: str):
        self.engine = make_engine(database_url)
        SQLModel.metadata.create_all(self.engine)
        logger.debug(f"Entry store ready at {database_url}")

    def list_entries(self, order_by: str = "created_at") -> list[Entry]:
        """All entries, newest first."""
        column = ORDER_COLUMNS.get(order_by, Entry.created_at)
        with Session(self.engine) as session:
            return list(session.exec(select(Entry).order_by(column.desc())).all())

    def get_entry(self, entry_id: str) -> Entry:
        with Session(self.engine) as session:
            entry = session.get(Entry, entry_id)
            if entry is None:
                raise EntryNotFoundError(entry_id)
            return entry

    def create_entry(self, payload: EntryInput) -> Entry:
        entry = Entry(**payload.entry_fields())
        with Session(self.engine) as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
        logger.info(f"Created entry {entry.id}: {entry.title}")
        return entry

    def update_entry(self, entry_id: str, payload: EntryInput) -> Entry:
        """Replace all editable fields of an entry."""
        return self._apply(entry_id, payload.entry_fields())

    def update_fields(self, entry_id: str, fields: dict) -> Entry:
        return self._apply(entry_id, fields)

    def _apply(self, entry_id: str, fields: dict) -> Entry:
        with Session(self.engine) as session:
            entry = session.get(Entry, entry_id)
            if entry is None:
                raise EntryNotFoundError(entry_id)
            for key, value in fields.items():
                setattr(entry, key, value)
            entry.updated_at = utcnow()
            session.add(entry)
            session.commit()
            session.refresh(entry)
        logger.info(f"Updated entry {entry_id}")
        return entry

    def delete_entry(self, entry_id: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(Entry, entry_id)
            if entry is None:
                raise EntryNotFoundError(entry_id)
            session.delete(entry)
            session.commit()
        logger.info(f"Deleted entry {entry_id}")

    def increment_chapter(self, entry_id: str, today: Optional[date] = None) -> tuple[Entry, bool]:
        """
        Add one read chapter and apply the automatic status/date updates.

        Returns the updated entry and whether this increment completed it.
        """
        entry = self.get_entry(entry_id)
        changes = next_chapter_changes(entry, today or date.today())
        if not changes:
            logger.info(f"Entry {entry_id} is already at its last chapter")
            return entry, False
        completed = changes.get("status") == EntryStatus.COMPLETED
        return self._apply(entry_id, changes), completed


def next_chapter_changes(entry: Entry, today: date) -> dict:
    """Field changes for reading one more chapter of an entry.

    Empty when the entry is already at its known total.
    """
    if entry.total_chapters is not None and (entry.chapters_read or 0) >= entry.total_chapters:
        return {}

    chapters = (entry.chapters_read or 0) + 1
    changes = {"chapters_read": chapters}

    if entry.status == EntryStatus.PLAN_TO_READ and chapters == 1:
        changes["status"] = EntryStatus.READING
        if not entry.start_date:
            changes["start_date"] = today

    if entry.total_chapters and chapters >= entry.total_chapters:
        changes["status"] = EntryStatus.COMPLETED
        if not entry.end_date:
            changes["end_date"] = today
        if entry.status == EntryStatus.REREADING:
            changes["total_repeats"] = (entry.total_repeats or 0) + 1

    return changes
