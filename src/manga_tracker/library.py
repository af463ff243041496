"""Search, per-status ordering and pagination of the entry list."""

import math
from typing import Iterable, Optional

from pydantic import BaseModel

from .constants import ENTRIES_PER_PAGE, EntryStatus
from .models import Entry, EntryRead


class EntryPage(BaseModel):
    """One page of a filtered entry list."""

    entries: list[EntryRead]
    page: int
    per_page: int
    total: int
    total_pages: int


def matches_search(entry: Entry, search: str) -> bool:
    term = search.lower()
    return (
        term in entry.title.lower()
        or term in (entry.author or "").lower()
        or any(term in tag.lower() for tag in entry.tags or [])
    )


def filter_entries(
    entries: Iterable[Entry],
    search: Optional[str] = None,
    status: Optional[EntryStatus] = None,
) -> list[Entry]:
    result = list(entries)
    if status is not None:
        result = [e for e in result if e.status == status]
    if search and search.strip():
        result = [e for e in result if matches_search(e, search.strip())]
    return result


def sort_for_status(entries: Iterable[Entry], status: Optional[EntryStatus]) -> list[Entry]:
    """Completed entries by rating (best first); everything else newest first."""
    if status == EntryStatus.COMPLETED:
        return sorted(entries, key=lambda e: e.rating or 0, reverse=True)
    return sorted(entries, key=lambda e: e.created_at, reverse=True)


def paginate(entries: list[Entry], page: int = 1, per_page: int = ENTRIES_PER_PAGE) -> EntryPage:
    """Slice out one page; out-of-range pages are clamped."""
    total = len(entries)
    total_pages = max(1, math.ceil(total / per_page))
    page = max(1, min(page, total_pages))
    start = (page - 1) * per_page
    return EntryPage(
        entries=[EntryRead.from_entry(e) for e in entries[start:start + per_page]],
        page=page,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
    )


def status_counts(entries: Iterable[Entry]) -> dict[str, int]:
    counts = {status.value: 0 for status in EntryStatus}
    for entry in entries:
        counts[EntryStatus(entry.status).value] += 1
    return counts
