"""Data models for tracked entries and dashboard statistics."""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from .constants import EntryStatus
from .tags import normalize_sources, normalize_tags


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_entry_id() -> str:
    return uuid.uuid4().hex


class EntryBase(SQLModel):
    """Fields shared by stored entries and entry payloads."""

    title: str = Field(min_length=1)
    author: str = ""
    synopsis: Optional[str] = None
    notes: Optional[str] = None

    status: EntryStatus = EntryStatus.PLAN_TO_READ
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Progress
    chapters_read: int = Field(default=0, ge=0)
    total_chapters: Optional[int] = Field(default=None, ge=0)
    total_repeats: int = Field(default=0, ge=0)

    # 1-10 in steps of 0.5
    rating: Optional[float] = Field(default=None, ge=1, le=10)

    # Media
    cover_url: Optional[str] = None
    compressed_image_url: Optional[str] = None
    original_image_url: Optional[str] = None

    sources: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    start_date: Optional[date] = None
    end_date: Optional[date] = None


class Entry(EntryBase, table=True):
    """A tracked manga/doujinshi entry as stored in the entries table."""

    __tablename__ = "entries"

    id: str = Field(default_factory=new_entry_id, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EntryRead(EntryBase):
    """Entry as returned by the API."""

    id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryRead":
        return cls.model_validate(entry, from_attributes=True)


class EntryInput(EntryBase):
    """Entry form submission, used for both create and full update."""

    allow_chapter_overflow: bool = False

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return normalize_tags(v or [])

    @field_validator("sources", mode="before")
    @classmethod
    def clean_sources(cls, v):
        if isinstance(v, str):
            v = [v]
        return normalize_sources(v or [])

    @field_validator("rating")
    @classmethod
    def half_point_steps(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and (v * 2) != int(v * 2):
            raise ValueError("rating must be a multiple of 0.5")
        return v

    @model_validator(mode="after")
    def check_progress(self):
        if (
            self.total_chapters is not None
            and self.chapters_read > self.total_chapters
            and not self.allow_chapter_overflow
        ):
            raise ValueError(
                f"chapters_read ({self.chapters_read}) exceeds "
                f"total_chapters ({self.total_chapters})"
            )
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date is before start_date")
        return self

    def entry_fields(self) -> dict:
        """Column values for the stored entry."""
        return self.model_dump(exclude={"allow_chapter_overflow"})


class AniListStats(BaseModel):
    """Read-only snapshot of the remote AniList manga statistics."""

    # Serialized with AniList field names (chaptersRead, meanScore, siteUrl)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    count: int = 0
    chapters_read: int = 0
    mean_score: float = 0.0  # 0-100 scale upstream
    site_url: Optional[str] = None


class RemoteStatsResult(BaseModel):
    """Outcome of resolving remote stats through the cache."""

    stats: Optional[AniListStats] = None
    from_cache: bool = False
    fetched_at_ms: Optional[int] = None
    warning: Optional[str] = None


class LocalStats(BaseModel):
    """Aggregates computed from locally tracked entries."""

    count: int = 0
    chapters_read: int = 0
    mean_score: float = 0.0
    rated_count: int = 0


class DashboardStats(BaseModel):
    """Headline numbers shown on the dashboard."""

    total: int
    chapters_read: int
    mean_score: float
    remote_available: bool = False
    from_cache: bool = False
    warning: Optional[str] = None
    site_url: Optional[str] = None


class ProcessImageResult(BaseModel):
    """URLs of the re-hosted original and compressed cover images."""

    original_url: str
    compressed_url: str
