"""Data models for tsundoku."""

import datetime
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: datetime.datetime) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite drops the offset when storing datetimes, so every value read
    back from the database goes through here.
    """
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


class ArchiveState(str, Enum):
    """Where a link sits in the reading workflow."""

    QUEUE = "queue"  # Waiting to be read
    ARCHIVED = "archived"  # Read, kept for reference


@dataclass(frozen=True)
class TagFound:
    """A tag lookup that matched an existing tag."""

    tag_id: int


@dataclass(frozen=True)
class TagNotFound:
    """A tag lookup with no matching tag."""


@dataclass(frozen=True)
class TagCreated:
    """A tag insertion that created a new row."""

    tag_id: int


@dataclass(frozen=True)
class TagAlreadyExists:
    """A tag insertion skipped because the text is already stored.

    Carries no identifier; use ``find_tag`` to resolve it.
    """


TagLookupResult = Union[TagFound, TagNotFound]
TagUpsertResult = Union[TagCreated, TagAlreadyExists]


class Entry(BaseModel):
    """A link submitted for the reading queue, with its comment and tags."""

    link: str = Field(..., description="The link or reference to add")
    comment: Optional[str] = Field(
        default=None, description="Optional comment on the link"
    )
    tags: Optional[List[str]] = Field(
        default=None, description="Tags for categorising the link"
    )

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: str) -> str:
        """Validate that the link is not empty."""
        if not v.strip():
            raise ValueError("Link cannot be empty")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Reject empty tags and drop repeats, keeping first occurrences."""
        if v is None:
            return None
        unique: List[str] = []
        for tag in v:
            if not tag:
                raise ValueError("Tags cannot be empty")
            if tag not in unique:
                unique.append(tag)
        return unique


class LinkRecord(BaseModel):
    """A stored link as returned by queries."""

    id: int = Field(..., description="Identifier of the link")
    link: str = Field(..., description="The link text")
    comment: str = Field(default="", description="Comment on the link")
    archive: ArchiveState = Field(
        default=ArchiveState.QUEUE, description="Reading state of the link"
    )
    timestamp: datetime.datetime = Field(
        default_factory=utc_now, description="When the link was added (UTC)"
    )
    tags: List[str] = Field(
        default_factory=list, description="Tags in the order they were attached"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @property
    def is_read(self) -> bool:
        """Whether the link has been moved to the archive."""
        return self.archive == ArchiveState.ARCHIVED
