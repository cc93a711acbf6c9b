"""
Memory, comment and reaction schemas.

The same `Memory` shape is used by the server (stored document, responses)
and by the viewer's API client (validated once on receipt).

POST /memories                 → multipart form → MemoryFields → Memory
PUT  /memories/{id}            → multipart form → MemoryFields → Memory
GET  /memories                 → list[Memory]
GET  /memories/{id}            → MemoryWithComments
POST /memories/{id}/comments   → CommentCreate → Comment
POST /.../reactions            → ReactionRequest → dict[str, int]
GET  /export                   → list[ExportedMemory]
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MEDIA_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif", ".mp4", ".mov", ".mkv", ".avi")


class MemoryStatus(str, enum.Enum):
    draft = "draft"
    private = "private"
    public = "public"


# ---------------------------------------------------------------------------
# Field parsing shared by the form schema and the stored model
# ---------------------------------------------------------------------------

def parse_tags(value: Any) -> list[str]:
    """Accept "a, b" or ["a", "b, c"]; return trimmed non-empty tags in order."""
    if value is None:
        return []
    items = [value] if isinstance(value, str) else list(value)
    tags: list[str] = []
    for item in items:
        tags.extend(t.strip() for t in str(item).split(",") if t.strip())
    return tags


def parse_day(value: Any) -> Optional[int]:
    """Blank means "no day" (cover collection); anything else must be a positive integer."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("day must be a positive integer")
    text = str(value).strip()
    if not text:
        return None
    try:
        day = int(text)
    except ValueError:
        raise ValueError("day must be a positive integer") from None
    if day < 1:
        raise ValueError("day must be a positive integer")
    return day


def parse_when(value: str) -> datetime:
    """Parse an ISO date or date-time ("2026-01-17", "2026-01-17T10:00:00Z")."""
    return datetime.fromisoformat(value.strip())


# ---------------------------------------------------------------------------
# Stored / returned shapes
# ---------------------------------------------------------------------------

class Comment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    memory_id: str = Field(alias="memoryId")
    user: str
    text: str
    created_at: str = Field(alias="createdAt")
    reactions: dict[str, int] = Field(default_factory=dict)


class Memory(BaseModel):
    """A user-authored memory, optionally linked to an itinerary day."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user: str
    title: str
    text: str = ""
    date: str
    tags: list[str] = Field(default_factory=list)
    location: str = ""
    status: MemoryStatus = MemoryStatus.draft
    media: list[str] = Field(default_factory=list)
    day: Optional[int] = Field(
        default=None,
        description="Itinerary day id; null for cover (day-less) memories.",
    )
    reactions: dict[str, int] = Field(default_factory=dict)
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")

    @field_validator("day", mode="before")
    @classmethod
    def coerce_day(cls, v: Any) -> Optional[int]:
        return parse_day(v)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class MemoryWithComments(Memory):
    comments: list[Comment] = Field(default_factory=list)


class ExportedMemory(MemoryWithComments):
    media_links: list[str] = Field(default_factory=list, alias="mediaLinks")


# ---------------------------------------------------------------------------
# Request shapes
# ---------------------------------------------------------------------------

class MemoryFields(BaseModel):
    """
    Validated memory form fields. Only the fields present in the request are
    set, so `model_fields_set` tells a partial update which fields to touch.
    """
    title: Optional[str] = None
    text: Optional[str] = None
    date: Optional[str] = None
    tags: Optional[list[str]] = None
    location: Optional[str] = None
    status: Optional[MemoryStatus] = None
    day: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> list[str]:
        return parse_tags(v)

    @field_validator("day", mode="before")
    @classmethod
    def check_day(cls, v: Any) -> Optional[int]:
        return parse_day(v)

    @field_validator("date")
    @classmethod
    def check_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        try:
            parse_when(v)
        except ValueError:
            raise ValueError("date must be an ISO date or date-time") from None
        return v.strip()


class CommentCreate(BaseModel):
    text: Optional[str] = None


class ReactionRequest(BaseModel):
    emoji: Optional[str] = Field(default=None, examples=["❤"])
