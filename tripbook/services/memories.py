"""
Memories service: CRUD, comments, reactions and export over the JSON store.

Rules:
- Only the author may update or delete a memory.
- Media lists are append-only on update.
- Deleting a memory removes its comments and its media files.
- Reaction counters only increment.

Public API
----------
parse_fields(raw)                                         -> MemoryFields
list_memories(store, q, status, date_from, date_to, day, tag) -> list[Memory]
get_memory(store, memory_id)                              -> MemoryWithComments
get_owned(store, user, memory_id)                         -> Memory
create_memory(store, user, fields, media)                 -> Memory
update_memory(store, user, memory_id, fields, media)      -> Memory
delete_memory(store, user, memory_id, upload_dir)         -> None
add_comment(store, user, memory_id, text)                 -> Comment
list_comments(store, memory_id)                           -> list[Comment]
react_to_memory(store, memory_id, emoji)                  -> dict[str, int]
react_to_comment(store, comment_id, emoji)                -> dict[str, int]
export_memories(store, base_url)                          -> list[ExportedMemory]
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from tripbook.core.errors import (
    AccessDeniedError,
    CommentNotFoundError,
    EmojiRequiredError,
    EmptyCommentError,
    InvalidMemoryFieldError,
    MemoryNotFoundError,
    TitleRequiredError,
)
from tripbook.db.store import JsonStore
from tripbook.schemas.memory import (
    Comment,
    ExportedMemory,
    Memory,
    MemoryFields,
    MemoryStatus,
    MemoryWithComments,
    parse_when,
)
from tripbook.services.uploads import remove_media

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_date_only(value: str) -> bool:
    return len(value.strip()) == 10


def parse_bound(field: str, value: Optional[str]) -> Optional[str]:
    """Validate a from/to query bound; blank means unbounded."""
    if value is None or not value.strip():
        return None
    try:
        parse_when(value)
    except ValueError:
        raise InvalidMemoryFieldError(field, f"{field} must be an ISO date or date-time") from None
    return value.strip()


def _on_or_after(when: datetime, bound: str) -> bool:
    if _is_date_only(bound):
        return when.date() >= date.fromisoformat(bound)
    return _as_utc(when) >= _as_utc(parse_when(bound))


def _on_or_before(when: datetime, bound: str) -> bool:
    # A date-only upper bound includes that whole day.
    if _is_date_only(bound):
        return when.date() <= date.fromisoformat(bound)
    return _as_utc(when) <= _as_utc(parse_when(bound))


def _within(memory: Memory, date_from: Optional[str], date_to: Optional[str]) -> bool:
    if date_from is None and date_to is None:
        return True
    try:
        when = parse_when(memory.date)
    except ValueError:
        return False
    if date_from is not None and not _on_or_after(when, date_from):
        return False
    if date_to is not None and not _on_or_before(when, date_to):
        return False
    return True


def parse_fields(raw: dict[str, Any]) -> MemoryFields:
    """
    Validate raw form values once at the boundary. Keys whose value is None
    are treated as "not sent".
    """
    present = {k: v for k, v in raw.items() if v is not None}
    try:
        return MemoryFields(**present)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(loc) for loc in error["loc"]) or "form"
        raise InvalidMemoryFieldError(field, f"{field}: {error['msg']}") from exc


def _find(items: list[dict], item_id: str) -> Optional[dict]:
    return next((item for item in items if item.get("id") == item_id), None)


def _comments_for(data: dict, memory_id: str) -> list[Comment]:
    return [Comment.model_validate(c) for c in data["comments"] if c.get("memoryId") == memory_id]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_memories(
    store: JsonStore,
    q: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    day: Optional[str] = None,
    tag: Optional[str] = None,
) -> list[Memory]:
    """
    Filter memories in storage order.

    - q:      case-insensitive substring of title or text
    - status: exact match; blank means no status filter
    - from/to: inclusive bounds on `date`
    - day:    str(memory.day) == stripped value; blank means no day filter
    - tag:    case-insensitive exact tag match
    """
    memories = [Memory.model_validate(m) for m in store.load()["memories"]]

    if tag:
        wanted = tag.strip().casefold()
        memories = [m for m in memories if any(t.casefold() == wanted for t in m.tags)]
    if status:
        memories = [m for m in memories if m.status.value == status]
    if day is not None and day.strip():
        day_str = day.strip()
        memories = [m for m in memories if m.day is not None and str(m.day) == day_str]
    memories = [m for m in memories if _within(m, date_from, date_to)]
    if q:
        needle = q.casefold()
        memories = [
            m for m in memories
            if needle in m.title.casefold() or needle in m.text.casefold()
        ]
    return memories


def get_memory(store: JsonStore, memory_id: str) -> MemoryWithComments:
    data = store.load()
    raw = _find(data["memories"], memory_id)
    if raw is None:
        raise MemoryNotFoundError(memory_id)
    return MemoryWithComments(**Memory.model_validate(raw).model_dump(), comments=_comments_for(data, memory_id))


def get_owned(store: JsonStore, user: str, memory_id: str) -> Memory:
    raw = _find(store.load()["memories"], memory_id)
    if raw is None:
        raise MemoryNotFoundError(memory_id)
    memory = Memory.model_validate(raw)
    if memory.user != user:
        raise AccessDeniedError(memory_id)
    return memory


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def create_memory(
    store: JsonStore,
    user: str,
    fields: MemoryFields,
    media: list[str],
) -> Memory:
    if not fields.title:
        raise TitleRequiredError()

    now = _now()
    memory = Memory(
        id=str(uuid.uuid4()),
        user=user,
        title=fields.title,
        text=fields.text or "",
        date=fields.date or now,
        tags=fields.tags or [],
        location=fields.location or "",
        status=fields.status or MemoryStatus.draft,
        media=media,
        day=fields.day,
        reactions={},
        created_at=now,
        updated_at=now,
    )
    with store.transaction() as data:
        data["memories"].append(memory.to_document())
    logger.info("Memory %s created by %s (day=%s, %d media)", memory.id, user, memory.day, len(media))
    return memory


def update_memory(
    store: JsonStore,
    user: str,
    memory_id: str,
    fields: MemoryFields,
    media: list[str],
) -> Memory:
    """Apply the fields present in the request; new media is appended."""
    sent = fields.model_fields_set
    if "title" in sent and not fields.title:
        raise TitleRequiredError()

    with store.transaction() as data:
        idx = next((i for i, m in enumerate(data["memories"]) if m.get("id") == memory_id), None)
        if idx is None:
            raise MemoryNotFoundError(memory_id)
        memory = Memory.model_validate(data["memories"][idx])
        if memory.user != user:
            raise AccessDeniedError(memory_id)

        changes: dict[str, Any] = {}
        if "title" in sent:
            changes["title"] = fields.title
        if "text" in sent:
            changes["text"] = fields.text or ""
        if "date" in sent and fields.date:
            changes["date"] = fields.date
        if "tags" in sent:
            changes["tags"] = fields.tags or []
        if "location" in sent:
            changes["location"] = fields.location or ""
        if "status" in sent and fields.status is not None:
            changes["status"] = fields.status
        if "day" in sent:
            changes["day"] = fields.day
        if media:
            changes["media"] = memory.media + media
        changes["updated_at"] = _now()

        memory = memory.model_copy(update=changes)
        data["memories"][idx] = memory.to_document()

    logger.info("Memory %s updated by %s (fields=%s)", memory_id, user, sorted(sent))
    return memory


def delete_memory(store: JsonStore, user: str, memory_id: str, upload_dir: Path) -> None:
    with store.transaction() as data:
        raw = _find(data["memories"], memory_id)
        if raw is None:
            raise MemoryNotFoundError(memory_id)
        memory = Memory.model_validate(raw)
        if memory.user != user:
            raise AccessDeniedError(memory_id)
        data["memories"] = [m for m in data["memories"] if m.get("id") != memory_id]
        data["comments"] = [c for c in data["comments"] if c.get("memoryId") != memory_id]

    remove_media(memory.media, upload_dir)
    logger.info("Memory %s deleted by %s", memory_id, user)


# ---------------------------------------------------------------------------
# Comments and reactions
# ---------------------------------------------------------------------------

def add_comment(store: JsonStore, user: str, memory_id: str, text: Optional[str]) -> Comment:
    if not text or not text.strip():
        raise EmptyCommentError()
    with store.transaction() as data:
        if _find(data["memories"], memory_id) is None:
            raise MemoryNotFoundError(memory_id)
        comment = Comment(
            id=str(uuid.uuid4()),
            memory_id=memory_id,
            user=user,
            text=text,
            created_at=_now(),
            reactions={},
        )
        data["comments"].append(comment.model_dump(by_alias=True, mode="json"))
    return comment


def list_comments(store: JsonStore, memory_id: str) -> list[Comment]:
    return _comments_for(store.load(), memory_id)


def _increment(target: dict, emoji: str) -> dict[str, int]:
    reactions = target.setdefault("reactions", {})
    reactions[emoji] = int(reactions.get(emoji, 0)) + 1
    return dict(reactions)


def react_to_memory(store: JsonStore, memory_id: str, emoji: Optional[str]) -> dict[str, int]:
    if not emoji:
        raise EmojiRequiredError()
    with store.transaction() as data:
        raw = _find(data["memories"], memory_id)
        if raw is None:
            raise MemoryNotFoundError(memory_id)
        return _increment(raw, emoji)


def react_to_comment(store: JsonStore, comment_id: str, emoji: Optional[str]) -> dict[str, int]:
    if not emoji:
        raise EmojiRequiredError()
    with store.transaction() as data:
        raw = _find(data["comments"], comment_id)
        if raw is None:
            raise CommentNotFoundError(comment_id)
        return _increment(raw, emoji)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_memories(store: JsonStore, base_url: str) -> list[ExportedMemory]:
    """Every memory with its comments inlined and media URLs made absolute."""
    data = store.load()
    origin = base_url.rstrip("/")
    exported: list[ExportedMemory] = []
    for raw in data["memories"]:
        memory = Memory.model_validate(raw)
        exported.append(ExportedMemory(
            **memory.model_dump(),
            comments=_comments_for(data, memory.id),
            media_links=[origin + url for url in memory.media],
        ))
    return exported
