"""
HTML rendering for the viewer (Jinja2, autoescaped).

Itinerary fragments come from the page author and are passed through as
Markup; memory fields and notes are user text and always escaped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from tripbook.schemas.memory import Memory, parse_when
from tripbook.viewer.markup import Element
from tripbook.viewer.models import DiaryEntry

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp", "gif")
VIDEO_EXTENSIONS = ("mp4", "mov", "mkv", "avi")
TEXT_PREVIEW_CHARS = 160
UNTITLED = "(Untitled)"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render(template: str, **context: Any) -> str:
    return env.get_template(template).render(**context)


# ---------------------------------------------------------------------------
# Memory cards
# ---------------------------------------------------------------------------

@dataclass
class MediaItem:
    kind: str  # "image" | "video"
    url: str


@dataclass
class MemoryCard:
    title: str
    meta: str
    text: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    location: Optional[str] = None
    media: list[MediaItem] = field(default_factory=list)


def format_date(value: str) -> str:
    """"2026-01-17T10:00:00Z" -> "17 Jan 2026"; unparseable values are shown as-is."""
    try:
        when = parse_when(value)
    except ValueError:
        return value
    return f"{when.day} {when:%b %Y}"


def truncate(text: str, limit: int = TEXT_PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


def media_item(url: str) -> Optional[MediaItem]:
    ext = url.rsplit(".", 1)[-1].lower() if "." in url else ""
    if ext in IMAGE_EXTENSIONS:
        return MediaItem("image", url)
    if ext in VIDEO_EXTENSIONS:
        return MediaItem("video", url)
    return None


def memory_card(memory: Memory) -> MemoryCard:
    media = [item for item in (media_item(url) for url in memory.media) if item is not None]
    return MemoryCard(
        title=memory.title or UNTITLED,
        meta=f"{format_date(memory.date or memory.created_at)} • {memory.status.value}",
        text=truncate(memory.text) if memory.text else None,
        tags=list(memory.tags),
        location=memory.location or None,
        media=media,
    )


def memory_cards(memories: Sequence[Memory]) -> list[MemoryCard]:
    return [memory_card(m) for m in memories]


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def render_day_memories(memories: Optional[Sequence[Memory]]) -> str:
    """Empty string when there is no data (the block is absent)."""
    if memories is None:
        return ""
    return render("day_memories.html", cards=memory_cards(memories))


def render_cover(memories: Optional[Sequence[Memory]]) -> str:
    return render(
        "cover.html",
        hidden=memories is None,
        cards=memory_cards(memories or []),
    )


def render_diary_section(section: Optional[Element], entries: Sequence[DiaryEntry]) -> str:
    """
    The page's diary section with its `#diary-list` filled from `entries`;
    it carries the `hidden` class while there are no entries.
    """
    listing = render("diary_entries.html", entries=entries)
    if section is None:
        return render("diary_panel.html", section=None, entries=entries)

    host = section.clone()
    classes = [c for c in host.classes if c not in ("card", "hidden")]
    if not entries:
        classes.append("hidden")
    host.set("class", " ".join(classes))
    target = host.get_by_id("diary-list")
    if target is not None:
        target.set_inner_html(listing)
    return render("diary_panel.html", section=Markup(host.outer_html), entries=entries)
