"""Itinerary records and per-item state shared by the viewer modules."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ScheduleItem:
    """One schedule row. Its position in the day is part of its identity."""
    time: str
    content: str
    transport: Optional[str] = None


@dataclass(frozen=True)
class DayRecord:
    """
    One itinerary day as read from the page. `title`, `subtitle`,
    `highlight` and item contents are markup fragments rendered verbatim.
    """
    id: int
    title: str
    subtitle: str = ""
    highlight: Optional[str] = None
    schedule: tuple[ScheduleItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ItemState:
    completed: bool = False
    note: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.completed and not self.note

    def to_json(self) -> str:
        payload: dict = {}
        if self.completed:
            payload["completed"] = True
        if self.note:
            payload["note"] = self.note
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "ItemState":
        """Undecodable or unexpected values read as the empty state."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except ValueError:
            return cls()
        if not isinstance(data, dict):
            return cls()
        note = data.get("note")
        note = note.strip() if isinstance(note, str) else None
        return cls(completed=data.get("completed") is True, note=note or None)


@dataclass(frozen=True)
class DiaryEntry:
    day: int
    note: str
