"""
Per-item completion flags and notes, keyed "day-{day}-item-{index}".

An item with neither a completion flag nor a note has no key at all, so
storage only ever holds meaningful state.
"""
from __future__ import annotations

import logging
import re
from typing import Iterator

from tripbook.viewer.models import DiaryEntry, ItemState
from tripbook.viewer.storage import KeyValueStorage

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^day-(\d+)-item-(\d+)$")


def item_key(day_id: int, index: int) -> str:
    return f"day-{day_id}-item-{index}"


class ItemStore:
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    def get(self, day_id: int, index: int) -> ItemState:
        return ItemState.from_json(self.storage.get_item(item_key(day_id, index)))

    def set(self, day_id: int, index: int, state: ItemState) -> None:
        key = item_key(day_id, index)
        if state.is_empty:
            self.storage.remove_item(key)
        else:
            self.storage.set_item(key, state.to_json())

    def scan_all(self) -> Iterator[tuple[int, int, ItemState]]:
        """Every stored item state; keys of other shapes are ignored."""
        for key in self.storage.keys():
            match = _KEY_RE.match(key)
            if match is None:
                continue
            state = ItemState.from_json(self.storage.get_item(key))
            if state.is_empty:
                logger.debug("Ignoring empty or unreadable item state %s", key)
                continue
            yield int(match.group(1)), int(match.group(2)), state

    def diary_entries(self) -> list[DiaryEntry]:
        """Notes ordered by day, then by position within the day."""
        noted = sorted(
            (day_id, index, state.note)
            for day_id, index, state in self.scan_all()
            if state.note
        )
        return [DiaryEntry(day=day_id, note=note) for day_id, _, note in noted]

    def progress(self, day_id: int, total: int) -> tuple[int, int]:
        done = sum(1 for index in range(total) if self.get(day_id, index).completed)
        return done, total
