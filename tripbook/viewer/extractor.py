"""
One-time extraction of the itinerary from the page markup.

Every `.day-card` block becomes a DayRecord and is removed from the
document; the `#diary` section is detached so the diary panel can host it.
"""
from __future__ import annotations

import logging
from typing import Optional

from tripbook.viewer.markup import Element
from tripbook.viewer.models import DayRecord, ScheduleItem

logger = logging.getLogger(__name__)


def _inner(card: Element, class_name: str) -> Optional[str]:
    el = card.find_by_class(class_name)
    return el.inner_html.strip() if el is not None else None


def _day_id(card: Element) -> Optional[int]:
    raw = (card.get("data-day") or "").strip()
    try:
        day_id = int(raw)
    except ValueError:
        return None
    return day_id if day_id > 0 else None


def _schedule_item(li: Element) -> ScheduleItem:
    time_el = li.find_by_class("time")
    transport_el = li.find_by_class("transport")

    # Content is the row without its time and transport parts.
    content = li.clone()
    for class_name in ("time", "transport"):
        part = content.find_by_class(class_name)
        if part is not None:
            part.remove()

    return ScheduleItem(
        time=time_el.text.strip() if time_el is not None else "",
        content=content.inner_html.strip(),
        transport=transport_el.inner_html.strip() if transport_el is not None else None,
    )


def _schedule(card: Element) -> tuple[ScheduleItem, ...]:
    schedule = card.find_by_class("schedule")
    if schedule is None:
        return ()
    return tuple(_schedule_item(li) for li in schedule.child_elements("li"))


def extract_itinerary(document: Element) -> list[DayRecord]:
    """
    Read every `.day-card` in document order and remove it. A card without a
    positive integer `data-day`, or repeating an earlier one, is skipped
    (and still removed).
    """
    days: list[DayRecord] = []
    seen: set[int] = set()
    for card in document.find_all_by_class("day-card"):
        day_id = _day_id(card)
        if day_id is None:
            logger.warning("Skipping day card with invalid data-day=%r", card.get("data-day"))
        elif day_id in seen:
            logger.warning("Skipping duplicate day card %d", day_id)
        else:
            seen.add(day_id)
            days.append(DayRecord(
                id=day_id,
                title=_inner(card, "day-title") or "",
                subtitle=_inner(card, "day-sub") or "",
                highlight=_inner(card, "highlight"),
                schedule=_schedule(card),
            ))
        card.remove()
    return days


def take_diary_section(document: Element) -> Optional[Element]:
    """Detach and return the `#diary` section, if the page has one."""
    section = document.get_by_id("diary")
    if section is not None:
        section.remove()
    return section
