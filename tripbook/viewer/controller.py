"""
Tab/panel state machine of the itinerary viewer.

One tab per day plus "diary" and "memories"; exactly one is active. Panels
are built on first activation and reused afterwards. Activating a view:

1. selects its tab (tabindex 0) and deselects the rest (tabindex -1)
2. builds the panel if needed
3. shows it and hides every other built panel
4. remembers day views under "lastDay"
5. reflects the view into the address ("dia" parameter)

Unknown view ids are logged and ignored.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol, Sequence

from markupsafe import Markup

from tripbook.schemas.memory import Memory
from tripbook.viewer import render as html
from tripbook.viewer.item_store import ItemStore
from tripbook.viewer.markup import Element
from tripbook.viewer.models import DayRecord, DiaryEntry, ItemState
from tripbook.viewer.navigation import (
    DIARY,
    LAST_DAY_KEY,
    MEMORIES,
    Address,
    ViewId,
    resolve_initial_view,
)
from tripbook.viewer.storage import KeyValueStorage

logger = logging.getLogger(__name__)

NEXT_KEYS = ("ArrowRight", "Right")
PREVIOUS_KEYS = ("ArrowLeft", "Left")
ACTIVATE_KEYS = ("Enter", " ", "Spacebar")


# ---------------------------------------------------------------------------
# View state
# ---------------------------------------------------------------------------

@dataclass
class Tab:
    view_id: ViewId
    label: str
    selected: bool = False

    @property
    def tabindex(self) -> int:
        return 0 if self.selected else -1


@dataclass
class Panel:
    view_id: ViewId
    hidden: bool = True


@dataclass
class DayPanel(Panel):
    day: Optional[DayRecord] = None
    has_previous: bool = False
    has_next: bool = False
    # None means "no data" and the memories block is absent.
    memories: Optional[list[Memory]] = None


@dataclass
class DiaryPanel(Panel):
    section: Optional[Element] = None
    entries: list[DiaryEntry] = field(default_factory=list)


@dataclass
class MemoriesPanel(Panel):
    pass


class PanelRegistry:
    """View id -> built panel, in build order."""

    def __init__(self):
        self._panels: dict[ViewId, Panel] = {}

    def __contains__(self, view_id: ViewId) -> bool:
        return view_id in self._panels

    def __iter__(self) -> Iterator[Panel]:
        return iter(list(self._panels.values()))

    def __len__(self) -> int:
        return len(self._panels)

    def get(self, view_id: ViewId) -> Optional[Panel]:
        return self._panels.get(view_id)

    def add(self, panel: Panel) -> Panel:
        if panel.view_id in self._panels:
            raise ValueError(f"panel {panel.view_id!r} is already built")
        self._panels[panel.view_id] = panel
        return panel

    def day_panel(self, day_id: int) -> Optional[DayPanel]:
        panel = self._panels.get(day_id)
        return panel if isinstance(panel, DayPanel) else None


@dataclass
class CoverSection:
    """Memories without a day, shown on the cover. None hides the section."""
    memories: Optional[list[Memory]] = None

    @property
    def hidden(self) -> bool:
        return self.memories is None


class MemoriesHooks(Protocol):
    """What the controller needs from the memories view."""

    async def mount(self, panel: MemoriesPanel) -> None: ...

    async def load_day(self, day_id: int) -> None: ...

    def render(self) -> str: ...


def progress_label(day_id: int, done: int, total: int) -> str:
    base = f"Day {day_id}"
    if total <= 0:
        return base
    if done == total:
        return f"{base} ✓"
    return f"{base} ({done}/{total})"


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class PanelController:
    def __init__(
        self,
        days: Sequence[DayRecord],
        items: ItemStore,
        storage: KeyValueStorage,
        address: Address,
        registry: PanelRegistry,
        memories: MemoriesHooks,
        diary_section: Optional[Element] = None,
    ):
        self.days = list(days)
        self.items = items
        self.storage = storage
        self.address = address
        self.registry = registry
        self.memories = memories
        self.diary_section = diary_section

        self._days_by_id = {day.id: day for day in self.days}
        self.tabs: list[Tab] = [Tab(day.id, self.tab_label(day.id)) for day in self.days]
        self.tabs.append(Tab(DIARY, "Diary"))
        self.tabs.append(Tab(MEMORIES, "Memories"))

        self.active: Optional[ViewId] = None
        self.focused: Optional[ViewId] = None
        # Number of panels materialized so far.
        self.builds = 0

    # -- lookup ------------------------------------------------------------

    @property
    def view_ids(self) -> list[ViewId]:
        return [tab.view_id for tab in self.tabs]

    @property
    def day_ids(self) -> list[int]:
        return [day.id for day in self.days]

    def tab(self, view_id: ViewId) -> Optional[Tab]:
        return next((t for t in self.tabs if t.view_id == view_id), None)

    def day(self, day_id: int) -> Optional[DayRecord]:
        return self._days_by_id.get(day_id)

    # -- activation --------------------------------------------------------

    async def start(self) -> ViewId:
        """Open the view named by the address, the last day, the first day or the diary."""
        view_id = resolve_initial_view(
            self.address.view,
            self.storage.get_item(LAST_DAY_KEY),
            self.day_ids,
            self.view_ids,
        )
        await self.activate(view_id)
        return view_id

    async def activate(self, view_id: ViewId) -> bool:
        if self.tab(view_id) is None:
            logger.warning("Ignoring activation of unknown view %r", view_id)
            return False

        for tab in self.tabs:
            tab.selected = tab.view_id == view_id
        self.focused = view_id
        self.active = view_id

        if view_id not in self.registry:
            await self._build(view_id)

        for panel in self.registry:
            panel.hidden = panel.view_id != view_id

        if isinstance(view_id, int):
            self.storage.set_item(LAST_DAY_KEY, str(view_id))
        self.address.reflect(view_id)
        return True

    async def _build(self, view_id: ViewId) -> None:
        self.builds += 1
        if view_id == DIARY:
            self.registry.add(DiaryPanel(
                view_id=DIARY,
                section=self.diary_section,
                entries=self.items.diary_entries(),
            ))
        elif view_id == MEMORIES:
            panel = self.registry.add(MemoriesPanel(view_id=MEMORIES))
            await self.memories.mount(panel)
        else:
            day = self._days_by_id[view_id]
            self.registry.add(DayPanel(
                view_id=day.id,
                day=day,
                has_previous=day.id - 1 in self._days_by_id,
                has_next=day.id + 1 in self._days_by_id,
            ))
            await self.memories.load_day(day.id)
        logger.debug("Built panel %r", view_id)

    async def go_previous(self, day_id: int) -> bool:
        if day_id - 1 not in self._days_by_id:
            return False
        return await self.activate(day_id - 1)

    async def go_next(self, day_id: int) -> bool:
        if day_id + 1 not in self._days_by_id:
            return False
        return await self.activate(day_id + 1)

    # -- keyboard ----------------------------------------------------------

    def focus(self, view_id: ViewId) -> None:
        if self.tab(view_id) is not None:
            self.focused = view_id

    async def handle_key(self, key: str) -> bool:
        """Return True when the key was handled."""
        ids = self.view_ids
        if key in ACTIVATE_KEYS:
            if self.focused is None:
                return False
            await self.activate(self.focused)
            return True

        if key in NEXT_KEYS or key in PREVIOUS_KEYS:
            current = ids.index(self.active) if self.active in ids else 0
            step = 1 if key in NEXT_KEYS else -1
            target = ids[(current + step) % len(ids)]
        elif key == "Home":
            target = ids[0]
        elif key == "End":
            target = ids[-1]
        else:
            return False

        await self.activate(target)
        return True

    # -- item state --------------------------------------------------------

    def tab_label(self, day_id: int) -> str:
        day = self._days_by_id.get(day_id)
        total = len(day.schedule) if day is not None else 0
        done, total = self.items.progress(day_id, total)
        return progress_label(day_id, done, total)

    def _check_item(self, day_id: int, index: int) -> bool:
        day = self._days_by_id.get(day_id)
        if day is None or not 0 <= index < len(day.schedule):
            logger.warning("Ignoring unknown item %d of day %r", index, day_id)
            return False
        return True

    def toggle_complete(self, day_id: int, index: int) -> Optional[ItemState]:
        if not self._check_item(day_id, index):
            return None
        state = self.items.get(day_id, index)
        state = dataclasses.replace(state, completed=not state.completed)
        self.items.set(day_id, index, state)

        tab = self.tab(day_id)
        if tab is not None:
            tab.label = self.tab_label(day_id)
        return state

    def edit_note(self, day_id: int, index: int, text: Optional[str]) -> Optional[ItemState]:
        """`text` None is a cancelled prompt and changes nothing; blank text removes the note."""
        if not self._check_item(day_id, index):
            return None
        state = self.items.get(day_id, index)
        if text is None:
            return state
        state = dataclasses.replace(state, note=text.strip() or None)
        self.items.set(day_id, index, state)
        self.refresh_diary()
        return state

    def refresh_diary(self) -> None:
        panel = self.registry.get(DIARY)
        if isinstance(panel, DiaryPanel):
            panel.entries = self.items.diary_entries()

    # -- rendering ---------------------------------------------------------

    def render_tabs(self) -> str:
        return html.render("tabs.html", tabs=self.tabs)

    def _panel_body(self, panel: Panel) -> str:
        if isinstance(panel, DayPanel) and panel.day is not None:
            rows = [
                (item, self.items.get(panel.day.id, index))
                for index, item in enumerate(panel.day.schedule)
            ]
            return html.render(
                "day_panel.html",
                day=panel.day,
                rows=rows,
                has_previous=panel.has_previous,
                has_next=panel.has_next,
                memories_block=Markup(html.render_day_memories(panel.memories)),
            )
        if isinstance(panel, DiaryPanel):
            return html.render_diary_section(panel.section, panel.entries)
        if isinstance(panel, MemoriesPanel):
            return self.memories.render()
        return ""

    def render_panels(self) -> str:
        panels = [
            {"view_id": p.view_id, "hidden": p.hidden, "body": Markup(self._panel_body(p))}
            for p in self.registry
        ]
        return html.render("panels.html", panels=panels)

    def render(self) -> str:
        """Tab strip followed by every built panel."""
        return self.render_tabs() + self.render_panels()
