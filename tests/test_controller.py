"""
Unit tests for the tab/panel controller, with the memories view replaced
by a recording fake.
"""
import pytest

from tripbook.viewer.controller import (
    DayPanel,
    DiaryPanel,
    MemoriesPanel,
    PanelController,
    PanelRegistry,
    progress_label,
)
from tripbook.viewer.item_store import ItemStore
from tripbook.viewer.markup import parse
from tripbook.viewer.models import DayRecord, ItemState, ScheduleItem
from tripbook.viewer.navigation import DIARY, LAST_DAY_KEY, MEMORIES, Address
from tripbook.viewer.storage import MemoryStorage

DAYS = [
    DayRecord(id=1, title="Lisbon", schedule=(
        ScheduleItem("09:00", "Land"),
        ScheduleItem("13:00", "Lunch"),
        ScheduleItem("", "Sunset"),
    )),
    DayRecord(id=2, title="Sintra", highlight="<b>Tickets</b>", schedule=(
        ScheduleItem("08:30", "Train", transport="CP"),
        ScheduleItem("11:00", "Pena"),
    )),
    DayRecord(id=3, title="Porto"),
]


class FakeMemories:
    def __init__(self):
        self.mounted = []
        self.loaded = []

    async def mount(self, panel):
        self.mounted.append(panel)

    async def load_day(self, day_id):
        self.loaded.append(day_id)

    def render(self):
        return "<p>memories widget</p>"


def make_controller(url="/", storage=None, diary_section=None):
    storage = storage if storage is not None else MemoryStorage()
    hooks = FakeMemories()
    controller = PanelController(
        days=DAYS,
        items=ItemStore(storage),
        storage=storage,
        address=Address(url),
        registry=PanelRegistry(),
        memories=hooks,
        diary_section=diary_section,
    )
    return controller, hooks, storage


class TestProgressLabel:
    def test_labels(self):
        assert progress_label(3, 0, 0) == "Day 3"
        assert progress_label(1, 1, 3) == "Day 1 (1/3)"
        assert progress_label(1, 3, 3) == "Day 1 ✓"


class TestStartup:
    @pytest.mark.asyncio
    async def test_first_day_by_default(self):
        controller, hooks, storage = make_controller()
        assert await controller.start() == 1
        assert controller.active == 1
        assert hooks.loaded == [1]
        assert storage.get_item(LAST_DAY_KEY) == "1"
        assert controller.address.view == "1"

    @pytest.mark.asyncio
    async def test_address_view(self):
        controller, hooks, _ = make_controller(url="/?dia=memories")
        assert await controller.start() == MEMORIES
        assert len(hooks.mounted) == 1
        assert isinstance(hooks.mounted[0], MemoriesPanel)

    @pytest.mark.asyncio
    async def test_unparseable_address_does_not_stop_startup(self):
        controller, _, _ = make_controller(url="/?dia=%C2%B2")
        assert controller.address.view == "²"
        assert await controller.start() == 1
        assert controller.address.view == "1"

    @pytest.mark.asyncio
    async def test_last_day_from_storage(self):
        controller, _, _ = make_controller(storage=MemoryStorage({LAST_DAY_KEY: "2"}))
        assert await controller.start() == 2

    def test_tabs(self):
        controller, _, _ = make_controller()
        assert controller.view_ids == [1, 2, 3, DIARY, MEMORIES]
        assert [t.label for t in controller.tabs] == [
            "Day 1 (0/3)", "Day 2 (0/2)", "Day 3", "Diary", "Memories",
        ]


class TestActivation:
    @pytest.mark.asyncio
    async def test_panels_are_built_once(self):
        controller, hooks, _ = make_controller()
        await controller.activate(2)
        await controller.activate(DIARY)
        await controller.activate(2)
        assert controller.builds == 2
        assert hooks.loaded == [2]
        assert len(controller.registry) == 2

    @pytest.mark.asyncio
    async def test_single_visible_panel_and_selected_tab(self):
        controller, _, _ = make_controller()
        await controller.activate(1)
        await controller.activate(MEMORIES)
        assert [(p.view_id, p.hidden) for p in controller.registry] == [(1, True), (MEMORIES, False)]
        assert [t.tabindex for t in controller.tabs] == [-1, -1, -1, -1, 0]
        assert sum(t.selected for t in controller.tabs) == 1

    @pytest.mark.asyncio
    async def test_diary_clears_address_and_keeps_last_day(self):
        controller, _, storage = make_controller(url="/trip?dia=2")
        await controller.start()
        await controller.activate(DIARY)
        assert controller.address.view is None
        assert storage.get_item(LAST_DAY_KEY) == "2"

    @pytest.mark.asyncio
    async def test_unknown_view_is_ignored(self):
        controller, _, storage = make_controller()
        await controller.activate(1)
        assert await controller.activate(9) is False
        assert await controller.activate("photos") is False
        assert controller.active == 1
        assert storage.get_item(LAST_DAY_KEY) == "1"
        assert controller.builds == 1

    @pytest.mark.asyncio
    async def test_day_neighbours(self):
        controller, _, _ = make_controller()
        await controller.activate(1)
        await controller.activate(3)
        first = controller.registry.day_panel(1)
        last = controller.registry.day_panel(3)
        assert isinstance(first, DayPanel)
        assert (first.has_previous, first.has_next) == (False, True)
        assert (last.has_previous, last.has_next) == (True, False)

    @pytest.mark.asyncio
    async def test_previous_and_next(self):
        controller, _, _ = make_controller()
        await controller.activate(1)
        assert await controller.go_previous(1) is False
        assert await controller.go_next(1) is True
        assert controller.active == 2
        assert await controller.go_next(3) is False


class TestKeyboard:
    @pytest.mark.asyncio
    async def test_arrows_wrap(self):
        controller, _, _ = make_controller()
        await controller.activate(1)
        assert await controller.handle_key("ArrowLeft") is True
        assert controller.active == MEMORIES
        await controller.handle_key("ArrowRight")
        assert controller.active == 1
        await controller.handle_key("Right")
        assert controller.active == 2

    @pytest.mark.asyncio
    async def test_home_and_end(self):
        controller, _, _ = make_controller()
        await controller.activate(2)
        await controller.handle_key("End")
        assert controller.active == MEMORIES
        await controller.handle_key("Home")
        assert controller.active == 1

    @pytest.mark.asyncio
    async def test_activate_focused_tab(self):
        controller, _, _ = make_controller()
        await controller.activate(1)
        controller.focus(DIARY)
        assert controller.active == 1
        assert await controller.handle_key("Enter") is True
        assert controller.active == DIARY
        controller.focus(3)
        await controller.handle_key(" ")
        assert controller.active == 3

    @pytest.mark.asyncio
    async def test_other_keys_ignored(self):
        controller, _, _ = make_controller()
        await controller.activate(1)
        assert await controller.handle_key("a") is False
        assert controller.active == 1


class TestItems:
    def test_toggle_updates_label(self):
        controller, _, storage = make_controller()
        for index in range(3):
            controller.toggle_complete(1, index)
        assert controller.tab(1).label == "Day 1 ✓"
        controller.toggle_complete(1, 0)
        assert controller.tab(1).label == "Day 1 (2/3)"
        assert storage.get_item("day-1-item-0") is None

    def test_invalid_item(self):
        controller, _, storage = make_controller()
        assert controller.toggle_complete(1, 7) is None
        assert controller.toggle_complete(9, 0) is None
        assert controller.edit_note(3, 0, "x") is None
        assert list(storage.keys()) == []

    def test_edit_note(self):
        controller, _, _ = make_controller()
        assert controller.edit_note(2, 1, "  bring water ") == ItemState(note="bring water")
        # a cancelled prompt changes nothing
        assert controller.edit_note(2, 1, None).note == "bring water"
        assert controller.edit_note(2, 1, "   ") == ItemState()

    def test_note_keeps_completion(self):
        controller, _, _ = make_controller()
        controller.toggle_complete(1, 1)
        assert controller.edit_note(1, 1, "great") == ItemState(completed=True, note="great")

    @pytest.mark.asyncio
    async def test_diary_panel_refreshes(self):
        controller, _, _ = make_controller()
        await controller.activate(DIARY)
        panel = controller.registry.get(DIARY)
        assert isinstance(panel, DiaryPanel)
        assert panel.entries == []
        controller.edit_note(2, 0, "window seat")
        controller.edit_note(1, 2, "pink sky")
        assert [(e.day, e.note) for e in panel.entries] == [(1, "pink sky"), (2, "window seat")]


class TestRendering:
    @pytest.mark.asyncio
    async def test_tabs_markup(self):
        controller, _, _ = make_controller()
        await controller.activate(2)
        markup = controller.render_tabs()
        assert 'id="tab-2"' in markup
        assert markup.count('aria-selected="true"') == 1
        assert markup.count('tabindex="0"') == 1
        assert "Day 3</button>" in markup

    @pytest.mark.asyncio
    async def test_day_panel_markup(self):
        controller, _, _ = make_controller()
        controller.toggle_complete(2, 0)
        controller.edit_note(2, 1, "<script>x</script>")
        await controller.activate(2)
        markup = controller.render_panels()
        assert 'id="panel-2"' in markup
        assert "<b>Tickets</b>" in markup
        assert 'class="completed"' in markup
        assert '<div class="transport">CP</div>' in markup
        assert "&lt;script&gt;" in markup
        assert "prev-day-btn" in markup and "next-day-btn" in markup
        # no memories data: no block
        assert "memories-container" not in markup

    @pytest.mark.asyncio
    async def test_day_memories_block(self):
        controller, _, _ = make_controller()
        await controller.activate(3)
        controller.registry.day_panel(3).memories = []
        assert "No memories recorded for this day yet." in controller.render_panels()

    @pytest.mark.asyncio
    async def test_hidden_panels_and_memories_body(self):
        controller, _, _ = make_controller()
        await controller.activate(MEMORIES)
        await controller.activate(1)
        markup = controller.render()
        assert "<p>memories widget</p>" in markup
        assert 'id="panel-memories"' in markup
        assert markup.count(" hidden>") == 1

    @pytest.mark.asyncio
    async def test_diary_section_markup(self):
        section = parse('<section id="diary" class="card hidden"><div id="diary-list"></div></section>')
        section = section.get_by_id("diary")
        section.remove()
        controller, _, _ = make_controller(diary_section=section)
        await controller.activate(DIARY)
        empty = controller.render_panels()
        assert 'class="hidden"' in empty
        assert "No notes recorded yet." in empty

        controller.edit_note(1, 0, "arrived")
        filled = controller.render_panels()
        assert 'id="diary"' in filled
        assert 'class="hidden"' not in filled
        assert "Day 1:" in filled and "arrived" in filled
