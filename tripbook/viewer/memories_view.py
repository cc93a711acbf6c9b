"""
Memories widget: login, publish, filter and list, mounted once into the
memories panel.

States: logged out <-> logged in. Mounting probes /auth/me. Whenever the
session is found missing (any 401) the view drops to logged out and every
day block and the cover get the "no data" signal (None).

The controller reaches the day blocks and the cover through
`render_day`, `render_cover`, `load_day`, `refresh_days` and `refresh_cover`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from tripbook.schemas.memory import Memory, MemoryStatus
from tripbook.viewer import render as html
from tripbook.viewer.api import ApiError, MemoriesApi, NetworkError, SessionExpiredError
from tripbook.viewer.controller import CoverSection, MemoriesPanel, PanelRegistry
from tripbook.viewer.models import DayRecord

logger = logging.getLogger(__name__)

LOAD_ERROR = "Error loading memories."
CONNECT_ERROR = "Could not connect."
LOGIN_FAILED = "Login failed."
SEND_ERROR = "Error sending memory."
SAVE_FAILED = "Failed to save memory."
TITLE_REQUIRED = "Title is required."
SAVED = "Memory saved!"


@dataclass
class PublishForm:
    title: str = ""
    text: str = ""
    date: str = ""
    tags: str = ""
    location: str = ""
    status: str = MemoryStatus.draft.value
    day: Optional[int] = None
    files: list[tuple[str, bytes]] = field(default_factory=list)

    def fields(self) -> dict[str, str]:
        values = {
            "title": self.title.strip(),
            "text": self.text,
            "date": self.date,
            "tags": self.tags,
            "location": self.location,
            "status": self.status,
            "day": str(self.day) if self.day is not None else "",
        }
        return {k: v for k, v in values.items() if v}


@dataclass
class Filters:
    q: str = ""
    status: str = ""
    date_from: str = ""
    date_to: str = ""


class MemoriesView:
    def __init__(
        self,
        api: MemoriesApi,
        days: Sequence[DayRecord],
        registry: PanelRegistry,
        cover: CoverSection,
    ):
        self.api = api
        self.days = list(days)
        self.registry = registry
        self.cover = cover

        self.panel: Optional[MemoriesPanel] = None
        self.user: Optional[str] = None
        self.memories: Optional[list[Memory]] = None
        self.filters = Filters()
        self.form = PublishForm()
        # Fraction of the upload sent; None while no upload is running.
        self.progress: Optional[float] = None
        self.list_error: Optional[str] = None
        self.login_error: Optional[str] = None
        self.publish_error: Optional[str] = None
        self.publish_success: Optional[str] = None

    @property
    def logged_in(self) -> bool:
        return self.user is not None

    @property
    def day_ids(self) -> list[int]:
        return [day.id for day in self.days]

    def _clear_messages(self) -> None:
        self.list_error = None
        self.login_error = None
        self.publish_error = None
        self.publish_success = None

    # -- lifecycle ---------------------------------------------------------

    async def mount(self, panel: MemoriesPanel) -> None:
        if self.panel is not None:
            logger.debug("Memories view already mounted")
            return
        self.panel = panel
        await self.check_auth()

    async def check_auth(self) -> None:
        try:
            user = await self.api.me()
        except ApiError as exc:
            logger.info("Session probe failed: %s", exc.message)
            user = None
        if user:
            await self.show_app(user)
        else:
            self.show_login()

    def show_login(self) -> None:
        self.user = None
        self.memories = None
        self.progress = None
        self._clear_messages()
        for day in self.days:
            self.render_day(day.id, None)
        self.render_cover(None)

    async def show_app(self, user: str) -> None:
        self.user = user
        self._clear_messages()
        await self.load_list()
        if not self.logged_in:
            return
        await self.refresh_days()
        await self.refresh_cover()

    # -- actions -----------------------------------------------------------

    async def login(self, username: str, password: str) -> bool:
        self.login_error = None
        username, password = username.strip(), password.strip()
        if not username or not password:
            return False
        try:
            await self.api.login(username, password)
        except NetworkError:
            self.login_error = CONNECT_ERROR
            return False
        except ApiError as exc:
            self.login_error = exc.message or LOGIN_FAILED
            return False
        await self.show_app(username)
        return True

    async def logout(self) -> None:
        try:
            await self.api.logout()
        except ApiError as exc:
            logger.info("Logout request failed: %s", exc.message)
        self.show_login()

    async def apply_filters(
        self,
        q: str = "",
        status: str = "",
        date_from: str = "",
        date_to: str = "",
    ) -> None:
        self.filters = Filters(q=q.strip(), status=status, date_from=date_from, date_to=date_to)
        await self.load_list()

    async def load_list(self) -> None:
        f = self.filters
        try:
            self.memories = await self.api.list_memories(
                q=f.q or None,
                status=f.status or None,
                date_from=f.date_from or None,
                date_to=f.date_to or None,
            )
            self.list_error = None
        except SessionExpiredError:
            self.show_login()
        except ApiError as exc:
            logger.warning("Loading memories failed: %s", exc.message)
            self.memories = None
            self.list_error = LOAD_ERROR

    def _on_progress(self, fraction: float) -> None:
        self.progress = fraction

    async def publish(self, form: Optional[PublishForm] = None) -> Optional[Memory]:
        """
        Send the form. On success the form is reset and the list, day blocks
        and cover are refreshed; on failure the form is kept.
        """
        if form is not None:
            self.form = form
        form = self.form
        self.publish_error = None
        self.publish_success = None

        if not form.title.strip():
            self.publish_error = TITLE_REQUIRED
            return None
        if form.day is not None and form.day not in self.day_ids:
            form.day = None

        self.progress = 0.0
        try:
            memory = await self.api.publish(form.fields(), form.files, on_progress=self._on_progress)
        except SessionExpiredError:
            self.show_login()
            return None
        except NetworkError:
            self.progress = None
            self.publish_error = SEND_ERROR
            return None
        except ApiError as exc:
            self.progress = None
            self.publish_error = exc.message or SAVE_FAILED
            return None

        self.progress = None
        self.publish_success = SAVED
        self.form = PublishForm()
        logger.info("Published memory %s (day=%s)", memory.id, memory.day)
        await self.load_list()
        if self.logged_in:
            await self.refresh_days()
            await self.refresh_cover()
        return memory

    # -- day blocks and cover ----------------------------------------------

    def render_day(self, day_id: int, memories: Optional[Sequence[Memory]]) -> None:
        """Ignored until the day's panel is built."""
        panel = self.registry.day_panel(day_id)
        if panel is not None:
            panel.memories = list(memories) if memories is not None else None

    def render_cover(self, memories: Optional[Sequence[Memory]]) -> None:
        self.cover.memories = list(memories) if memories is not None else None

    async def load_day(self, day_id: int) -> None:
        try:
            memories = await self.api.list_memories(day=day_id)
        except SessionExpiredError:
            self.render_day(day_id, None)
            if self.logged_in:
                self.show_login()
            return
        except ApiError as exc:
            logger.info("Memories of day %s unavailable: %s", day_id, exc.message)
            self.render_day(day_id, None)
            return
        self.render_day(day_id, memories)

    async def refresh_days(self) -> None:
        for day in self.days:
            if self.registry.day_panel(day.id) is not None:
                await self.load_day(day.id)

    async def refresh_cover(self) -> None:
        try:
            memories = await self.api.list_memories()
        except SessionExpiredError:
            if self.logged_in:
                self.show_login()
            else:
                self.render_cover(None)
            return
        except ApiError as exc:
            logger.info("Cover memories unavailable: %s", exc.message)
            self.render_cover(None)
            return
        self.render_cover([m for m in memories if m.day is None])

    # -- rendering ---------------------------------------------------------

    def render(self) -> str:
        return html.render(
            "memories_panel.html",
            view=self,
            statuses=[s.value for s in MemoryStatus],
            cards=html.memory_cards(self.memories or []),
        )
