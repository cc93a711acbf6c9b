"""Wiring of the viewer pieces around one itinerary page."""
from __future__ import annotations

from dataclasses import dataclass

import httpx

from tripbook.viewer import render as html
from tripbook.viewer.api import MemoriesApi
from tripbook.viewer.controller import CoverSection, PanelController, PanelRegistry
from tripbook.viewer.extractor import extract_itinerary, take_diary_section
from tripbook.viewer.item_store import ItemStore
from tripbook.viewer.markup import Element, parse
from tripbook.viewer.memories_view import MemoriesView
from tripbook.viewer.navigation import Address, ViewId
from tripbook.viewer.storage import KeyValueStorage


@dataclass
class Viewer:
    document: Element
    controller: PanelController
    memories: MemoriesView
    cover: CoverSection
    items: ItemStore

    async def start(self) -> ViewId:
        return await self.controller.start()

    def render_document(self) -> str:
        """The page with the tab strip, built panels and cover memories filled in."""
        targets = {
            "tab-list": self.controller.render_tabs(),
            "tab-panels": self.controller.render_panels(),
            "cover-memories": html.render_cover(self.cover.memories),
        }
        for element_id, markup in targets.items():
            el = self.document.get_by_id(element_id)
            if el is not None:
                el.set_inner_html(markup)

        cover = self.document.get_by_id("cover-memories")
        if cover is not None:
            classes = [c for c in cover.classes if c != "hidden"]
            if self.cover.hidden:
                classes.append("hidden")
            cover.set("class", " ".join(classes))
        return self.document.outer_html


def build_viewer(
    page_html: str,
    storage: KeyValueStorage,
    client: httpx.AsyncClient,
    url: str = "/",
) -> Viewer:
    document = parse(page_html)
    days = extract_itinerary(document)
    diary_section = take_diary_section(document)

    registry = PanelRegistry()
    cover = CoverSection()
    items = ItemStore(storage)
    memories = MemoriesView(MemoriesApi(client), days, registry, cover)
    controller = PanelController(
        days=days,
        items=items,
        storage=storage,
        address=Address(url),
        registry=registry,
        memories=memories,
        diary_section=diary_section,
    )
    return Viewer(
        document=document,
        controller=controller,
        memories=memories,
        cover=cover,
        items=items,
    )
