"""
Command line for the itinerary viewer.

    python -m tripbook.viewer render index.html --url "/?dia=2" --out page.html
    python -m tripbook.viewer complete index.html 2 0
    python -m tripbook.viewer note index.html 2 0 "Buy tickets early"
    python -m tripbook.viewer diary

Item state lives in the JSON file given by --state.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

from tripbook.core.logs import configure_logging
from tripbook.viewer.app import build_viewer
from tripbook.viewer.item_store import ItemStore
from tripbook.viewer.storage import JsonFileStorage


def _viewer(args, client: httpx.AsyncClient):
    page = Path(args.page).read_text(encoding="utf-8")
    return build_viewer(page, JsonFileStorage(Path(args.state)), client, url=args.url)


async def _render(args) -> int:
    async with httpx.AsyncClient(base_url=args.api, timeout=httpx.Timeout(30.0)) as client:
        viewer = _viewer(args, client)
        await viewer.start()
        output = viewer.render_document()
    if args.out:
        Path(args.out).write_text(output, encoding="utf-8")
        print(f"Wrote {args.out}")
    else:
        sys.stdout.write(output)
    return 0


async def _item(args) -> int:
    async with httpx.AsyncClient(base_url=args.api) as client:
        controller = _viewer(args, client).controller
        if args.command == "complete":
            state = controller.toggle_complete(args.day, args.index)
        else:
            state = controller.edit_note(args.day, args.index, args.text)
    if state is None:
        print(f"Day {args.day} has no item {args.index}", file=sys.stderr)
        return 1
    print(controller.tab_label(args.day))
    return 0


def _diary(args) -> int:
    entries = ItemStore(JsonFileStorage(Path(args.state))).diary_entries()
    if not entries:
        print("No notes recorded yet.")
    for entry in entries:
        print(f"Day {entry.day}: {entry.note}")
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="python -m tripbook.viewer",
        description="Render the itinerary page and manage per-item progress and notes.",
    )
    ap.add_argument("--state", default="tripbook-state.json", help="JSON file holding item state (default: tripbook-state.json)")
    ap.add_argument("--log-level", default="warning", help="Logging level (default: warning)")
    sub = ap.add_subparsers(dest="command", required=True)

    def page_parser(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("page", help="Itinerary HTML page")
        p.add_argument("--api", default="http://localhost:8000", help="Memories backend base URL")
        p.add_argument("--url", default="/", help="Page address, e.g. '/?dia=3' (default: /)")
        return p

    p_render = page_parser("render", "Render the page with the initial view opened")
    p_render.add_argument("--out", default=None, help="Write the HTML here instead of stdout")

    p_complete = page_parser("complete", "Toggle completion of a schedule item")
    p_complete.add_argument("day", type=int)
    p_complete.add_argument("index", type=int, help="Zero-based item position within the day")

    p_note = page_parser("note", "Set the note of a schedule item (blank text removes it)")
    p_note.add_argument("day", type=int)
    p_note.add_argument("index", type=int, help="Zero-based item position within the day")
    p_note.add_argument("text")

    sub.add_parser("diary", help="Print the diary built from item notes")

    args = ap.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "render":
        return asyncio.run(_render(args))
    if args.command in ("complete", "note"):
        return asyncio.run(_item(args))
    return _diary(args)
