"""
View ids, the address `dia` parameter and startup view resolution.

A view id is a day id (int), "diary" or "memories".
"""
from __future__ import annotations

from typing import Optional, Sequence, Union

from starlette.datastructures import URL, QueryParams

DIARY = "diary"
MEMORIES = "memories"
ADDRESS_PARAM = "dia"
LAST_DAY_KEY = "lastDay"

ViewId = Union[int, str]


def parse_view_id(raw: Optional[str]) -> Optional[ViewId]:
    """"3" -> 3, "diary"/"memories" unchanged, anything else -> None."""
    if raw is None:
        return None
    value = raw.strip()
    if value in (DIARY, MEMORIES):
        return value
    if value.isdecimal():
        return int(value)
    return None


class Address:
    """The page address; only the `dia` query parameter is managed here."""

    def __init__(self, url: str = "/"):
        self.url = URL(url)

    def __str__(self) -> str:
        return str(self.url)

    @property
    def view(self) -> Optional[str]:
        return QueryParams(self.url.query).get(ADDRESS_PARAM)

    def reflect(self, view_id: ViewId) -> None:
        if view_id == DIARY:
            self.url = self.url.remove_query_params(ADDRESS_PARAM)
        else:
            self.url = self.url.include_query_params(**{ADDRESS_PARAM: str(view_id)})


def resolve_initial_view(
    address_view: Optional[str],
    last_day: Optional[str],
    day_ids: Sequence[int],
    registered: Sequence[ViewId],
) -> ViewId:
    """
    First match wins: the address view when registered, the stored last day
    when it is a registered day, the first day, then the diary.
    """
    from_address = parse_view_id(address_view)
    if from_address is not None and from_address in registered:
        return from_address

    from_storage = parse_view_id(last_day)
    if isinstance(from_storage, int) and from_storage in day_ids:
        return from_storage

    if day_ids:
        return day_ids[0]
    return DIARY
