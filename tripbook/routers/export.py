"""
Export router.

GET /export: Every memory with comments inlined and absolute media links
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from tripbook.db.store import JsonStore, get_store
from tripbook.schemas.memory import ExportedMemory
from tripbook.services import memories as memories_service
from tripbook.services.auth import require_user

router = APIRouter(tags=["export"])


@router.get("/export", response_model=list[ExportedMemory], summary="Export all memories")
def export_memories(
    request: Request,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    """
    Intended as a backup: `mediaLinks` holds each media URL resolved against
    the request's base URL.
    """
    return memories_service.export_memories(store, str(request.base_url))
