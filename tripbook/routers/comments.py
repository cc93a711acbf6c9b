"""
Comments router.

POST /comments/{id}/reactions: Increment an emoji counter on a comment
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from tripbook.db.store import JsonStore, get_store
from tripbook.schemas.common import ErrorResponse
from tripbook.schemas.memory import ReactionRequest
from tripbook.services import memories as memories_service
from tripbook.services.auth import require_user

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post(
    "/{comment_id}/reactions",
    response_model=dict[str, int],
    summary="React to a comment",
    responses={
        400: {"model": ErrorResponse, "description": "Emoji missing."},
        404: {"model": ErrorResponse, "description": "Comment not found."},
    },
)
def react_to_comment(
    comment_id: str,
    payload: Optional[ReactionRequest] = None,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    emoji = payload.emoji if payload is not None else None
    return memories_service.react_to_comment(store, comment_id, emoji)
