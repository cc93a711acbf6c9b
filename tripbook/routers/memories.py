"""
Memories router.

GET    /memories                 : List memories (filters: q, status, from, to, day, tag)
POST   /memories                 : Create a memory (multipart, 0+ media files)
GET    /memories/{id}            : Single memory with its comments
PUT    /memories/{id}            : Partial update by the author; media is appended
DELETE /memories/{id}            : Delete by the author, with comments and media files
POST   /memories/{id}/comments   : Add a comment
GET    /memories/{id}/comments   : List comments of a memory
POST   /memories/{id}/reactions  : Increment an emoji counter on a memory

Every route requires a session.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from tripbook.core.config import settings
from tripbook.core.errors import TitleRequiredError
from tripbook.db.store import JsonStore, get_store
from tripbook.schemas.common import ErrorResponse, MessageResponse
from tripbook.schemas.memory import (
    Comment,
    CommentCreate,
    Memory,
    MemoryFields,
    MemoryWithComments,
    ReactionRequest,
)
from tripbook.services import memories as memories_service
from tripbook.services.auth import require_user
from tripbook.services.uploads import remove_media, save_uploads, selected_files

router = APIRouter(prefix="/memories", tags=["memories"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Memory not found."}}
_OWNER_ONLY = {
    403: {"model": ErrorResponse, "description": "The memory belongs to another user."},
    **_NOT_FOUND,
}
_UPLOAD_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing title, invalid field or file type."},
    413: {"model": ErrorResponse, "description": "A media file is larger than MAX_UPLOAD_BYTES."},
}


# ---------------------------------------------------------------------------
# Form helper
# ---------------------------------------------------------------------------

async def sent_fields(request: Request) -> frozenset[str]:
    """Names of the form fields present in the request, blank ones included."""
    form = await request.form()
    return frozenset(form.keys())


def _form_fields(sent: frozenset[str], **values: Optional[object]) -> MemoryFields:
    # FastAPI reports a blank form value as missing; a blank field that was
    # sent still has to reach the partial update (e.g. day="" unlinks).
    raw = {
        name: "" if value is None and name in sent else value
        for name, value in values.items()
    }
    if not raw.get("status"):
        raw["status"] = None
    return memories_service.parse_fields(raw)


def _store_media(files: Optional[list[UploadFile]]) -> list[str]:
    return save_uploads(selected_files(files), settings.upload_path, settings.MAX_UPLOAD_BYTES)


# ---------------------------------------------------------------------------
# GET /memories
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[Memory],
    summary="List memories",
    responses={400: {"model": ErrorResponse, "description": "Unparseable from/to bound."}},
)
def list_memories(
    q: Optional[str] = Query(None, description="Case-insensitive search in title and text."),
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[str] = Query(None, alias="from", description="Inclusive ISO lower bound."),
    date_to: Optional[str] = Query(None, alias="to", description="Inclusive ISO upper bound."),
    day: Optional[str] = Query(None, description="Itinerary day id; blank means any."),
    tag: Optional[str] = Query(None, description="Case-insensitive tag match."),
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    return memories_service.list_memories(
        store,
        q=q,
        status=status_filter,
        date_from=memories_service.parse_bound("from", date_from),
        date_to=memories_service.parse_bound("to", date_to),
        day=day,
        tag=tag,
    )


# ---------------------------------------------------------------------------
# POST /memories
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=Memory,
    status_code=status.HTTP_201_CREATED,
    summary="Create a memory",
    responses=_UPLOAD_ERRORS,
)
def create_memory(
    title: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    tags: Optional[list[str]] = Form(None, description="Comma-separated or repeated."),
    location: Optional[str] = Form(None),
    status_value: Optional[str] = Form(None, alias="status"),
    day: Optional[str] = Form(None, description="Itinerary day id; blank for a cover memory."),
    media: Optional[list[UploadFile]] = File(None),
    user: str = Depends(require_user),
    sent: frozenset[str] = Depends(sent_fields),
    store: JsonStore = Depends(get_store),
):
    """
    Fields are validated before any file is written. Uploaded files are
    stored under a uuid4 name and referenced as `/uploads/<name>`.
    `date` defaults to the creation time and `status` to `draft`.
    """
    fields = _form_fields(
        sent, title=title, text=text, date=date, tags=tags,
        location=location, status=status_value, day=day,
    )
    if not fields.title:
        raise TitleRequiredError()

    urls = _store_media(media)
    try:
        return memories_service.create_memory(store, user, fields, urls)
    except Exception:
        remove_media(urls, settings.upload_path)
        raise


# ---------------------------------------------------------------------------
# GET / PUT / DELETE /memories/{id}
# ---------------------------------------------------------------------------

@router.get(
    "/{memory_id}",
    response_model=MemoryWithComments,
    summary="Get a memory with its comments",
    responses=_NOT_FOUND,
)
def get_memory(
    memory_id: str,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    return memories_service.get_memory(store, memory_id)


@router.put(
    "/{memory_id}",
    response_model=Memory,
    summary="Update a memory (author only)",
    responses={**_UPLOAD_ERRORS, **_OWNER_ONLY},
)
def update_memory(
    memory_id: str,
    title: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    tags: Optional[list[str]] = Form(None),
    location: Optional[str] = Form(None),
    status_value: Optional[str] = Form(None, alias="status"),
    day: Optional[str] = Form(None, description="Blank clears the day link."),
    media: Optional[list[UploadFile]] = File(None),
    user: str = Depends(require_user),
    sent: frozenset[str] = Depends(sent_fields),
    store: JsonStore = Depends(get_store),
):
    """
    Only the fields sent are changed. A blank `date` keeps the stored date,
    a blank `day` unlinks the memory from its day. New media files are
    appended to the existing list.
    """
    fields = _form_fields(
        sent, title=title, text=text, date=date, tags=tags,
        location=location, status=status_value, day=day,
    )
    memories_service.get_owned(store, user, memory_id)

    urls = _store_media(media)
    try:
        return memories_service.update_memory(store, user, memory_id, fields, urls)
    except Exception:
        remove_media(urls, settings.upload_path)
        raise


@router.delete(
    "/{memory_id}",
    response_model=MessageResponse,
    summary="Delete a memory (author only)",
    responses=_OWNER_ONLY,
)
def delete_memory(
    memory_id: str,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    memories_service.delete_memory(store, user, memory_id, settings.upload_path)
    return MessageResponse(message="Memory deleted.")


# ---------------------------------------------------------------------------
# Comments and reactions
# ---------------------------------------------------------------------------

@router.post(
    "/{memory_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a memory",
    responses={400: {"model": ErrorResponse, "description": "Empty comment."}, **_NOT_FOUND},
)
def add_comment(
    memory_id: str,
    payload: Optional[CommentCreate] = None,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    text = payload.text if payload is not None else None
    return memories_service.add_comment(store, user, memory_id, text)


@router.get(
    "/{memory_id}/comments",
    response_model=list[Comment],
    summary="List the comments of a memory",
)
def list_comments(
    memory_id: str,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    return memories_service.list_comments(store, memory_id)


@router.post(
    "/{memory_id}/reactions",
    response_model=dict[str, int],
    summary="React to a memory",
    responses={400: {"model": ErrorResponse, "description": "Emoji missing."}, **_NOT_FOUND},
)
def react_to_memory(
    memory_id: str,
    payload: Optional[ReactionRequest] = None,
    user: str = Depends(require_user),
    store: JsonStore = Depends(get_store),
):
    """Increments the counter for `emoji` and returns the whole mapping."""
    emoji = payload.emoji if payload is not None else None
    return memories_service.react_to_memory(store, memory_id, emoji)
