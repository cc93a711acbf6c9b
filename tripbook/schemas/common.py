"""
Response shapes shared by every router.

Errors use the `{error, code, details?}` envelope; `error` is the text the
viewer shows to the user.
"""
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str = Field(examples=["Not authorized."])
    code: str = Field(examples=["NOT_AUTHENTICATED"])
    details: Optional[dict[str, Any]] = None


class MessageResponse(BaseModel):
    """Plain acknowledgement for login, logout and delete."""
    message: str
