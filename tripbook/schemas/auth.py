"""
Auth request / response schemas.

POST /auth/login   → LoginRequest → MessageResponse
GET  /auth/me      → MeResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials are optional at the schema level so a missing field yields 400, not 422."""
    username: Optional[str] = Field(default=None, examples=["carina"])
    password: Optional[str] = Field(default=None, examples=["amore"])


class MeResponse(BaseModel):
    user: Optional[str] = Field(
        default=None,
        description="Username of the current session, or null when logged out.",
    )
