"""
Auth router.

POST /auth/login  : Start a session for a configured user
POST /auth/logout : End the current session
GET  /auth/me     : Username of the current session (or null)
"""
from __future__ import annotations

from fastapi import APIRouter, Request

from tripbook.schemas.auth import LoginRequest, MeResponse
from tripbook.schemas.common import ErrorResponse, MessageResponse
from tripbook.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=MessageResponse,
    summary="Log in with a configured username and password",
    responses={
        400: {"model": ErrorResponse, "description": "Username or password missing."},
        401: {"model": ErrorResponse, "description": "Invalid credentials."},
    },
)
def login(payload: LoginRequest, request: Request):
    """
    Checks the pair against the `USERS` credential list and stores the
    username in the signed session cookie.
    """
    auth_service.login(request, payload.username, payload.password)
    return MessageResponse(message="Logged in.")


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(request: Request):
    auth_service.logout(request)
    return MessageResponse(message="Logged out.")


@router.get("/me", response_model=MeResponse, summary="Current session user")
def me(request: Request):
    return MeResponse(user=auth_service.current_user(request))
