"""Async client for the memories backend, used by the memories view."""
from __future__ import annotations

import logging
from typing import AsyncIterator, Callable, Optional, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

from tripbook.schemas.auth import MeResponse
from tripbook.schemas.memory import Memory

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Request failed."
UPLOAD_CHUNK = 64 * 1024

_memory_list = TypeAdapter(list[Memory])


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ApiError(Exception):
    """The server answered with an error; `message` is its `error` text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionExpiredError(ApiError):
    def __init__(self):
        super().__init__("Not authorized.", status_code=401)


class MalformedResponseError(ApiError):
    pass


class NetworkError(ApiError):
    pass


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class MemoriesApi:
    """
    Thin typed wrapper over an `httpx.AsyncClient` whose base URL points at
    the backend. The client's cookie jar carries the session.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    # -- plumbing ----------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkError(f"Could not reach the server: {exc}") from exc

    @staticmethod
    def _check(response: httpx.Response, session_required: bool = True) -> httpx.Response:
        if response.status_code == 401 and session_required:
            raise SessionExpiredError()
        if response.is_success:
            return response
        try:
            message = response.json().get("error") or GENERIC_ERROR
        except (ValueError, AttributeError):
            message = GENERIC_ERROR
        raise ApiError(str(message), status_code=response.status_code)

    @staticmethod
    def _json(response: httpx.Response):
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("Response is not valid JSON.", response.status_code) from exc

    # -- auth --------------------------------------------------------------

    async def me(self) -> Optional[str]:
        response = self._check(await self._send("GET", "/auth/me"), session_required=False)
        try:
            return MeResponse.model_validate(self._json(response)).user
        except ValidationError as exc:
            raise MalformedResponseError("Unexpected /auth/me payload.") from exc

    async def login(self, username: str, password: str) -> None:
        response = await self._send(
            "POST", "/auth/login", json={"username": username, "password": password}
        )
        self._check(response, session_required=False)

    async def logout(self) -> None:
        self._check(await self._send("POST", "/auth/logout"), session_required=False)

    # -- memories ----------------------------------------------------------

    async def list_memories(
        self,
        q: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        day: Optional[int] = None,
    ) -> list[Memory]:
        params = {
            "q": q,
            "status": status,
            "from": date_from,
            "to": date_to,
            "day": str(day) if day is not None else None,
        }
        params = {k: v for k, v in params.items() if v}
        response = self._check(await self._send("GET", "/memories", params=params))
        try:
            return _memory_list.validate_python(self._json(response))
        except ValidationError as exc:
            raise MalformedResponseError("Unexpected /memories payload.") from exc

    async def publish(
        self,
        fields: dict[str, str],
        files: Sequence[tuple[str, bytes]] = (),
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> Memory:
        """
        POST /memories as multipart. `on_progress` receives the fraction of
        the body sent so far (0..1) as chunks go out.
        """
        # Text fields go in as filename-less parts so the body is multipart
        # even when no media is attached.
        parts = [(name, (None, value)) for name, value in fields.items()]
        parts.extend(("media", (name, content)) for name, content in files)
        prepared = self.client.build_request("POST", "/memories", files=parts)
        body = prepared.read()
        total = len(body)

        async def chunks() -> AsyncIterator[bytes]:
            sent = 0
            for start in range(0, total, UPLOAD_CHUNK):
                chunk = body[start:start + UPLOAD_CHUNK]
                sent += len(chunk)
                yield chunk
                if on_progress is not None:
                    on_progress(sent / total)

        headers = {"Content-Length": str(total)}
        if "Content-Type" in prepared.headers:
            headers["Content-Type"] = prepared.headers["Content-Type"]
        response = await self._send("POST", "/memories", content=chunks(), headers=headers)
        self._check(response)
        try:
            return Memory.model_validate(self._json(response))
        except ValidationError as exc:
            raise MalformedResponseError("Unexpected memory payload.") from exc
