"""
Custom exception hierarchy for the Tripbook API.

Rule: every HTTP error carries a machine-readable `code` string so clients
can branch on it, and an `error` string with the human message (the field
the itinerary front-end displays verbatim).
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class TripbookException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotAuthenticatedError(TripbookException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"

    def __init__(self):
        super().__init__(message="Not authorized.")


class InvalidCredentialsError(TripbookException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__(message="Invalid credentials.")


class MissingCredentialsError(TripbookException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "MISSING_CREDENTIALS"

    def __init__(self):
        super().__init__(message="Username and password are required.")


class AccessDeniedError(TripbookException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "ACCESS_DENIED"

    def __init__(self, memory_id: str):
        super().__init__(
            message="Access denied.",
            details={"id": memory_id},
        )


class MemoryNotFoundError(TripbookException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "MEMORY_NOT_FOUND"

    def __init__(self, memory_id: str):
        super().__init__(
            message="Memory not found.",
            details={"id": memory_id},
        )


class CommentNotFoundError(TripbookException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "COMMENT_NOT_FOUND"

    def __init__(self, comment_id: str):
        super().__init__(
            message="Comment not found.",
            details={"id": comment_id},
        )


class TitleRequiredError(TripbookException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "TITLE_REQUIRED"

    def __init__(self):
        super().__init__(message="Title is required.")


class InvalidMemoryFieldError(TripbookException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "INVALID_FIELD"

    def __init__(self, field: str, message: str):
        super().__init__(message=message, details={"field": field})


class EmptyCommentError(TripbookException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "EMPTY_COMMENT"

    def __init__(self):
        super().__init__(message="Comment must not be empty.")


class EmojiRequiredError(TripbookException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "EMOJI_REQUIRED"

    def __init__(self):
        super().__init__(message="Emoji is required.")


class InvalidFileTypeError(TripbookException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "INVALID_FILE_TYPE"

    def __init__(self, extension: str):
        super().__init__(
            message=f"Invalid file type: {extension or '(none)'}",
            details={"extension": extension},
        )


class FileTooLargeError(TripbookException):
    http_status = 413  # Content Too Large
    code = "FILE_TOO_LARGE"

    def __init__(self, filename: str, max_bytes: int):
        super().__init__(
            message=f"File {filename} exceeds the {max_bytes // (1024 * 1024)} MB limit.",
            details={"filename": filename, "max_bytes": max_bytes},
        )


class DataStoreError(TripbookException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "DATA_STORE_ERROR"

    def __init__(self, path: str):
        super().__init__(
            message="The memories database could not be read.",
            details={"path": path},
        )


class RateLimitedError(TripbookException):
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self):
        super().__init__(message="Too many requests, try again later.")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def tripbook_exception_handler(request: Request, exc: TripbookException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=422,  # Unprocessable Content
        content={
            "error": "Request validation failed.",
            "code": "VALIDATION_ERROR",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "An unexpected error occurred.",
            "code": "INTERNAL_ERROR",
        },
    )
