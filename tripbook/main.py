from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from tripbook.core.config import settings
from tripbook.core.logs import configure_logging
from tripbook.db.store import JsonStore, get_store
from tripbook.middleware.rate_limit import RateLimitMiddleware
from tripbook.routers import auth as auth_router
from tripbook.routers import comments as comments_router
from tripbook.routers import export as export_router
from tripbook.routers import memories as memories_router
from tripbook.core.errors import (
    TripbookException,
    tripbook_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="Tripbook API",
    description=(
        "**Shared travel memories for the itinerary site**\n\n"
        "Session login against a fixed user list, memory CRUD with media upload, "
        "comments, emoji reactions and export, persisted in a single JSON file.\n\n"
        "All error responses follow the `{error, code, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Middleware (last added runs first) ---
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    same_site="lax",
    https_only=settings.SESSION_HTTPS_ONLY,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(TripbookException, tripbook_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(auth_router.router)
app.include_router(memories_router.router)
app.include_router(comments_router.router)
app.include_router(export_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(store: JsonStore = Depends(get_store)):
    """
    Returns `{"status": "ok", "store": "ok"}` when the data file can be read.
    Returns HTTP 503 if it is unreadable or corrupt.
    """
    if not store.ping():
        return JSONResponse(
            status_code=503,
            content={"status": "error", "store": "unreadable"},
        )
    return {"status": "ok", "store": "ok", "env": settings.APP_ENV}


# --- Static files ---
settings.upload_path.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_path, check_dir=False), name="uploads")

# The itinerary site is mounted last so it never shadows the API routes.
if settings.SITE_DIR:
    app.mount("/", StaticFiles(directory=settings.SITE_DIR, html=True), name="site")
