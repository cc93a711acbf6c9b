"""
Tests for error handling: the `{error, code, details}` envelope, HTTP status
codes, the custom exception classes, rate limiting and the health check.
"""
import importlib.util
import warnings

import pytest
from fastapi.testclient import TestClient

from tripbook.core import errors
from tripbook.core.config import settings
from tripbook.core.errors import (
    AccessDeniedError,
    DataStoreError,
    FileTooLargeError,
    InvalidFileTypeError,
    MemoryNotFoundError,
    NotAuthenticatedError,
    TitleRequiredError,
)
from tripbook.db.store import get_store
from tripbook.main import app
from tripbook.middleware.rate_limit import InMemoryRateLimiter


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_not_authenticated(self):
        err = NotAuthenticatedError()
        assert err.http_status == 401
        assert err.to_dict() == {"error": "Not authorized.", "code": "NOT_AUTHENTICATED"}

    def test_access_denied_carries_id(self):
        err = AccessDeniedError("m-1")
        assert err.http_status == 403
        assert err.to_dict()["details"] == {"id": "m-1"}

    def test_not_found(self):
        err = MemoryNotFoundError("m-2")
        assert err.http_status == 404
        assert err.code == "MEMORY_NOT_FOUND"

    def test_file_too_large(self):
        err = FileTooLargeError("movie.mp4", 10 * 1024 * 1024)
        assert err.http_status == 413
        assert "10 MB" in err.message
        assert err.details["filename"] == "movie.mp4"

    def test_invalid_file_type(self):
        err = InvalidFileTypeError(".exe")
        assert err.http_status == 400
        assert ".exe" in err.message

    def test_to_dict_without_details(self):
        d = TitleRequiredError().to_dict()
        assert set(d) == {"error", "code"}

    def test_module_loads_without_deprecation_warnings(self):
        # Executes a private copy so the classes used by the app stay untouched.
        spec = importlib.util.spec_from_file_location("errors_copy", errors.__file__)
        module = importlib.util.module_from_spec(spec)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            spec.loader.exec_module(module)
        assert [w for w in caught if issubclass(w.category, DeprecationWarning)] == []
        assert module.FileTooLargeError("a.mp4", 1).http_status == 413


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestValidationErrors:
    def test_malformed_json_body(self, client):
        r = client.post(
            "/auth/login",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["error"]
        assert isinstance(body["details"]["errors"], list)


class TestDataStore:
    def test_corrupt_store_is_500(self, carina, store):
        store.path.write_text("{broken", encoding="utf-8")
        r = carina.get("/memories")
        assert r.status_code == 500
        assert r.json()["code"] == "DATA_STORE_ERROR"

    def test_store_error_class(self):
        assert DataStoreError("/tmp/x.json").details == {"path": "/tmp/x.json"}


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["store"] == "ok"

    def test_health_503_when_store_unreadable(self, client, store):
        store.path.write_text("[]", encoding="utf-8")
        r = client.get("/health")
        assert r.status_code == 503
        assert r.json()["status"] == "error"


class TestRateLimit:
    def test_limiter_window(self):
        now = [1000.0]
        limiter = InMemoryRateLimiter(clock=lambda: now[0])
        assert limiter.is_allowed("1.2.3.4", 2, 60)
        assert limiter.is_allowed("1.2.3.4", 2, 60)
        assert not limiter.is_allowed("1.2.3.4", 2, 60)
        assert limiter.is_allowed("5.6.7.8", 2, 60)
        assert limiter.retry_after("1.2.3.4", 60) == 61
        now[0] += 61
        assert limiter.is_allowed("1.2.3.4", 2, 60)

    def test_idle_clients_are_forgotten(self):
        now = [0.0]
        limiter = InMemoryRateLimiter(clock=lambda: now[0])
        for i in range(50):
            assert limiter.is_allowed(f"10.0.0.{i}", 5, 60)
        now[0] = 30.0
        assert limiter.is_allowed("10.0.0.1", 5, 60)
        assert len(limiter.requests) == 50

        now[0] = 75.0
        assert limiter.is_allowed("192.168.1.1", 5, 60)
        # only the client seen at t=30 and the new one are still in the window
        assert set(limiter.requests) == {"10.0.0.1", "192.168.1.1"}

    def test_zero_disables(self):
        limiter = InMemoryRateLimiter()
        assert all(limiter.is_allowed("ip", 0, 60) for _ in range(500))

    def test_middleware_answers_429(self, store, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_REQUESTS", 3)
        app.dependency_overrides[get_store] = lambda: store
        try:
            # A fresh app stack gets a fresh limiter.
            app.middleware_stack = None
            with TestClient(app) as c:
                codes = [c.get("/auth/me").status_code for _ in range(4)]
                last = c.get("/auth/me")
        finally:
            app.dependency_overrides.clear()
            app.middleware_stack = None
        assert codes == [200, 200, 200, 429]
        assert last.status_code == 429
        assert last.json()["code"] == "RATE_LIMITED"
        assert "Retry-After" in last.headers


@pytest.fixture(autouse=True)
def _fresh_limiter():
    yield
    app.middleware_stack = None
