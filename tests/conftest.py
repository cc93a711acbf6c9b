"""
Shared pytest fixtures.

Every test gets its own JSON data file and upload directory under tmp_path,
so no state leaks between tests.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from tripbook.core.config import settings
from tripbook.db.store import JsonStore, get_store
from tripbook.main import app

PAGE = """<!DOCTYPE html>
<html>
<body>
  <section id="cover"><div id="cover-memories" class="hidden"></div></section>
  <div id="tab-list" role="tablist"></div>
  <div id="tab-panels"></div>
  <div class="day-card" data-day="1">
    <div class="day-title">Arrival in <em>Lisbon</em></div>
    <div class="day-sub">Alfama &amp; Baixa</div>
    <ul class="schedule">
      <li><span class="time">09:00</span> Land at <b>LIS</b> <div class="transport">Metro red line</div></li>
      <li><span class="time">13:00</span> Lunch at the market</li>
      <li>Sunset at the miradouro</li>
    </ul>
  </div>
  <div class="day-card" data-day="2">
    <div class="day-title">Sintra</div>
    <div class="highlight">Book Pena Palace tickets</div>
    <ul class="schedule">
      <li><span class="time">08:30</span> Train from Rossio <div class="transport">CP train</div></li>
      <li><span class="time">11:00</span> Pena Palace</li>
    </ul>
  </div>
  <div class="day-card" data-day="3">
    <div class="day-title">Porto</div>
    <ul class="schedule"></ul>
  </div>
  <section id="diary" class="card hidden">
    <h2>Diary</h2>
    <div id="diary-list"></div>
  </section>
</body>
</html>
"""


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "DATA_FILE", str(tmp_path / "database.json"))
    monkeypatch.setattr(settings, "USERS", None)
    monkeypatch.setattr(settings, "RATE_LIMIT_REQUESTS", 0)
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10 * 1024 * 1024)


@pytest.fixture()
def store(tmp_path):
    return JsonStore(tmp_path / "database.json")


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _login(c: TestClient, username: str, password: str) -> TestClient:
    r = c.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return c


@pytest.fixture()
def carina(client):
    """A client logged in as carina."""
    return _login(client, "carina", "amore")


@pytest.fixture()
def gui(store):
    """A second, independent client logged in as gui."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield _login(c, "gui", "amoreGui")


@pytest.fixture()
def asgi_client(store):
    """Factory for async clients talking to the app in-process."""
    app.dependency_overrides[get_store] = lambda: store

    def make() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")

    yield make
    app.dependency_overrides.clear()


@pytest.fixture()
def page():
    return PAGE
