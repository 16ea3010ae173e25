"""
Shared pytest fixtures and configuration.
"""

from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import padlock.settings as settings_mod
from padlock.api.app import create_app
from padlock.errors import DeliveryFailure
from padlock.host.tabs import TabRegistry
from padlock.session.lifecycle import SessionLifecycleManager
from padlock.session.store import SessionStore

T0 = 1_700_000_000.0


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = T0):
        self.t = start

    def now(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeHost:
    """In-memory stand-in for the extension bridge; records every command."""

    def __init__(self):
        self.tabs = TabRegistry()
        self.messages: list[tuple[int, dict]] = []
        self.activated: list[int] = []
        self.created: list[str] = []
        self.fail_delivery = False
        self._next_id = 100

    def active_tab(self):
        return self.tabs.active_tab()

    def find_tabs(self, host):
        return self.tabs.find_by_hostname(host)

    async def activate_tab(self, tab_id):
        if self.fail_delivery:
            raise DeliveryFailure("activateTab: no extension connected")
        self.activated.append(tab_id)
        self.tabs.activate(tab_id)

    async def create_tab(self, url):
        if self.fail_delivery:
            raise DeliveryFailure("createTab: no extension connected")
        self.created.append(url)
        self._next_id += 1
        self.tabs.upsert(self._next_id, url=url, window_id=1)
        return self.tabs.activate(self._next_id)

    async def send_message(self, tab_id, payload):
        if self.fail_delivery:
            raise DeliveryFailure("sendMessage: receiving end does not exist")
        self.messages.append((tab_id, payload))
        return {"success": True}

    def texts(self) -> list[str]:
        return [payload["message"] for _, payload in self.messages]


@pytest.fixture(autouse=True)
def tmp_settings_file(tmp_path: Path, monkeypatch):
    """Redirect the settings store to a fresh temp file for each test."""
    fake_file = tmp_path / "settings.json"
    monkeypatch.setattr(settings_mod, "_FILE", fake_file)
    monkeypatch.setattr(settings_mod, "_current", {})
    yield fake_file
    monkeypatch.setattr(settings_mod, "_current", {})


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def host():
    h = FakeHost()
    h.tabs.upsert(1, url="https://docs.example.com/page", window_id=1)
    h.tabs.activate(1)
    return h


@pytest.fixture()
def store(tmp_path: Path):
    return SessionStore(tmp_path / "session.json")


@pytest_asyncio.fixture()
async def manager(store, host, clock):
    m = SessionLifecycleManager(
        store, host, clock=clock, keepalive_interval_s=0.05, redirect_delay_s=0.02
    )
    yield m
    m.shutdown()


@pytest.fixture()
def app(tmp_path: Path):
    """Create a fresh app instance per test, with its own session file."""
    return create_app(session_path=tmp_path / "session.json")


@pytest_asyncio.fixture()
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
