"""
Integration tests for the FastAPI application.
Uses httpx.AsyncClient with the ASGI transport (no running server needed).
Fixtures are provided by tests/conftest.py.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from padlock.api.app import create_app
from padlock.config import config
from padlock.session.lifecycle import WELCOME_BACK

FOCUS = {"focusUrl": "https://docs.example.com/page", "durationMinutes": 25}


class TestHealth:
    async def test_health_ok(self, client):
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["extension_connected"] is False


class TestMessages:
    async def test_start_focus(self, client):
        r = await client.post("/messages", json={"action": "startFocus", "data": FOCUS})
        assert r.status_code == 200
        assert r.json()["success"] is True

        body = (await client.get("/focus")).json()
        assert body["active"] is True
        assert body["focusUrl"] == FOCUS["focusUrl"]
        assert body["durationMinutes"] == 25
        assert 1495 <= body["remainingSeconds"] <= 1500

    async def test_start_focus_invalid_duration(self, client):
        r = await client.post("/messages", json={
            "action": "startFocus",
            "data": {"focusUrl": FOCUS["focusUrl"], "durationMinutes": 0},
        })
        assert r.json()["success"] is False
        assert r.json()["error"]
        assert (await client.get("/focus")).json()["active"] is False

    async def test_start_focus_missing_url(self, client):
        r = await client.post("/messages", json={"action": "startFocus", "data": {}})
        assert r.json()["success"] is False

    async def test_end_focus_is_idempotent(self, client):
        await client.post("/messages", json={"action": "startFocus", "data": FOCUS})
        for _ in range(2):
            r = await client.post("/messages", json={"action": "endFocus"})
            assert r.json() == {"success": True, "error": None}
        assert (await client.get("/focus")).json()["active"] is False

    async def test_test_notification_without_extension(self, client):
        r = await client.post("/messages", json={"action": "testNotification"})
        assert r.json()["success"] is True

    async def test_unknown_action_returns_422(self, client):
        r = await client.post("/messages", json={"action": "selfDestruct"})
        assert r.status_code == 422


class TestFocusEndpoints:
    async def test_start_uses_default_duration(self, client):
        r = await client.post("/focus/start", json={"focusUrl": FOCUS["focusUrl"]})
        assert r.status_code == 200
        assert r.json()["durationMinutes"] == 25
        assert r.json()["remainingSeconds"] == 1500

    async def test_start_invalid_url_returns_422(self, client):
        r = await client.post("/focus/start", json={"focusUrl": "nope", "durationMinutes": 5})
        assert r.status_code == 422

    async def test_reject_policy_returns_409(self, client):
        await client.put("/settings", json={"start_policy": "reject"})
        assert (await client.post("/focus/start", json=FOCUS)).status_code == 200
        r = await client.post("/focus/start", json={"focusUrl": "https://other.org/", "durationMinutes": 5})
        assert r.status_code == 409
        assert (await client.get("/focus")).json()["focusUrl"] == FOCUS["focusUrl"]

    async def test_replace_policy_swaps_session(self, client):
        await client.post("/focus/start", json=FOCUS)
        await client.post("/focus/start", json={"focusUrl": "https://other.org/", "durationMinutes": 5})
        assert (await client.get("/focus")).json()["focusUrl"] == "https://other.org/"

    async def test_stop(self, client):
        await client.post("/focus/start", json=FOCUS)
        r = await client.post("/focus/stop")
        assert r.status_code == 200
        assert r.json()["active"] is False


class TestTabEvents:
    async def test_idle_is_not_checked(self, client):
        r = await client.post("/tabs/events", json={
            "event": "tabUpdated", "tabId": 3, "url": "https://other.com/",
        })
        assert r.status_code == 202
        assert r.json()["verdict"] is None

    async def test_foreign_domain_denied(self, client):
        await client.post("/focus/start", json=FOCUS)
        r = await client.post("/tabs/events", json={
            "event": "tabUpdated", "tabId": 3, "url": "https://other.com/",
        })
        assert r.json()["verdict"] == "deny"

    async def test_focus_domain_allowed(self, client):
        await client.post("/focus/start", json=FOCUS)
        r = await client.post("/tabs/events", json={
            "event": "tabUpdated", "tabId": 3, "url": "https://docs.example.com/other",
        })
        assert r.json()["verdict"] == "allow"

    async def test_activation_uses_known_tab_url(self, client):
        await client.post("/tabs/events", json={
            "event": "tabCreated", "tabId": 4, "url": "https://other.com/", "windowId": 1,
        })
        await client.post("/focus/start", json=FOCUS)
        r = await client.post("/tabs/events", json={"event": "tabActivated", "tabId": 4, "windowId": 1})
        assert r.json()["verdict"] == "deny"

    async def test_unknown_event_returns_422(self, client):
        r = await client.post("/tabs/events", json={"event": "tabExploded", "tabId": 1})
        assert r.status_code == 422


class TestRestart:
    async def test_session_survives_app_restart(self, tmp_path):
        from httpx import ASGITransport, AsyncClient

        path = tmp_path / "session.json"
        first = create_app(session_path=path)
        async with first.router.lifespan_context(first):
            async with AsyncClient(transport=ASGITransport(app=first), base_url="http://test") as c:
                await c.post("/focus/start", json=FOCUS)

        second = create_app(session_path=path)
        async with second.router.lifespan_context(second):
            async with AsyncClient(transport=ASGITransport(app=second), base_url="http://test") as c:
                body = (await c.get("/focus")).json()
        assert body["active"] is True
        assert body["focusUrl"] == FOCUS["focusUrl"]


class TestExtensionWebSocket:
    @pytest.fixture()
    def ws_app(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "redirect_delay_ms", 10)
        return create_app(session_path=tmp_path / "session.json")

    def test_popup_request_over_socket(self, ws_app):
        with TestClient(ws_app) as tc:
            with tc.websocket_connect("/extension/ws") as ws:
                ws.send_json({"id": "r1", "action": "startFocus", "data": FOCUS})
                frames = [ws.receive_json(), ws.receive_json()]
                reply = next(f for f in frames if f.get("replyTo") == "r1")
                change = next(f for f in frames if f.get("event") == "sessionChanged")
                assert reply["success"] is True
                assert change["session"]["focusUrl"] == FOCUS["focusUrl"]

    def test_undecodable_frame_keeps_connection(self, ws_app):
        with TestClient(ws_app) as tc:
            with tc.websocket_connect("/extension/ws") as ws:
                ws.send_text("not json{")
                ws.send_json({"replyTo": ["r0"], "success": True})
                ws.send_json({"id": "r1", "action": "startFocus", "data": FOCUS})
                frames = [ws.receive_json(), ws.receive_json()]
                reply = next(f for f in frames if f.get("replyTo") == "r1")
                assert reply["success"] is True

    def test_blocked_navigation_reopens_focus_tab(self, ws_app):
        with TestClient(ws_app) as tc:
            with tc.websocket_connect("/extension/ws") as ws:
                ws.send_json({"id": "r1", "action": "startFocus", "data": FOCUS})
                ws.receive_json()
                ws.receive_json()

                ws.send_json({"event": "tabUpdated", "tabId": 5, "url": "https://other.com/", "windowId": 1})
                command = ws.receive_json()
                assert command["action"] == "createTab"
                assert command["url"] == FOCUS["focusUrl"]
                ws.send_json({"replyTo": command["id"], "success": True, "tabId": 9, "windowId": 1})

                notice = ws.receive_json()
                assert notice["action"] == "sendMessage"
                assert notice["tabId"] == 9
                assert notice["message"]["message"] == WELCOME_BACK
                assert notice["message"]["type"] == "reminder"
