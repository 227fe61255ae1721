"""Tests for ControlSession wiring: tab-scoped gateway feeds, lifecycle, settings reads."""
import asyncio

import httpx

from deck.storage.settings_store import SettingsStore
from deck.sync.session import ControlSession, PollIntervals

SLOW = PollIntervals(nodes=60, logs=60, debug=60, clip_job=60, search_quota=60)


def test_logs_feed_only_fires_on_logs_tab(webhook, settings_path):
    webhook.fallback = lambda request: httpx.Response(200, json={"lines": ["booted"]})

    async def scenario():
        async with webhook.client() as http:
            session = ControlSession(http, SettingsStore(settings_path), intervals=SLOW, tab="overview")
            session.start()
            logs = session.controllers["logs"]

            logs.tick()
            await logs.drain()
            calls_off_tab = len(webhook.calls)
            armed_off_tab = logs.armed

            session.set_tab("logs")
            logs.tick()
            await logs.drain()
            await session.shutdown()
            return calls_off_tab, armed_off_tab, session

    calls_off_tab, armed_off_tab, session = asyncio.run(scenario())
    assert calls_off_tab == 0
    assert armed_off_tab is True
    assert [c["path"] for c in webhook.calls] == ["/api/logs"]
    assert session.logs.state.payload == {"lines": ["booted"]}


def test_nodes_feed_always_fires_and_sends_token(webhook, settings_path):
    seen = []

    def reply(request):
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json=[{"id": "n1"}])

    webhook.queue(reply)

    async def scenario():
        async with webhook.client() as http:
            session = ControlSession(http, SettingsStore(settings_path), intervals=SLOW, tab="chat")
            session.update_settings({"token": "s3cret", "gateway_url": "http://gw.local:9000/"})
            nodes = session.controllers["nodes"]
            nodes.start()
            nodes.tick()
            await nodes.drain()
            await session.shutdown()
            return session

    session = asyncio.run(scenario())
    assert seen == ["Bearer s3cret"]
    assert session.nodes.state.payload == [{"id": "n1"}]
    assert SettingsStore(settings_path).load().token == "s3cret"


def test_gateway_error_keeps_last_known_good(webhook, settings_path):
    webhook.queue(httpx.Response(200, json={"ok": 1}), httpx.Response(503, text="busy"))

    async def scenario():
        async with webhook.client() as http:
            session = ControlSession(http, SettingsStore(settings_path), intervals=SLOW)
            await session.refresh("debug")
            await session.refresh("debug")
            return session.feed("debug")

    snap = asyncio.run(scenario())
    assert snap.payload == {"ok": 1}
    assert snap.error == "Gateway debug failed (503)"
    assert snap.loading is False


def test_start_arms_background_feeds_but_not_idle_clip_job(webhook, settings_path):
    async def scenario():
        async with webhook.client() as http:
            session = ControlSession(http, SettingsStore(settings_path), intervals=SLOW)
            session.start()
            session.start()
            armed = {name: p.armed for name, p in session.pollers().items()}
            await session.shutdown()
            after = {name: p.armed for name, p in session.pollers().items()}
            return armed, after

    armed, after = asyncio.run(scenario())
    assert armed == {"nodes": True, "logs": True, "debug": True, "clip-job": False, "search-quota": True}
    assert not any(after.values())
    assert webhook.calls == []
