import pytest
from aiohttp import test_utils
from conftest import make_record

from emotebot.core.dashboard import DashboardServer
from emotebot.services.catalog import CatalogCache
from emotebot.shared.repositories.usage import UsageStore


async def _server() -> DashboardServer:
    async def fetch(channel):
        return [make_record("Kappa"), make_record("LUL"), make_record("PogU", animated=True)]

    store = UsageStore()
    catalogs = CatalogCache(fetch, ttl=300)
    await catalogs.get_or_fetch("foo")
    store.record_message("foo")
    store.record_emote_usage("foo", "LUL")
    store.record_emote_usage("foo", "LUL")
    store.record_emote_usage("bar", "Kappa")
    return DashboardServer(store, catalogs)


@pytest.mark.asyncio
async def test_stats_include_unused_catalog_emotes():
    server = await _server()

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        resp = await client.get("/api/stats")
        assert resp.status == 200
        data = await resp.json()

    foo = next(ch for ch in data["channels"] if ch["channelName"] == "foo")
    assert [(e["emoteName"], e["count"]) for e in foo["emotes"]] == [
        ("LUL", 2),
        ("Kappa", 0),
        ("PogU", 0),
    ]
    pogu = foo["emotes"][2]
    assert pogu["animated"] is True
    assert pogu["lastUsed"] == 0

    bar = next(ch for ch in data["channels"] if ch["channelName"] == "bar")
    assert [e["emoteName"] for e in bar["emotes"]] == ["Kappa"]
    assert [e["emoteName"] for e in data["topEmotes"]] == ["LUL", "Kappa"]


@pytest.mark.asyncio
async def test_channel_endpoint():
    server = await _server()

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        resp = await client.get("/api/channels/FOO?limit=1")
        data = await resp.json()
        missing = await client.get("/api/channels/nobody")
        bad = await client.get("/api/channels/foo?limit=abc")

    assert resp.status == 200
    assert data["totalMessages"] == 1
    assert data["totalEmotesUsed"] == 2
    assert [e["emoteName"] for e in data["topEmotes"]] == ["LUL"]
    assert missing.status == 404
    assert bad.status == 400


@pytest.mark.asyncio
async def test_health_endpoints():
    server = await _server()

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        health = await (await client.get("/health")).json()
        status = await (await client.get("/status")).json()
        ping = await (await client.get("/ping")).text()

    assert health == {"status": "healthy"}
    assert status["tracked_channels"] == 2
    assert status["unsaved_changes"] is True
    assert ping == "pong"
