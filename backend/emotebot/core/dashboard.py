"""Dashboard HTTP server: statistics JSON API plus health endpoints"""

from __future__ import annotations

import logging
import time
from typing import Any

from aiohttp import web

from ..services.catalog import CatalogCache
from ..shared.repositories.usage import UsageStore, counter_to_dict

logger = logging.getLogger("Bot.Dashboard")


def merge_catalog(channel: dict[str, Any], catalogs: CatalogCache) -> dict[str, Any]:
    """Widen an exported channel to every catalog emote, unused ones at count 0."""
    entries = catalogs.get_all_entries(channel["channelName"])
    if not entries:
        return channel

    used = {e["emoteName"]: e for e in channel["emotes"]}
    emotes = []
    for record in entries.values():
        usage = used.get(record.name, {})
        emotes.append(
            {
                "emoteName": record.name,
                "count": usage.get("count", 0),
                "lastUsed": usage.get("lastUsed", 0),
                "channel": channel["channelName"],
                "emoteId": record.id,
                "imageUrl": record.image_url,
                "animated": record.animated,
            }
        )
    emotes.sort(key=lambda e: e["count"], reverse=True)
    return {**channel, "emotes": emotes}


class DashboardServer:
    """Read-only HTTP view over the usage store and catalog cache"""

    def __init__(
        self,
        store: UsageStore,
        catalogs: CatalogCache,
        host: str = "0.0.0.0",
        port: int = 3000,
        top_limit: int = 20,
    ):
        self.store = store
        self.catalogs = catalogs
        self.host = host
        self.port = port
        self.top_limit = top_limit
        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self._start_time: float = time.time()
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes"""
        self.app.router.add_get("/", self.handle_root)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/status", self.handle_status)
        self.app.router.add_get("/ping", self.handle_ping)
        self.app.router.add_get("/api/stats", self.handle_stats)
        self.app.router.add_get("/api/channels/{channel}", self.handle_channel)

    async def handle_root(self, request: web.Request) -> web.Response:
        """Root endpoint - minimal service info"""
        return web.json_response({"service": "emotebot", "status": "running"})

    async def handle_health(self, request: web.Request) -> web.Response:
        """Liveness check, always 200"""
        return web.json_response({"status": "healthy"})

    async def handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "service": "emotebot",
                "uptime_seconds": int(time.time() - self._start_time),
                "tracked_channels": len(self.store.channels()),
                "unsaved_changes": self.store.dirty,
            }
        )

    async def handle_ping(self, request: web.Request) -> web.Response:
        """Ping endpoint"""
        return web.Response(text="pong")

    async def handle_stats(self, request: web.Request) -> web.Response:
        """Full export, each channel widened to its whole catalog"""
        stats = self.store.export(self.top_limit)
        stats["channels"] = [merge_catalog(ch, self.catalogs) for ch in stats["channels"]]
        return web.json_response(stats)

    async def handle_channel(self, request: web.Request) -> web.Response:
        """Single channel totals and top emotes"""
        channel = request.match_info["channel"].lower()
        usage = self.store.get_channel_usage(channel)
        if usage is None:
            return web.json_response({"error": f"unknown channel {channel}"}, status=404)

        try:
            limit = int(request.query.get("limit", "10"))
        except ValueError:
            return web.json_response({"error": "limit must be an integer"}, status=400)

        top = self.store.top_for_channel(channel, max(limit, 0))
        return web.json_response(
            {
                "channelName": usage.channel,
                "totalMessages": usage.total_messages,
                "totalEmotesUsed": usage.total_emote_events,
                "topEmotes": [counter_to_dict(c) for c in top],
            }
        )

    async def start(self) -> None:
        """Start dashboard server"""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()

            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()

            logger.info(f"Dashboard started on {self.host}:{self.port}")
            logger.info(f"  GET http://{self.host}:{self.port}/api/stats - Emote statistics")

        except Exception as e:
            logger.exception(f"Failed to start dashboard: {e}")
            raise

    async def stop(self) -> None:
        """Stop dashboard server"""
        if self.runner:
            try:
                await self.runner.cleanup()
                logger.info("Dashboard stopped")
            except Exception as e:
                logger.exception(f"Error stopping dashboard: {e}")
