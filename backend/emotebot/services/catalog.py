"""Per-channel emote catalog cache.

A channel's catalog is fetched at most once per TTL no matter how fast chat
moves. "No emote set" answers are cached like any other catalog; transient
registry failures are not, so the next message retries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from ..core.errors import CatalogFetchError, CatalogNotFound
from ..shared.cache import _MISSING, AsyncTTLCache
from ..shared.models.emotes import ChannelCatalog, EmoteRecord

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_TTL = 300.0

CatalogFetcher = Callable[[str], Awaitable[list[EmoteRecord]]]


class CatalogCache:
    """Freshness-bounded cache of ``ChannelCatalog`` snapshots.

    Concurrent lookups for the same channel share one fetch (per-channel
    lock); different channels never wait on each other.
    """

    def __init__(
        self,
        fetcher: CatalogFetcher,
        ttl: float = DEFAULT_CATALOG_TTL,
        *,
        timer: Callable[[], float] = time.monotonic,
        maxsize: int = 512,
    ) -> None:
        self._fetch = fetcher
        self._timer = timer
        self._cache = AsyncTTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    @property
    def ttl(self) -> float:
        return self._cache.ttl

    async def get_or_fetch(self, channel: str) -> ChannelCatalog:
        """Return the channel's catalog, fetching it if absent or expired."""
        key = channel.lower()

        catalog = self._cache.get(key)
        if catalog is not _MISSING:
            return catalog

        async with self._cache.get_lock(key):
            catalog = self._cache.get(key)
            if catalog is not _MISSING:
                return catalog
            return await self._refresh(key)

    async def _refresh(self, channel: str) -> ChannelCatalog:
        try:
            records = await self._fetch(channel)
        except asyncio.CancelledError:
            raise
        except CatalogNotFound:
            logger.info(f"Channel {channel} has no 7TV emotes")
            records = []
        except CatalogFetchError as e:
            logger.warning(f"Error fetching emotes for {channel}: {e}")
            return ChannelCatalog(channel=channel)
        except Exception as e:
            logger.exception(f"Unexpected error fetching emotes for {channel}: {e}")
            return ChannelCatalog(channel=channel)

        entries: dict[str, EmoteRecord] = {}
        for record in records:
            entries.setdefault(record.name, record)

        catalog = ChannelCatalog(channel=channel, entries=entries, fetched_at=self._timer())
        self._cache.set(channel, catalog)
        logger.info(f"Loaded {len(catalog)} emotes for {channel}")
        return catalog

    async def preload(self, channels: Iterable[str]) -> None:
        """Fetch every channel's catalog concurrently.

        One channel failing never affects the others.
        """
        channels = list(channels)
        logger.info(f"Pre-loading emotes for {len(channels)} channel(s)...")

        results = await asyncio.gather(
            *(self.get_or_fetch(ch) for ch in channels), return_exceptions=True
        )
        for channel, result in zip(channels, results):
            if isinstance(result, BaseException):
                logger.error(f"Pre-loading emotes for {channel} failed: {result}")

        logger.info("Emote pre-loading complete")

    # --- last-known lookups (no I/O, ignore TTL) ---

    def get_all_entries(self, channel: str) -> dict[str, EmoteRecord] | None:
        """Entries of the last successfully fetched catalog, even if expired."""
        catalog = self._cache.get_stale(channel.lower())
        if catalog is _MISSING:
            return None
        return catalog.entries

    def get_entry(self, channel: str, emote_name: str) -> EmoteRecord | None:
        entries = self.get_all_entries(channel)
        if entries is None:
            return None
        return entries.get(emote_name)
