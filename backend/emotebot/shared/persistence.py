"""Stats document persistence: load at startup, dirty-gated autosave, final flush."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..core.errors import StatsLoadError, StatsWriteError
from .models.emotes import (
    DEFAULT_CDN_URL,
    ChannelUsage,
    EmoteMetadata,
    UsageCounter,
    emote_image_url,
)
from .repositories.usage import UsageStore, counter_to_dict, from_epoch_ms

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_INTERVAL = 30.0


class PersistedEmote(BaseModel):
    """One counter as stored on disk."""

    model_config = ConfigDict(populate_by_name=True)

    emote_name: str = Field(alias="emoteName")
    count: int = Field(ge=0)
    last_used: int = Field(default=0, alias="lastUsed")
    channel: str
    emote_id: str | None = Field(default=None, alias="emoteId")
    image_url: str | None = Field(default=None, alias="imageUrl")
    animated: bool | None = None

    def to_counter(self, channel: str, cdn_url: str = DEFAULT_CDN_URL) -> UsageCounter:
        metadata = None
        if self.emote_id is not None:
            metadata = EmoteMetadata(
                emote_id=self.emote_id,
                image_url=self.image_url or emote_image_url(self.emote_id, cdn_url),
                animated=bool(self.animated),
            )
        return UsageCounter(
            emote_name=self.emote_name,
            channel=channel,
            count=self.count,
            last_used_at=from_epoch_ms(self.last_used),
            metadata=metadata,
        )


class PersistedChannel(BaseModel):
    """One channel's totals as stored on disk."""

    model_config = ConfigDict(populate_by_name=True)

    channel_name: str = Field(alias="channelName")
    total_messages: int = Field(ge=0, alias="totalMessages")
    total_emotes_used: int = Field(ge=0, alias="totalEmotesUsed")
    emotes: list[PersistedEmote] = Field(default_factory=list)

    def to_usage(self, cdn_url: str = DEFAULT_CDN_URL) -> ChannelUsage:
        channel = self.channel_name.lower()
        return ChannelUsage(
            channel=channel,
            total_messages=self.total_messages,
            total_emote_events=self.total_emotes_used,
            counters={e.emote_name: e.to_counter(channel, cdn_url) for e in self.emotes},
        )


_DOCUMENT = TypeAdapter(list[PersistedChannel])


def serialize_store(store: UsageStore) -> list[dict[str, Any]]:
    """Flatten every channel into the on-disk document layout."""
    return [
        {
            "channelName": usage.channel,
            "totalMessages": usage.total_messages,
            "totalEmotesUsed": usage.total_emote_events,
            "emotes": [counter_to_dict(c) for c in usage.counters.values()],
        }
        for usage in store.channels()
    ]


def parse_document(raw: str | bytes, cdn_url: str = DEFAULT_CDN_URL) -> list[ChannelUsage]:
    """Parse a stats document. Raises ``StatsLoadError`` if malformed.

    Counters saved with an ``emoteId`` but no ``imageUrl`` get the CDN URL
    derived from the id.
    """
    try:
        channels = _DOCUMENT.validate_json(raw)
    except ValidationError as e:
        raise StatsLoadError(f"Malformed statistics document: {e.error_count()} error(s)") from e
    return [channel.to_usage(cdn_url) for channel in channels]


class StatsPersistence:
    """Reads and writes the ``UsageStore`` to a JSON document.

    ``save`` never raises on I/O failure: it logs, keeps the store dirty and
    returns ``False`` so the next autosave tick tries again.
    """

    def __init__(
        self,
        store: UsageStore,
        path: str | Path,
        interval: float = DEFAULT_AUTOSAVE_INTERVAL,
        cdn_url: str = DEFAULT_CDN_URL,
    ) -> None:
        self.store = store
        self.path = Path(path)
        self.interval = interval
        self.cdn_url = cdn_url
        self._save_lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    # ==================== Save / Load ====================

    def _write(self, payload: list[dict[str, Any]]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StatsWriteError(f"Could not write {self.path}: {e}") from e

    async def save(self) -> bool:
        """Write the store to disk. Returns ``True`` on success."""
        async with self._save_lock:
            version = self.store.version
            payload = serialize_store(self.store)
            try:
                await asyncio.to_thread(self._write, payload)
            except StatsWriteError:
                logger.exception("Error saving statistics")
                return False

            if not self.store.mark_clean(version):
                logger.debug("Statistics changed during save; staying dirty")
            logger.debug(f"Statistics saved to {self.path}")
            return True

    async def load(self) -> int:
        """Populate the store from disk. Returns the number of channels loaded.

        A missing file is a fresh start. A malformed one raises
        ``StatsLoadError`` and leaves the store untouched.
        """
        try:
            raw = await asyncio.to_thread(self.path.read_bytes)
        except FileNotFoundError:
            logger.info("No existing statistics file found, starting fresh")
            return 0
        except OSError as e:
            logger.error(f"Could not read statistics file {self.path}: {e}")
            raise StatsLoadError(f"Could not read {self.path}: {e}") from e

        try:
            channels = parse_document(raw, self.cdn_url)
        except StatsLoadError as e:
            logger.error(f"Statistics file {self.path} is malformed: {e}")
            raise

        self.store.replace_all(channels)
        logger.info(f"Loaded statistics for {len(channels)} channel(s)")
        return len(channels)

    # ==================== Autosave ====================

    @property
    def autosave_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def autosave_tick(self) -> bool:
        """Save if dirty. Returns whether a write was attempted."""
        if not self.store.dirty:
            return False
        await self.save()
        return True

    async def _autosave_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                try:
                    await self.autosave_tick()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning(f"Autosave tick failed: {e}")

    def start_autosave(self) -> None:
        """Start the periodic save task. No-op if already running."""
        if self.autosave_running:
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._autosave_loop(self._stop_event), name="stats-autosave"
        )
        logger.info(f"Auto-save enabled (every {self.interval:g} seconds)")

    async def stop_autosave(self) -> None:
        """Stop the timer, then flush once if anything is unsaved."""
        if self._task is not None:
            if self._stop_event is not None:
                self._stop_event.set()
            # must not raise if the task was cancelled elsewhere; the flush below still runs
            await asyncio.wait([self._task])
            self._task = None
            self._stop_event = None

        if self.store.dirty:
            await self.save()

        logger.info("Auto-save stopped")
