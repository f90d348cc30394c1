"""In-memory emote usage store.

Holds per-channel message totals and per-emote counters for the lifetime of
the process. Every mutation marks the store dirty; ``StatsPersistence``
clears the flag after a successful write.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from ..models.emotes import ChannelUsage, EmoteMetadata, UsageCounter

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds (the persisted precision)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def to_epoch_ms(value: datetime | None) -> int:
    if value is None:
        return 0
    return int(round(value.timestamp() * 1000))


def from_epoch_ms(value: int) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _by_count(counters: Iterable[UsageCounter]) -> list[UsageCounter]:
    # sorted() is stable: ties keep insertion order
    return sorted(counters, key=lambda c: c.count, reverse=True)


def counter_to_dict(counter: UsageCounter) -> dict[str, Any]:
    """Serialise a counter using the persisted/exported field names."""
    data: dict[str, Any] = {
        "emoteName": counter.emote_name,
        "count": counter.count,
        "lastUsed": to_epoch_ms(counter.last_used_at),
        "channel": counter.channel,
    }
    if counter.metadata is not None:
        data["emoteId"] = counter.metadata.emote_id
        data["imageUrl"] = counter.metadata.image_url
        data["animated"] = counter.metadata.animated
    return data


class UsageStore:
    """Per-channel message and emote usage counters.

    Channel names are case-insensitive; they are stored lower-cased.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._channels: dict[str, ChannelUsage] = {}
        self._clock = clock
        self._dirty = False
        self._version = 0

    # ==================== Dirty tracking ====================

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def version(self) -> int:
        """Mutation counter, bumped on every change."""
        return self._version

    def _touch(self) -> None:
        self._version += 1
        self._dirty = True

    def mark_clean(self, version: int | None = None) -> bool:
        """Clear the dirty flag.

        When *version* is given the flag is only cleared if no mutation
        happened since that version was read. Returns whether it was cleared.
        """
        if version is not None and version != self._version:
            return False
        self._dirty = False
        return True

    # ==================== Mutations ====================

    def _bucket(self, channel: str) -> ChannelUsage:
        key = channel.lower()
        usage = self._channels.get(key)
        if usage is None:
            usage = ChannelUsage(channel=key)
            self._channels[key] = usage
        return usage

    def record_message(self, channel: str) -> None:
        self._bucket(channel).total_messages += 1
        self._touch()

    def record_emote_usage(
        self,
        channel: str,
        emote_name: str,
        metadata: EmoteMetadata | None = None,
    ) -> UsageCounter:
        """Count one use of *emote_name* in *channel*.

        Call once per distinct emote per message. A supplied *metadata*
        replaces whatever the previous use stored; ``None`` leaves it as is.
        """
        usage = self._bucket(channel)
        counter = usage.counters.get(emote_name)
        if counter is None:
            counter = UsageCounter(emote_name=emote_name, channel=usage.channel)
            usage.counters[emote_name] = counter

        counter.count += 1
        counter.last_used_at = self._clock()
        if metadata is not None:
            counter.metadata = metadata
        usage.total_emote_events += 1
        self._touch()
        return counter

    def clear(self) -> None:
        """Drop every channel's statistics."""
        self._channels.clear()
        self._touch()
        logger.info("All statistics cleared")

    def replace_all(self, channels: Iterable[ChannelUsage]) -> None:
        """Swap in previously persisted state. Leaves the store clean."""
        self._channels = {usage.channel: usage for usage in channels}
        self._dirty = False

    # ==================== Queries ====================

    def get_channel_usage(self, channel: str) -> ChannelUsage | None:
        return self._channels.get(channel.lower())

    def channels(self) -> list[ChannelUsage]:
        return list(self._channels.values())

    def top_global(self, limit: int = 100) -> list[UsageCounter]:
        """Top counters across every channel, highest count first."""
        everything = [c for usage in self._channels.values() for c in usage.counters.values()]
        return _by_count(everything)[:limit]

    def top_for_channel(self, channel: str, limit: int = 10) -> list[UsageCounter]:
        usage = self.get_channel_usage(channel)
        if usage is None:
            return []
        return _by_count(usage.counters.values())[:limit]

    def export(self, top_limit: int = 20) -> dict[str, Any]:
        """JSON-ready snapshot of every channel plus the global top list."""
        channels = [
            {
                "channelName": usage.channel,
                "totalMessages": usage.total_messages,
                "totalEmotesUsed": usage.total_emote_events,
                "emotes": [counter_to_dict(c) for c in _by_count(usage.counters.values())],
            }
            for usage in self._channels.values()
        ]
        return {
            "channels": channels,
            "topEmotes": [counter_to_dict(c) for c in self.top_global(top_limit)],
            "lastUpdated": to_epoch_ms(self._clock()),
        }
