"""Data models for emote catalogs and usage counters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_CDN_URL = "https://cdn.7tv.app"


def emote_image_url(emote_id: str, cdn_url: str = DEFAULT_CDN_URL) -> str:
    """Smallest CDN rendition of an emote."""
    return f"{cdn_url.rstrip('/')}/emote/{emote_id}/1x.webp"


@dataclass(frozen=True)
class EmoteRecord:
    """A single emote as published by the registry for one channel."""

    id: str
    name: str
    image_url: str
    animated: bool = False


@dataclass(frozen=True)
class ChannelCatalog:
    """Full snapshot of a channel's emote set at ``fetched_at``.

    Replaced wholesale on refresh, never edited in place.
    """

    channel: str
    entries: dict[str, EmoteRecord] = field(default_factory=dict)
    fetched_at: float = 0.0

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class EmoteMetadata:
    """Catalog-derived fields stored alongside a counter at time of use."""

    emote_id: str
    image_url: str
    animated: bool

    @classmethod
    def from_record(cls, record: EmoteRecord) -> EmoteMetadata:
        return cls(emote_id=record.id, image_url=record.image_url, animated=record.animated)


@dataclass
class UsageCounter:
    """Per-(channel, emote) usage accumulator."""

    emote_name: str
    channel: str
    count: int = 0
    last_used_at: datetime | None = None
    metadata: EmoteMetadata | None = None


@dataclass
class ChannelUsage:
    """Message and emote totals for one channel."""

    channel: str
    total_messages: int = 0
    total_emote_events: int = 0
    counters: dict[str, UsageCounter] = field(default_factory=dict)


@dataclass
class ChatEvent:
    """A chat message resolved from the transport payload.

    Role flags are read once here so consumers never probe the raw payload.
    """

    channel: str
    text: str
    channel_id: str | None = None
    chatter_id: str | None = None
    chatter_name: str | None = None
    display_name: str | None = None
    broadcaster: bool = False
    moderator: bool = False
    vip: bool = False
    subscriber: bool = False

    @property
    def badges(self) -> list[str]:
        flags = [
            ("BROADCASTER", self.broadcaster),
            ("MOD", self.moderator),
            ("VIP", self.vip),
            ("SUB", self.subscriber),
        ]
        return [name for name, is_set in flags if is_set]
