"""Data models shared by the bot, the services and the dashboard."""

from .emotes import (
    DEFAULT_CDN_URL,
    ChannelCatalog,
    ChannelUsage,
    ChatEvent,
    EmoteMetadata,
    EmoteRecord,
    UsageCounter,
    emote_image_url,
)

__all__ = [
    "ChannelCatalog",
    "ChannelUsage",
    "ChatEvent",
    "EmoteMetadata",
    "EmoteRecord",
    "UsageCounter",
    "DEFAULT_CDN_URL",
    "emote_image_url",
]
