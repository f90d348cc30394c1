"""Chat message ingestion: count the message, then every distinct emote in it."""

from __future__ import annotations

import logging

from ..shared.models.emotes import ChatEvent, EmoteMetadata
from ..shared.repositories.usage import UsageStore
from .catalog import CatalogCache
from .matching import find_matches

logger = logging.getLogger(__name__)


class EmoteTracker:
    """Feeds chat events into the usage store."""

    def __init__(self, catalogs: CatalogCache, store: UsageStore) -> None:
        self.catalogs = catalogs
        self.store = store

    async def handle_message(self, event: ChatEvent) -> list[str]:
        """Record *event* and return the emote names matched in it."""
        channel = event.channel.lower()
        self.store.record_message(channel)

        catalog = await self.catalogs.get_or_fetch(channel)
        found = find_matches(event.text, catalog)

        for name in found:
            record = catalog.entries.get(name)
            metadata = EmoteMetadata.from_record(record) if record else None
            self.store.record_emote_usage(channel, name, metadata)

        if found:
            badges = f" [{', '.join(event.badges)}]" if event.badges else ""
            logger.debug(
                f"[{channel}] {event.display_name or event.chatter_name}{badges}: "
                f"emotes found: {', '.join(found)}"
            )
        return found
