"""Twitch Bot class: read-only chat listener feeding the emote tracker."""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import quote

import twitchio
from twitchio import eventsub
from twitchio.ext import commands

from .config import BOT_SCOPES, BROADCASTER_SCOPES
from ..services.catalog import CatalogCache
from ..services.tracker import EmoteTracker
from ..shared.models.emotes import ChatEvent

LOGGER: logging.Logger = logging.getLogger("Bot")

# twitchio's built-in OAuth adapter
OAUTH_ADAPTER_URL = "http://localhost:4343/oauth"


def oauth_url(scopes: list[str]) -> str:
    return f"{OAUTH_ADAPTER_URL}?scopes={quote(' '.join(scopes))}"


def chat_event_from_payload(payload: twitchio.ChatMessage) -> ChatEvent:
    """Resolve a twitchio chat message into a ``ChatEvent``."""
    chatter = payload.chatter
    broadcaster = payload.broadcaster
    return ChatEvent(
        channel=(broadcaster.name or "").lower(),
        text=payload.text or "",
        channel_id=broadcaster.id,
        chatter_id=chatter.id,
        chatter_name=chatter.name,
        display_name=chatter.display_name,
        broadcaster=bool(chatter.broadcaster),
        moderator=bool(chatter.moderator),
        vip=bool(chatter.vip),
        subscriber=bool(chatter.subscriber),
    )


class Bot(commands.Bot):
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        owner_id: str | None,
        channels: list[str],
        tracker: EmoteTracker,
        catalogs: CatalogCache,
    ) -> None:
        self.tracker = tracker
        self.catalogs = catalogs
        self._channel_logins = channels
        self._subscribed_channels: set[str] = set()
        self._background_tasks: set[asyncio.Task] = set()

        super().__init__(
            client_id=client_id,
            client_secret=client_secret,
            bot_id=bot_id,
            owner_id=owner_id or None,
            prefix="!",
        )

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def setup_hook(self) -> None:
        LOGGER.info(f"Authorize the bot account: {oauth_url(BOT_SCOPES)}")
        LOGGER.info(f"Authorize a broadcaster: {oauth_url(BROADCASTER_SCOPES)}")

        await self._subscribe_channels()

        task = asyncio.create_task(self.catalogs.preload(self._channel_logins))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _subscribe_channels(self) -> None:
        users = await self.fetch_users(logins=self._channel_logins)
        found = {u.name.lower() for u in users if u.name}
        for login in self._channel_logins:
            if login not in found:
                LOGGER.warning(f"Channel {login} not found on Twitch, skipping")

        for user in users:
            await self.subscribe_channel_events(user.id)

    async def subscribe_channel_events(self, broadcaster_user_id: str) -> None:
        if broadcaster_user_id in self._subscribed_channels:
            LOGGER.debug(f"Already subscribed: {broadcaster_user_id}")
            return

        try:
            await self.subscribe_websocket(
                payload=eventsub.ChatMessageSubscription(
                    broadcaster_user_id=broadcaster_user_id, user_id=self.bot_id
                )
            )
            self._subscribed_channels.add(broadcaster_user_id)
            LOGGER.info(f"Subscribed to chat for channel: {broadcaster_user_id}")
        except Exception as e:
            LOGGER.exception(f"Failed to subscribe channel {broadcaster_user_id}: {e}")

    async def close(self, **options) -> None:
        for task in list(self._background_tasks):
            task.cancel()
        await super().close(**options)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def event_ready(self) -> None:
        LOGGER.info("Successfully logged in as: %s", self.bot_id)

    async def event_oauth_authorized(
        self, payload: twitchio.authentication.UserTokenPayload
    ) -> None:
        await self.add_token(payload.access_token, payload.refresh_token)

        if payload.user_id == self.bot_id:
            LOGGER.info("Bot account authorized, subscribing to chat")
            await self._subscribe_channels()

    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        if not payload.broadcaster:
            return

        event = chat_event_from_payload(payload)
        LOGGER.debug(f"[{event.chatter_name}#{event.channel}]: {event.text}")

        try:
            await self.tracker.handle_message(event)
        except Exception as e:
            LOGGER.exception(f"Failed to track message in {event.channel}: {e}")
