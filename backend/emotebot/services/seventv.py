"""7TV emote registry client.

Turns a Twitch channel into its active 7TV emote set. Outcomes map onto the
catalog error taxonomy: 404 -> ``CatalogNotFound``, anything else that is
not a 200 -> ``CatalogFetchError``.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from ..core.errors import CatalogFetchError, CatalogNotFound, TwitchAPIError
from ..shared.models.emotes import DEFAULT_CDN_URL, EmoteRecord, emote_image_url

logger = logging.getLogger(__name__)

SEVENTV_API = "https://7tv.io/v3"
SEVENTV_CDN = DEFAULT_CDN_URL

UserIdResolver = Callable[[str], Awaitable[str | None]]


class SevenTVClient:
    """Fetches channel emote sets from the 7TV API.

    *resolve_user_id* maps a channel login to its Twitch user id; 7TV only
    knows channels by id.
    """

    def __init__(
        self,
        resolve_user_id: UserIdResolver,
        *,
        api_url: str = SEVENTV_API,
        cdn_url: str = SEVENTV_CDN,
        http: httpx.AsyncClient | None = None,
    ):
        self._resolve_user_id = resolve_user_id
        self.api_url = api_url.rstrip("/")
        self.cdn_url = cdn_url.rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=10.0)

    async def close(self) -> None:
        await self._http.aclose()

    def image_url(self, emote_id: str) -> str:
        return emote_image_url(emote_id, self.cdn_url)

    def _parse_emote(self, emote: dict[str, Any]) -> EmoteRecord | None:
        name = emote.get("name")
        data = emote.get("data") or {}
        emote_id = data.get("id") or emote.get("id")
        if not name or not emote_id:
            return None
        return EmoteRecord(
            id=emote_id,
            name=name,
            image_url=self.image_url(emote_id),
            animated=bool(data.get("animated", False)),
        )

    async def fetch_emotes(self, channel: str, user_id: str) -> list[EmoteRecord]:
        """Fetch the active emote set of a Twitch user id."""
        try:
            response = await self._http.get(f"{self.api_url}/users/twitch/{user_id}")
        except httpx.HTTPError as e:
            raise CatalogFetchError(channel, f"{type(e).__name__}: {e}") from e

        if response.status_code == 404:
            raise CatalogNotFound(channel)
        if response.status_code != 200:
            raise CatalogFetchError(
                channel, f"7TV API returned {response.status_code}", status=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogFetchError(channel, "7TV API returned invalid JSON") from e

        emote_set = payload.get("emote_set") if isinstance(payload, dict) else None
        if not emote_set:
            return []

        records: list[EmoteRecord] = []
        for emote in emote_set.get("emotes") or []:
            record = self._parse_emote(emote)
            if record is not None:
                records.append(record)
        return records

    async def fetch_channel(self, channel: str) -> list[EmoteRecord]:
        """Catalog fetch capability: channel login -> emote records."""
        try:
            user_id = await self._resolve_user_id(channel)
        except TwitchAPIError as e:
            raise CatalogFetchError(channel, f"could not resolve channel id: {e}") from e

        if not user_id:
            raise CatalogFetchError(channel, "could not find channel id")

        return await self.fetch_emotes(channel, user_id)
