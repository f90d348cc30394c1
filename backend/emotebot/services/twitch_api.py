"""Twitch API client service.

Only public Helix endpoints are used, so an App Access Token is enough.
It is fetched on demand and cached until shortly before it expires.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from ..core.errors import TwitchAPIError
from ..shared.cache import _MISSING, AsyncTTLCache

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"
OAUTH_BASE = "https://id.twitch.tv/oauth2"


class TwitchAPIClient:
    """Client for the Twitch Helix API.

    Manages a shared httpx client for connection reuse and caches
    the app access token to avoid redundant token requests.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        http: httpx.AsyncClient | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret

        # Shared HTTP client, reuses TCP connections across requests
        self._http = http or httpx.AsyncClient(timeout=10.0)

        # App token cache
        self._app_token: str | None = None
        self._app_token_expires_at: float = 0.0
        self._app_token_lock = asyncio.Lock()

        # Login -> user id rarely changes; keep it for an hour, stale beyond that
        self._user_id_cache = AsyncTTLCache(maxsize=256, ttl=3600, timer=timer)
        self._timer = timer

    async def close(self) -> None:
        """Close the shared HTTP client. Call on app shutdown."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _app_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Client-Id": self.client_id}

    async def _ensure_app_token(self) -> str:
        """Return a cached app access token, refreshing only when expired."""
        now = self._timer()
        if self._app_token and now < self._app_token_expires_at:
            return self._app_token

        async with self._app_token_lock:
            # Double-check after acquiring lock
            now = self._timer()
            if self._app_token and now < self._app_token_expires_at:
                return self._app_token

            try:
                response = await self._http.post(
                    f"{OAUTH_BASE}/token",
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "client_credentials",
                    },
                )
            except httpx.HTTPError as e:
                raise TwitchAPIError(f"App token request failed: {e}") from e

            if response.status_code != 200:
                raise TwitchAPIError(f"Failed to get app token: {response.status_code}")

            data = response.json()
            token = data.get("access_token")
            if not token:
                raise TwitchAPIError("App token response had no access_token")

            self._app_token = token
            # Twitch returns expires_in in seconds; refresh 5 min early
            expires_in = data.get("expires_in", 0)
            self._app_token_expires_at = now + max(expires_in - 300, 0)
            return token

    async def _helix_get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET request to Helix API with the app token."""
        token = await self._ensure_app_token()
        try:
            return await self._http.get(
                f"{HELIX_BASE}/{path}",
                params=params,
                headers=self._app_headers(token),
            )
        except httpx.HTTPError as e:
            raise TwitchAPIError(f"Helix GET /{path} error: {e}") from e

    # ------------------------------------------------------------------
    # User data
    # ------------------------------------------------------------------

    async def get_user_by_login(self, login: str) -> dict[str, str] | None:
        """Look up a Twitch user by login name. ``None`` if it does not exist."""
        response = await self._helix_get("users", {"login": login})
        if response.status_code != 200:
            raise TwitchAPIError(f"Failed to fetch user {login}: {response.status_code}")

        users = response.json().get("data", [])
        if not users:
            logger.warning(f"No user found for login: {login}")
            return None

        user = users[0]
        return {
            "id": user.get("id"),
            "name": user.get("login"),
            "display_name": user.get("display_name"),
        }

    async def get_user_id(self, login: str) -> str | None:
        """Resolve a channel login to its numeric user id.

        Answers (including "no such user") are cached for an hour. If Helix
        fails, the last known id is returned when there is one.
        """
        login = login.lower()
        cached = self._user_id_cache.get(login)
        if cached is not _MISSING:
            return cached

        async with self._user_id_cache.get_lock(login):
            cached = self._user_id_cache.get(login)
            if cached is not _MISSING:
                return cached

            try:
                user = await self.get_user_by_login(login)
            except TwitchAPIError as e:
                stale = self._user_id_cache.get_stale(login)
                if stale is _MISSING:
                    raise
                logger.warning(f"Returning stale user id for {login} ({e})")
                return stale

            user_id = user["id"] if user else None
            self._user_id_cache.set(login, user_id)
            return user_id
