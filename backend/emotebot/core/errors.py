"""Exception types raised at the emotebot component boundaries."""


class EmoteBotError(Exception):
    """Base class for emotebot errors."""


class CatalogError(EmoteBotError):
    """Base class for emote registry failures."""

    def __init__(self, channel: str, message: str | None = None) -> None:
        self.channel = channel
        super().__init__(message or f"Catalog error for channel {channel}")


class CatalogNotFound(CatalogError):
    """The registry has no emote set for the channel. Cached as empty."""

    def __init__(self, channel: str) -> None:
        super().__init__(channel, f"No emote catalog for channel {channel}")


class CatalogFetchError(CatalogError):
    """Transient registry failure (network error or unexpected status)."""

    def __init__(self, channel: str, reason: str, status: int | None = None) -> None:
        self.reason = reason
        self.status = status
        super().__init__(channel, f"Failed to fetch catalog for {channel}: {reason}")


class PersistenceError(EmoteBotError):
    """Base class for stats document failures."""


class StatsWriteError(PersistenceError):
    """Writing the stats document failed."""


class StatsLoadError(PersistenceError):
    """The stats document exists but does not have the expected structure."""


class TwitchAPIError(EmoteBotError):
    """Twitch Helix request failed (token, transport or unexpected status)."""
