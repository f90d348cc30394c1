"""Services: emote registry access, catalog cache, matching and ingestion."""

from .catalog import CatalogCache
from .matching import find_matches
from .seventv import SevenTVClient
from .tracker import EmoteTracker
from .twitch_api import TwitchAPIClient

__all__ = [
    "CatalogCache",
    "EmoteTracker",
    "SevenTVClient",
    "TwitchAPIClient",
    "find_matches",
]
