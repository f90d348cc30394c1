"""Core modules: settings, logging and error types."""

from .config import (
    BOT_SCOPES,
    BROADCASTER_SCOPES,
    DATA_DIR,
    PACKAGE_DIR,
    BotSettings,
    get_settings,
    validate_env_vars,
)
from .errors import (
    CatalogError,
    CatalogFetchError,
    CatalogNotFound,
    EmoteBotError,
    PersistenceError,
    StatsLoadError,
    StatsWriteError,
    TwitchAPIError,
)
from .logging import setup_logging

__all__ = [
    # Settings
    "BotSettings",
    "get_settings",
    "validate_env_vars",
    # Path Constants
    "PACKAGE_DIR",
    "DATA_DIR",
    # Scope Constants
    "BOT_SCOPES",
    "BROADCASTER_SCOPES",
    # Setup functions
    "setup_logging",
    # Errors
    "EmoteBotError",
    "CatalogError",
    "CatalogNotFound",
    "CatalogFetchError",
    "PersistenceError",
    "StatsLoadError",
    "StatsWriteError",
    "TwitchAPIError",
]
