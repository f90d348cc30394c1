"""Emote bot configuration"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
PACKAGE_DIR = Path(__file__).parent.parent
BACKEND_DIR = PACKAGE_DIR.parent
DATA_DIR = BACKEND_DIR / "data"

BOT_SCOPES = [
    "user:bot",  # Bot identifier
    "user:read:chat",  # Read chat messages
]

BROADCASTER_SCOPES = [
    "channel:bot",  # Allow bot to join channel
]


class BotSettings(BaseSettings):
    """Emote bot settings"""

    model_config = SettingsConfigDict(
        env_file=BACKEND_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch OAuth
    client_id: str = Field(..., description="Twitch OAuth Client ID")
    client_secret: str = Field(..., description="Twitch OAuth Client Secret")

    # Bot Configuration
    bot_id: str = Field(..., description="Bot User ID")
    owner_id: str = Field(default="", description="Owner User ID")
    channels: str = Field(..., description="Comma separated channel logins to track")

    # Statistics
    stats_file: Path = Field(
        default=DATA_DIR / "statistics" / "stats.json", description="Usage statistics document"
    )
    autosave_interval: float = Field(default=30.0, gt=0, description="Autosave interval (s)")
    export_top_limit: int = Field(default=20, gt=0, description="Global top-N in exports")

    # 7TV
    catalog_ttl: float = Field(default=300.0, gt=0, description="Emote catalog TTL (s)")
    seventv_api_url: str = Field(default="https://7tv.io/v3", description="7TV API base URL")
    seventv_cdn_url: str = Field(default="https://cdn.7tv.app", description="7TV CDN base URL")

    # Dashboard
    dashboard_host: str = Field(default="0.0.0.0", description="Dashboard bind address")
    dashboard_port: int = Field(default=3000, description="Dashboard port")

    # Environment
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: str) -> str:
        """Require at least one non-empty channel name"""
        if not [ch for ch in v.split(",") if ch.strip()]:
            raise ValueError("CHANNELS must contain at least one channel name")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def channel_list(self) -> list[str]:
        """Channel logins, trimmed and lower-cased, in configured order."""
        seen: list[str] = []
        for ch in self.channels.split(","):
            name = ch.strip().lower()
            if name and name not in seen:
                seen.append(name)
        return seen


@lru_cache
def get_settings() -> BotSettings:
    """Get cached settings instance"""
    return BotSettings()  # type: ignore[call-arg]


def validate_env_vars() -> BotSettings:
    """Load settings, logging and re-raising validation failures as ``ValueError``."""
    try:
        settings = get_settings()
    except Exception as e:
        bot_logger = logging.getLogger("Bot")
        bot_logger.error(f"Environment validation failed: {e}")
        raise ValueError(str(e)) from e

    logger.info("All required environment variables validated successfully")
    return settings
