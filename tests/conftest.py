import os
import sys
from pathlib import Path

import pytest

# Add backend/ to sys.path for imports when the package is not installed
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

# Ensure required environment variables for BotSettings
os.environ.setdefault("CLIENT_ID", "test-client")
os.environ.setdefault("CLIENT_SECRET", "test-secret")
os.environ.setdefault("BOT_ID", "1")
os.environ.setdefault("CHANNELS", "foo")

from emotebot.shared.models.emotes import ChannelCatalog, EmoteRecord  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_record(name: str, emote_id: str | None = None, animated: bool = False) -> EmoteRecord:
    emote_id = emote_id or f"id-{name}"
    return EmoteRecord(
        id=emote_id,
        name=name,
        image_url=f"https://cdn.7tv.app/emote/{emote_id}/1x.webp",
        animated=animated,
    )


def make_catalog(channel: str, *names: str) -> ChannelCatalog:
    return ChannelCatalog(
        channel=channel,
        entries={n: make_record(n) for n in names},
        fetched_at=1.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
