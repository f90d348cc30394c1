"""emotebot: 7TV emote usage statistics for Twitch chat."""

__version__ = "0.1.0"
