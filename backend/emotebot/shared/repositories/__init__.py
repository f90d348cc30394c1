"""Repository layer for emote usage statistics."""

from .usage import UsageStore, counter_to_dict

__all__ = [
    "UsageStore",
    "counter_to_dict",
]
