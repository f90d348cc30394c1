"""Exact-token emote matching."""

from collections.abc import Container

from ..shared.models.emotes import ChannelCatalog


def find_matches(text: str, catalog: ChannelCatalog | Container[str]) -> list[str]:
    """Distinct catalog names appearing as whole tokens in *text*.

    Tokens are whitespace-separated and compared case-sensitively, with no
    punctuation stripping. Order follows first occurrence.
    """
    names = catalog.entries if isinstance(catalog, ChannelCatalog) else catalog
    found: dict[str, None] = {}
    for token in text.split():
        if token in names:
            found.setdefault(token, None)
    return list(found)
