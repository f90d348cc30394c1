from datetime import datetime, timedelta, timezone

from emotebot.shared.models.emotes import EmoteMetadata
from emotebot.shared.repositories.usage import UsageStore, utc_now


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _meta(emote_id: str) -> EmoteMetadata:
    return EmoteMetadata(emote_id=emote_id, image_url=f"https://x/{emote_id}", animated=False)


def test_record_message_creates_channel_lazily():
    store = UsageStore()
    assert store.get_channel_usage("foo") is None

    store.record_message("foo")
    store.record_message("foo")

    usage = store.get_channel_usage("foo")
    assert usage.total_messages == 2
    assert usage.total_emote_events == 0
    assert usage.counters == {}
    assert store.dirty


def test_record_emote_usage_counts_and_totals():
    clock = _Clock()
    store = UsageStore(clock=clock)

    store.record_emote_usage("foo", "Kappa", _meta("k1"))
    counter = store.record_emote_usage("foo", "Kappa", _meta("k1"))
    store.record_emote_usage("foo", "LUL")

    usage = store.get_channel_usage("foo")
    assert counter.count == 2
    assert counter.last_used_at == clock.now - timedelta(seconds=1)
    assert usage.total_emote_events == 3
    assert usage.total_messages == 0
    assert usage.counters["LUL"].metadata is None


def test_metadata_is_last_write_wins():
    store = UsageStore()

    store.record_emote_usage("foo", "Kappa", _meta("old"))
    store.record_emote_usage("foo", "Kappa", _meta("new"))
    assert store.get_channel_usage("foo").counters["Kappa"].metadata.emote_id == "new"

    store.record_emote_usage("foo", "Kappa")
    assert store.get_channel_usage("foo").counters["Kappa"].metadata.emote_id == "new"


def test_channel_names_are_case_insensitive():
    store = UsageStore()

    store.record_message("Foo")
    store.record_emote_usage("FOO", "Kappa")

    usage = store.get_channel_usage("foo")
    assert usage.channel == "foo"
    assert usage.total_messages == 1
    assert usage.counters["Kappa"].channel == "foo"


def test_top_global_is_stable_for_ties():
    store = UsageStore()
    for name, count in [("A", 5), ("B", 5), ("C", 3)]:
        for _ in range(count):
            store.record_emote_usage("foo", name)

    first = [c.emote_name for c in store.top_global(2)]
    second = [c.emote_name for c in store.top_global(2)]

    assert first == ["A", "B"]
    assert first == second


def test_top_global_spans_channels():
    store = UsageStore()
    store.record_emote_usage("foo", "Kappa")
    for _ in range(3):
        store.record_emote_usage("bar", "LUL")
    store.record_emote_usage("bar", "Kappa")
    store.record_emote_usage("bar", "Kappa")

    top = store.top_global(10)

    assert [(c.channel, c.emote_name, c.count) for c in top] == [
        ("bar", "LUL", 3),
        ("bar", "Kappa", 2),
        ("foo", "Kappa", 1),
    ]


def test_top_for_channel():
    store = UsageStore()
    store.record_emote_usage("foo", "A")
    store.record_emote_usage("foo", "B")
    store.record_emote_usage("foo", "B")
    store.record_emote_usage("bar", "C")

    assert [c.emote_name for c in store.top_for_channel("foo", 1)] == ["B"]
    assert [c.emote_name for c in store.top_for_channel("foo", 10)] == ["B", "A"]
    assert store.top_for_channel("nobody", 10) == []


def test_queries_do_not_touch_dirty_flag():
    store = UsageStore()
    store.record_message("foo")
    store.mark_clean()
    version = store.version

    store.get_channel_usage("foo")
    store.top_global(5)
    store.top_for_channel("foo", 5)
    store.export()

    assert not store.dirty
    assert store.version == version


def test_mark_clean_respects_version():
    store = UsageStore()
    store.record_message("foo")
    seen = store.version

    store.record_message("foo")

    assert store.mark_clean(seen) is False
    assert store.dirty
    assert store.mark_clean(store.version) is True
    assert not store.dirty


def test_export_shape():
    store = UsageStore()
    store.record_message("foo")
    store.record_emote_usage("foo", "Kappa", _meta("k1"))
    store.record_emote_usage("foo", "LUL")
    store.record_emote_usage("foo", "LUL")

    exported = store.export(top_limit=1)

    assert [e["emoteName"] for e in exported["topEmotes"]] == ["LUL"]
    channel = exported["channels"][0]
    assert channel["channelName"] == "foo"
    assert channel["totalMessages"] == 1
    assert channel["totalEmotesUsed"] == 3
    assert [e["emoteName"] for e in channel["emotes"]] == ["LUL", "Kappa"]
    kappa = channel["emotes"][1]
    assert kappa["emoteId"] == "k1"
    assert kappa["imageUrl"] == "https://x/k1"
    assert kappa["animated"] is False
    assert "emoteId" not in channel["emotes"][0]
    assert isinstance(exported["lastUpdated"], int)


def test_clear_drops_everything_and_marks_dirty():
    store = UsageStore()
    store.record_message("foo")
    store.mark_clean()

    store.clear()

    assert store.channels() == []
    assert store.dirty


def test_utc_now_has_millisecond_precision():
    assert utc_now().microsecond % 1000 == 0
