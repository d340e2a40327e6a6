import pytest

from ingest.http import FetchError
from process.cycle import load_feed_config, make_cycle, run_cycle
from storage.db import RecordResult, StoreError, list_alerts

KEYWORDS = ["attack", "kidnap"]

FEED_A = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>A</title>
  <item><title>Gunmen attack village</title><link>https://a.example/1</link>
        <description>Several injured.</description></item>
  <item><title>Weather outlook</title><link>https://a.example/2</link>
        <description>Sunny spells.</description></item>
</channel></rss>
"""

FEED_B = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>B</title>
  <item><title>Students freed</title><link>https://b.example/1</link>
        <description>Victims of last week's KIDNAP returned home.</description></item>
</channel></rss>
"""

FEEDS = [
    {"name": "A", "url": "https://a.example/feed"},
    {"name": "B", "url": "https://b.example/feed"},
]


def _fetcher(documents):
    def fetch(url):
        doc = documents[url]
        if isinstance(doc, Exception):
            raise doc
        return doc

    return fetch


def test_matching_item_is_stored_as_alert(database):
    fetch = _fetcher({"https://a.example/feed": FEED_A})

    stats = run_cycle([FEEDS[0]], KEYWORDS, fetch=fetch)

    assert stats.items_seen == 2
    assert stats.matched == 1
    assert stats.created == 1
    alerts = list_alerts()
    assert [(a["text"], a["url"]) for a in alerts] == [("Gunmen attack village", "https://a.example/1")]


def test_second_cycle_on_unchanged_feed_creates_nothing(database):
    fetch = _fetcher({"https://a.example/feed": FEED_A, "https://b.example/feed": FEED_B})

    first = run_cycle(FEEDS, KEYWORDS, fetch=fetch)
    second = run_cycle(FEEDS, KEYWORDS, fetch=fetch)

    assert first.created == 2
    assert second.matched == 2
    assert second.created == 0
    assert len(list_alerts()) == 2


def test_failing_feed_does_not_stop_the_cycle(database):
    fetch = _fetcher(
        {
            "https://a.example/feed": FetchError("https://a.example/feed", "HTTP 403", 403),
            "https://b.example/feed": FEED_B,
        }
    )

    stats = run_cycle(FEEDS, KEYWORDS, fetch=fetch)

    assert stats.feeds_failed == 1
    assert stats.feeds_ok == 1
    assert [a["text"] for a in list_alerts()] == ["Students freed"]


def test_unexpected_fetch_error_is_isolated_too(database):
    fetch = _fetcher({"https://a.example/feed": ValueError("boom"), "https://b.example/feed": FEED_B})
    stats = run_cycle(FEEDS, KEYWORDS, fetch=fetch)
    assert stats.feeds_failed == 1
    assert stats.created == 1


def test_unparseable_feed_counts_as_empty():
    fetch = _fetcher({"https://a.example/feed": "<<< not a feed >>>"})
    recorded = []

    stats = run_cycle([FEEDS[0]], KEYWORDS, fetch=fetch, record=lambda *a: recorded.append(a))

    assert stats.feeds_ok == 1
    assert stats.items_seen == 0
    assert recorded == []


def test_new_alerts_are_published_once():
    fetch = _fetcher({"https://a.example/feed": FEED_A})
    seen = set()
    published = []

    def record(text, url, timestamp):
        created = text not in seen
        seen.add(text)
        return RecordResult(created=created)

    for _ in range(2):
        run_cycle([FEEDS[0]], KEYWORDS, fetch=fetch, record=record,
                  publish=lambda event, data: published.append((event, data)))

    assert len(published) == 1
    event, data = published[0]
    assert event == "hate-alert"
    assert data["text"] == "Gunmen attack village"
    assert data["url"] == "https://a.example/1"


def test_store_error_skips_item_but_continues():
    fetch = _fetcher({"https://a.example/feed": FEED_A, "https://b.example/feed": FEED_B})
    calls = []

    def record(text, url, timestamp):
        calls.append(text)
        if text == "Gunmen attack village":
            raise StoreError("database is locked")
        return RecordResult(created=True)

    stats = run_cycle(FEEDS, KEYWORDS, fetch=fetch, record=record)

    assert calls == ["Gunmen attack village", "Students freed"]
    assert stats.created == 1


def test_publish_failure_does_not_break_cycle(database):
    fetch = _fetcher({"https://a.example/feed": FEED_A})

    def publish(event, data):
        raise RuntimeError("no loop")

    stats = run_cycle([FEEDS[0]], KEYWORDS, fetch=fetch, publish=publish)
    assert stats.created == 1


def test_bare_url_feeds_are_accepted():
    fetch = _fetcher({"https://a.example/feed": FEED_A})
    stats = run_cycle(["https://a.example/feed", {"name": "no url"}], KEYWORDS, fetch=fetch,
                      record=lambda *a: RecordResult(created=False))
    assert stats.feeds_ok == 1
    assert stats.matched == 1


def test_load_feed_config(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text(
        "feeds:\n  - name: A\n    url: https://a.example/feed\nkeywords:\n  - ' Attack '\n  - KIDNAP\n",
        encoding="utf-8",
    )

    config = load_feed_config(path)

    assert config["feeds"] == [{"name": "A", "url": "https://a.example/feed"}]
    assert config["keywords"] == ["attack", "kidnap"]
    assert config["interval_seconds"] == 60


def test_bundled_config_loads():
    config = load_feed_config()
    assert config["feeds"]
    assert "attack" in config["keywords"]


def test_make_cycle_binds_config(monkeypatch):
    import process.cycle as cycle_mod

    captured = {}

    def fake_run_cycle(feeds, keywords, publish=None):
        captured.update(feeds=feeds, keywords=keywords, publish=publish)

    monkeypatch.setattr(cycle_mod, "run_cycle", fake_run_cycle)
    cycle = make_cycle({"feeds": ["https://a.example/feed"], "keywords": ["Attack"]})
    cycle()

    assert captured == {"feeds": ["https://a.example/feed"], "keywords": ["attack"], "publish": None}
