"""One fetch → parse → match → store pass over every configured feed."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import yaml

from ingest.http import FetchError, fetch_text
from ingest.rss import ParseError, parse_feed
from process.keywords import first_match, load_keywords
from storage.db import RecordResult, StoreError, record_if_new

log = logging.getLogger(__name__)

Publisher = Callable[[str, dict], None]

# ── Config loading ───────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "feeds.yaml"


def load_feed_config(path: str | Path | None = None) -> dict:
    """Read feeds, keywords and the polling interval from YAML."""
    path = Path(path or os.getenv("FEEDS_CONFIG") or DEFAULT_CONFIG_PATH)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    data["keywords"] = load_keywords(data.get("keywords"))
    data.setdefault("feeds", [])
    data.setdefault("interval_seconds", 60)
    return data


def _iter_feeds(feeds: Iterable[Any]) -> Iterable[tuple[str, str]]:
    """Accept either bare URLs or ``{name, url}`` dicts."""
    for feed in feeds:
        if isinstance(feed, str):
            yield feed, feed
            continue
        url = feed.get("url")
        if not url:
            log.warning("Skipping feed without URL: %r", feed)
            continue
        yield feed.get("name", url), url


# ── Cycle ────────────────────────────────────────────────────────────


@dataclass
class CycleStats:
    feeds_ok: int = 0
    feeds_failed: int = 0
    items_seen: int = 0
    matched: int = 0
    created: int = 0


def run_cycle(
    feeds: Iterable[Any],
    keywords: list[str],
    *,
    fetch: Callable[[str], str] = fetch_text,
    record: Callable[..., RecordResult] = record_if_new,
    publish: Optional[Publisher] = None,
) -> CycleStats:
    """Poll every feed once and store keyword matches not seen before.

    A failing feed only loses its own contribution; the remaining feeds
    are still processed.
    """
    stats = CycleStats()

    for name, url in _iter_feeds(feeds):
        try:
            text = fetch(url)
        except FetchError as exc:
            log.warning("Feed %s unavailable: %s", name, exc)
            stats.feeds_failed += 1
            continue
        except Exception:
            log.exception("Unhandled error fetching feed %s – skipping", name)
            stats.feeds_failed += 1
            continue

        try:
            items = list(parse_feed(text))
        except ParseError as exc:
            log.warning("Feed %s is not a readable RSS/Atom document (%s) – treating as empty", name, exc)
            items = []
        stats.feeds_ok += 1
        stats.items_seen += len(items)

        for item in items:
            keyword = first_match(item, keywords)
            if keyword is None:
                continue
            stats.matched += 1

            detected_at = datetime.now(timezone.utc).replace(tzinfo=None)
            try:
                result = record(item.title, item.link, detected_at)
            except StoreError:
                log.exception("Could not store alert %r", item.title[:80])
                continue
            if not result.created:
                continue

            stats.created += 1
            log.info("New alert [%s] from %s: %s", keyword, name, item.title)
            if publish is not None:
                _publish(publish, {"text": item.title, "url": item.link, "timestamp": detected_at.isoformat()})

        log.info("Feed %s → %d items", name, len(items))

    log.info(
        "Cycle finished: %d feeds ok, %d failed, %d items, %d matched, %d new alerts",
        stats.feeds_ok,
        stats.feeds_failed,
        stats.items_seen,
        stats.matched,
        stats.created,
    )
    return stats


def _publish(publish: Publisher, alert: dict) -> None:
    try:
        publish("hate-alert", alert)
    except Exception:
        log.exception("Real-time push failed for %r", alert.get("text", "")[:80])


def make_cycle(config: dict, publish: Optional[Publisher] = None) -> Callable[[], CycleStats]:
    """Bind a loaded feed config into a zero-argument cycle for the scheduler."""
    feeds = list(config.get("feeds", []))
    keywords = load_keywords(config.get("keywords"))

    def _cycle() -> CycleStats:
        return run_cycle(feeds, keywords, publish=publish)

    return _cycle
