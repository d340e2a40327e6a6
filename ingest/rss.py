"""RSS feed parsing – raw document → FeedItem records."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator

import feedparser

from storage.models import FeedItem

log = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")


class ParseError(ValueError):
    """The document is too malformed to locate any item elements."""


def _strip_html(text: str) -> str:
    if "<" in text:
        text = _TAG_RE.sub("", text)
    return text.strip()


def _entry_to_item(entry: dict[str, Any]) -> FeedItem:
    title = (entry.get("title") or "").strip()
    link = (entry.get("link") or "").strip()
    # Best-effort body: summary → description → empty
    description = _strip_html(entry.get("summary") or entry.get("description") or "")
    return FeedItem(title=title, link=link, description=description)


def parse_feed(text: str) -> Iterator[FeedItem]:
    """Yield one FeedItem per <item>/<entry> in *text*.

    A well-formed feed with no entries yields nothing.  A document that
    feedparser could not make sense of at all raises ParseError on the
    first ``next()``.
    """
    feed = feedparser.parse(text)
    entries = feed.get("entries") or []

    if not entries:
        if feed.get("bozo") and not feed.get("version"):
            raise ParseError(str(feed.get("bozo_exception") or "unrecognised feed document"))
        return

    if feed.get("bozo"):
        log.debug("Feed parsed with warnings: %s", feed.get("bozo_exception"))

    for entry in entries:
        item = _entry_to_item(entry)
        if not item.title:
            log.debug("Skipping entry without title: %s", item.link or "?")
            continue
        yield item
