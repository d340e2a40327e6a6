"""Keyword matching of feed items against the configured watch list."""

from __future__ import annotations

from typing import Iterable, Sequence

from storage.models import FeedItem


def load_keywords(raw: Iterable[object] | None) -> list[str]:
    """Normalise a configured keyword list: lowercase, trimmed, blanks dropped."""
    keywords: list[str] = []
    for kw in raw or []:
        if kw is None:
            continue
        text = str(kw).strip().lower()
        if text and text not in keywords:
            keywords.append(text)
    return keywords


def _haystack(item: FeedItem) -> str:
    return f"{item.title} {item.description}".lower()


def first_match(item: FeedItem, keywords: Sequence[str]) -> str | None:
    """Return the first keyword found in the item's title + description."""
    text = _haystack(item)
    for kw in keywords:
        if kw and kw.lower() in text:
            return kw
    return None


def matches(item: FeedItem, keywords: Sequence[str]) -> bool:
    """True if any keyword is a case-insensitive substring of title + description."""
    return first_match(item, keywords) is not None
