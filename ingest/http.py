"""Shared HTTP session for feed fetching – browser-like headers, hard timeout."""

from __future__ import annotations

import logging
import os

import requests

log = logging.getLogger(__name__)

# ── Defaults ─────────────────────────────────────────────────────────
_TIMEOUT = 10  # seconds
# Some publishers answer 403 to bare clients.
_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/xml,application/xml,application/rss+xml,text/html;q=0.9,*/*;q=0.8",
}


class FetchError(RuntimeError):
    """A feed could not be retrieved (network failure, timeout, non-2xx)."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.status_code = status_code


# ── Module-level session (reusable across cycles) ────────────────────
_session: requests.Session | None = None


def get_session() -> requests.Session:
    """Return a requests.Session carrying the browser-like header set."""
    global _session
    if _session is not None:
        return _session

    _session = requests.Session()
    _session.headers.update(_BROWSER_HEADERS)
    return _session


def _default_timeout() -> float:
    raw = os.getenv("FEED_TIMEOUT")
    if not raw:
        return _TIMEOUT
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring invalid FEED_TIMEOUT=%r", raw)
        return _TIMEOUT


def fetch_text(url: str, timeout: float | None = None) -> str:
    """GET *url* and return the body as text, or raise FetchError."""
    timeout = timeout if timeout is not None else _default_timeout()
    sess = get_session()
    log.debug("HTTP GET %s", url)
    try:
        resp = sess.get(url, timeout=timeout)
    except requests.Timeout as exc:
        raise FetchError(url, f"timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise FetchError(url, str(exc)) from exc

    if not 200 <= resp.status_code < 300:
        log.warning("HTTP %d for %s", resp.status_code, url)
        raise FetchError(url, f"HTTP {resp.status_code}", status_code=resp.status_code)

    return resp.text
