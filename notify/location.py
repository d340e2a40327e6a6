"""Location matching between a report and a subscriber's declared area.

Free-text substring matching is imprecise ("Edo" is inside "Oredo");
anything implementing ``LocationMatcher`` can be handed to the
dispatcher instead.
"""

from __future__ import annotations

import re
from typing import Protocol

_STATE_RE = re.compile(r"state", re.IGNORECASE)


class LocationMatcher(Protocol):
    def matches(self, report_location: str, subscriber_location: str) -> bool: ...


def normalize_state_name(name: str) -> str:
    """'Rivers State ' → 'rivers'."""
    if not name:
        return ""
    return _STATE_RE.sub("", name.lower()).strip()


class SubstringLocationMatcher:
    """Case-insensitive containment either way, or equal names once 'state' is dropped."""

    def matches(self, report_location: str, subscriber_location: str) -> bool:
        report_loc = (report_location or "").lower().strip()
        sub_loc = (subscriber_location or "").lower().strip()
        if not report_loc or not sub_loc:
            return False
        if sub_loc in report_loc or report_loc in sub_loc:
            return True
        normalized = normalize_state_name(sub_loc)
        return bool(normalized) and normalized == normalize_state_name(report_loc)
