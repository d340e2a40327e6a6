"""Fan a new report out to every subscriber whose location matches it.

Routing is by the subscriber's free-text ``method``: the first of
"email", "whatsapp", "sms" it contains (case-insensitive) wins; with no
recognised method an email address, if any, is used.  An email
preference without an address goes to the phone value.  One subscriber's
failure never stops delivery to the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from notify.location import LocationMatcher, SubstringLocationMatcher
from notify.mail import send_email
from notify.message import build_message, email_body, email_subject
from notify.sms import send_sms
from notify.whatsapp import send_whatsapp
from storage.db import list_subscribers
from storage.models import Report, Subscriber

log = logging.getLogger(__name__)

EMAIL = "email"
WHATSAPP = "whatsapp"
SMS = "sms"


@dataclass
class Senders:
    email: Callable[[str, str, str], None] = send_email
    whatsapp: Callable[[str, str], None] = send_whatsapp
    sms: Callable[[str, str], None] = send_sms


@dataclass
class DispatchSummary:
    matched: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    channels: dict[str, int] = field(default_factory=dict)


def select_channel(sub: Subscriber) -> Optional[str]:
    method = (sub.method or "").lower()
    for channel in (EMAIL, WHATSAPP, SMS):
        if channel in method:
            return channel
    if sub.email:
        return EMAIL
    return None


class Dispatcher:
    def __init__(
        self,
        load_subscribers: Callable[[], Iterable[Subscriber]] = list_subscribers,
        matcher: Optional[LocationMatcher] = None,
        senders: Optional[Senders] = None,
    ) -> None:
        self._load_subscribers = load_subscribers
        self._matcher = matcher or SubstringLocationMatcher()
        self._senders = senders or Senders()

    def notify(self, report: Report) -> None:
        """Best-effort delivery; every error is logged, none is raised."""
        try:
            self.dispatch(report)
        except Exception:
            log.exception("Notification of report %r failed", report.title[:80])

    def dispatch(self, report: Report) -> DispatchSummary:
        summary = DispatchSummary()
        if not report.location:
            log.info("Report %r has no location – nobody to notify", report.title[:80])
            return summary

        subscribers = list(self._load_subscribers())
        message = build_message(report)

        for sub in subscribers:
            try:
                if not self._matcher.matches(report.location, sub.location):
                    continue
                summary.matched += 1
                channel = self._deliver(sub, report, message)
            except Exception:
                log.exception("Delivery to subscriber %s failed", sub.id)
                summary.failed += 1
                continue
            if channel is None:
                summary.skipped += 1
            else:
                summary.sent += 1
                summary.channels[channel] = summary.channels.get(channel, 0) + 1

        log.info(
            "Report %r: %d/%d subscribers matched, %d sent, %d skipped, %d failed",
            report.title[:60],
            summary.matched,
            len(subscribers),
            summary.sent,
            summary.skipped,
            summary.failed,
        )
        return summary

    def _deliver(self, sub: Subscriber, report: Report, message: str) -> Optional[str]:
        """Send through the subscriber's channel.  Returns the channel, or None if skipped."""
        channel = select_channel(sub)

        if channel == EMAIL:
            to = sub.email or sub.phone
            if not to:
                log.info("Subscriber %s prefers email but has no address or phone – skipped", sub.id)
                return None
            self._senders.email(to, email_subject(report), email_body(report))
        elif channel == WHATSAPP:
            self._senders.whatsapp(sub.phone, message)
        elif channel == SMS:
            self._senders.sms(sub.phone, message)
        else:
            log.info("Subscriber %s has no usable channel (method=%r) – skipped", sub.id, sub.method)
            return None

        log.debug("Notified subscriber %s via %s", sub.id, channel)
        return channel
